from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.orm import declarative_base

# The order service owns its own database, so its tables get their own metadata.
OrdersBase = declarative_base()

DEFAULT_ORDER_STATUS = "CREATED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(OrdersBase):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    # Price and total are both caller supplied; nothing ties one to the other.
    product_price = Column(Float, nullable=False)
    total = Column(Float, nullable=False)
    status = Column(String(64), nullable=False, default=DEFAULT_ORDER_STATUS)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<Order id={self.id} user_id={self.user_id} status={self.status}>"
