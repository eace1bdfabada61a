"""
OrderCreatedFact: the snapshot published on ``order-events`` when an order is
stored. It carries everything the notification side needs, so consumers never
call back into the order service.

Wire form is JSON with camelCase keys. Unknown keys are ignored and the
pricing/status fields are optional on read, which lets producers and
consumers evolve by adding fields.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from pydantic import ConfigDict, Field

from orderflow.shared.schemas import CamelModel

if TYPE_CHECKING:
    from orderflow.orders.models import Order


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderCreatedFact(CamelModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    order_id: int
    user_id: int
    product_name: str
    product_price: Optional[float] = None
    total: Optional[float] = None
    status: Optional[str] = None
    # When the fact was built, not when the order was
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_order(cls, order: "Order") -> "OrderCreatedFact":
        return cls(
            order_id=order.id,
            user_id=order.user_id,
            product_name=order.product_name,
            product_price=order.product_price,
            total=order.total,
            status=order.status,
        )

    @property
    def message_key(self) -> str:
        """Partition key; all facts for one order land on one partition."""
        return str(self.order_id)

    def to_message(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_message(cls, value: bytes | str) -> "OrderCreatedFact":
        return cls.model_validate_json(value)
