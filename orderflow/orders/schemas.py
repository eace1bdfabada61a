from datetime import datetime

from pydantic import ConfigDict, Field

from orderflow.orders.models import DEFAULT_ORDER_STATUS
from orderflow.shared.schemas import CamelModel


class OrderCreate(CamelModel):
    user_id: int
    product_name: str = Field(min_length=1)
    product_price: float = Field(ge=0)
    total: float = Field(ge=0)
    status: str = DEFAULT_ORDER_STATUS


class OrderResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    product_name: str
    product_price: float
    total: float
    status: str
    created_at: datetime
