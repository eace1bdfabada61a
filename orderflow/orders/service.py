from datetime import datetime, timezone
from typing import List, Optional

from orderflow.events import OrderCreatedFact
from orderflow.orders.models import Order
from orderflow.orders.publisher import OrderEventPublisher
from orderflow.orders.repository import OrderStore
from orderflow.orders.schemas import OrderCreate
from orderflow.shared.clients import UserServiceClient
from orderflow.shared.errors import NotFound, ValidationFailure
from orderflow.shared.logger import ServiceLogger


class OrderWorkflow:
    """
    Order creation: validate the user, store the order, publish the fact.

    Steps run strictly in that order and nothing is rolled back. Once the
    order is stored it is returned whatever happens to the publish, so an
    order can exist without ever producing a notification.
    """

    def __init__(
        self,
        user_client: UserServiceClient,
        store: OrderStore,
        publisher: OrderEventPublisher,
        validation_deadline: Optional[float] = None,
        logger: Optional[ServiceLogger] = None,
    ):
        self.user_client = user_client
        self.store = store
        self.publisher = publisher
        self.validation_deadline = validation_deadline
        self.logger = logger or ServiceLogger("OrderWorkflow")

    async def create_order(self, data: OrderCreate) -> Order:
        if not await self.user_client.exists(data.user_id, timeout=self.validation_deadline):
            self.logger.warning("Rejecting order for unknown user", user_id=data.user_id)
            raise ValidationFailure(user_id=data.user_id)

        order = Order(
            user_id=data.user_id,
            product_name=data.product_name,
            product_price=data.product_price,
            total=data.total,
            status=data.status,
            created_at=datetime.now(timezone.utc),
        )
        saved = await self.store.save(order)

        self.publisher.publish(OrderCreatedFact.from_order(saved))
        return saved

    async def get_order(self, order_id: int) -> Order:
        order = await self.store.get(order_id)
        if order is None:
            raise NotFound.for_entity("Order", order_id, order_id=order_id)
        return order

    async def list_orders(self) -> List[Order]:
        return await self.store.list()
