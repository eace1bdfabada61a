from orderflow.events.order_created import OrderCreatedFact

__all__ = ["OrderCreatedFact"]
