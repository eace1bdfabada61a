from orderflow.shared.clients.kafka_client import KafkaClient
from orderflow.shared.clients.user_service_client import RETRYABLE_ERRORS, UserLookupError, UserServiceClient

__all__ = ["KafkaClient", "UserServiceClient", "UserLookupError", "RETRYABLE_ERRORS"]
