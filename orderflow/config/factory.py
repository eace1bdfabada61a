from functools import lru_cache

import httpx

from orderflow.config.db_session import get_sessionmaker
from orderflow.config.logger import get_logger
from orderflow.config.settings import Settings
from orderflow.notifications.consumer import OrderEventConsumer
from orderflow.notifications.repository import NotificationStore
from orderflow.notifications.retry import NotificationRetrier
from orderflow.notifications.service import NotificationService
from orderflow.orders.publisher import OrderEventPublisher
from orderflow.orders.repository import OrderStore
from orderflow.orders.service import OrderWorkflow
from orderflow.shared.clients import RETRYABLE_ERRORS, KafkaClient, UserServiceClient
from orderflow.shared.metrics import MetricsCollector
from orderflow.shared.retry import ExponentialBackoffRetry, FixedDelayRetry
from orderflow.users.crud import UserRegistry


@lru_cache
def get_settings() -> Settings:
    return Settings()


# ----------------------------
# User service client (order service side)
# ----------------------------
@lru_cache
def get_user_service_client() -> UserServiceClient:
    settings = get_settings().user_service
    logger = get_logger("UserServiceClient")
    http_client = httpx.AsyncClient(base_url=settings.url, timeout=settings.request_timeout)
    retry_policy = FixedDelayRetry(
        max_attempts=settings.max_attempts,
        delay=settings.retry_delay,
        retry_on=RETRYABLE_ERRORS,
        logger=logger,
    )
    return UserServiceClient(
        http_client=http_client,
        retry_policy=retry_policy,
        logger=logger,
        metrics=MetricsCollector(logger, namespace="user_service"),
    )


# ----------------------------
# Kafka clients
# ----------------------------
def _kafka_start_policy(logger) -> ExponentialBackoffRetry:
    kafka = get_settings().kafka
    return ExponentialBackoffRetry(
        max_attempts=kafka.start_max_retries,
        base_delay=kafka.start_retry_backoff,
        logger=logger,
    )


@lru_cache
def get_order_kafka_client() -> KafkaClient:
    settings = get_settings()
    logger = get_logger("OrderKafkaClient")
    return KafkaClient(
        bootstrap_servers=settings.kafka.get_bootstrap_servers(settings.app.env_mode),
        produce=True,
        request_timeout_ms=settings.kafka.request_timeout_ms,
        logger=logger,
        metrics=MetricsCollector(logger, namespace="order_events"),
        retry_policy=_kafka_start_policy(logger),
    )


@lru_cache
def get_notification_kafka_client() -> KafkaClient:
    settings = get_settings()
    logger = get_logger("NotificationKafkaClient")
    return KafkaClient(
        bootstrap_servers=settings.kafka.get_bootstrap_servers(settings.app.env_mode),
        group_id=settings.kafka.group_id,
        topics=[settings.kafka.topic],
        produce=False,
        request_timeout_ms=settings.kafka.request_timeout_ms,
        logger=logger,
        metrics=MetricsCollector(logger, namespace="order_events_consumer"),
        retry_policy=_kafka_start_policy(logger),
    )


# ----------------------------
# Order service
# ----------------------------
@lru_cache
def get_order_store() -> OrderStore:
    database = get_settings().database
    return OrderStore(
        session_factory=get_sessionmaker(database.orders_url, database),
        timeout=database.store_timeout,
        logger=get_logger("OrderStore"),
    )


@lru_cache
def get_order_event_publisher() -> OrderEventPublisher:
    kafka = get_settings().kafka
    return OrderEventPublisher(
        kafka_client=get_order_kafka_client(),
        topic=kafka.topic,
        publish_timeout=kafka.publish_timeout,
        logger=get_logger("OrderEventPublisher"),
    )


@lru_cache
def get_order_workflow() -> OrderWorkflow:
    return OrderWorkflow(
        user_client=get_user_service_client(),
        store=get_order_store(),
        publisher=get_order_event_publisher(),
        validation_deadline=get_settings().user_service.validation_deadline,
        logger=get_logger("OrderWorkflow"),
    )


# ----------------------------
# Notification service
# ----------------------------
@lru_cache
def get_notification_store() -> NotificationStore:
    database = get_settings().database
    return NotificationStore(
        session_factory=get_sessionmaker(database.notifications_url, database),
        timeout=database.store_timeout,
        logger=get_logger("NotificationStore"),
    )


@lru_cache
def get_notification_retrier() -> NotificationRetrier:
    # No delivery channel exists yet, so retries only report what is pending.
    return NotificationRetrier(store=get_notification_store(), logger=get_logger("NotificationRetrier"))


@lru_cache
def get_notification_service() -> NotificationService:
    logger = get_logger("NotificationService")
    return NotificationService(
        store=get_notification_store(),
        retrier=get_notification_retrier(),
        logger=logger,
        metrics=MetricsCollector(logger, namespace="notifications"),
    )


@lru_cache
def get_order_event_consumer() -> OrderEventConsumer:
    return OrderEventConsumer(
        kafka_client=get_notification_kafka_client(),
        pipeline=get_notification_service(),
        restart_backoff=get_settings().kafka.start_retry_backoff,
        logger=get_logger("OrderEventConsumer"),
    )


# ----------------------------
# User registry
# ----------------------------
@lru_cache
def get_user_registry() -> UserRegistry:
    return UserRegistry(logger=get_logger("UserRegistry"))
