class ValidationMetrics:
    """Counter keys for the user service client"""
    ATTEMPTS = "user_lookup_attempts"
    RETRIES = "user_lookup_retries"
    FOUND = "user_lookup_found"
    NOT_FOUND = "user_lookup_not_found"
    EXHAUSTED = "user_lookup_exhausted"
    DEADLINE_EXCEEDED = "user_lookup_deadline_exceeded"


class KafkaMetrics:
    """Counter keys for KafkaClient and the order event publisher"""
    SENT = "kafka_sent"
    FAILED_SEND = "kafka_failed_send"
    PUBLISHED = "order_events_published"
    FAILED_PUBLISH = "order_events_failed_publish"
    CONSUMED = "kafka_consumed"
    COMMITTED = "kafka_committed"


class ConsumeMetrics:
    """Counter keys for the order event consumer"""
    HANDLED = "order_events_handled"
    FAILED = "order_events_failed"
    UNDECODABLE = "order_events_undecodable"


class NotificationMetrics:
    """Counter keys for the notification pipeline and retrier"""
    SENT = "notifications_sent"
    RETRY_SELECTED = "notifications_retry_selected"
    RETRY_SENT = "notifications_retry_sent"
    RETRY_FAILED = "notifications_retry_failed"
