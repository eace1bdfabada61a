from orderflow.shared.retry.base import RetryPolicy
from orderflow.shared.retry.exponential_backoff_retry import ExponentialBackoffRetry
from orderflow.shared.retry.fixed_delay_retry import FixedDelayRetry

__all__ = ["RetryPolicy", "FixedDelayRetry", "ExponentialBackoffRetry"]
