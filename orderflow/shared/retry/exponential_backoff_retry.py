from typing import Optional, Tuple, Type

from orderflow.shared.logger import ServiceLogger
from orderflow.shared.retry.base import RetryPolicy


class ExponentialBackoffRetry(RetryPolicy):
    """Doubles the wait after each failed attempt, capped at ``max_delay``."""

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 0.5,
        max_delay: float = 30.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        logger: Optional[ServiceLogger] = None,
    ):
        super().__init__(max_attempts, retry_on=retry_on, logger=logger)
        self.base_delay = base_delay
        self.max_delay = max_delay

    def compute_delay(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
