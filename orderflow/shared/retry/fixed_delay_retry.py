from typing import Optional, Tuple, Type

from orderflow.shared.logger import ServiceLogger
from orderflow.shared.retry.base import RetryPolicy


class FixedDelayRetry(RetryPolicy):
    """Waits the same ``delay`` between every pair of attempts."""

    def __init__(
        self,
        max_attempts: int = 3,
        delay: float = 1.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        logger: Optional[ServiceLogger] = None,
    ):
        super().__init__(max_attempts, retry_on=retry_on, logger=logger)
        self.delay = delay

    def compute_delay(self, attempt: int) -> float:
        return self.delay
