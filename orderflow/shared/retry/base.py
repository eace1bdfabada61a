# orderflow/shared/retry/base.py
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from orderflow.shared.logger import ServiceLogger


class RetryPolicy(ABC):
    """
    Base class for retry policies.

    Runs an async callable until it succeeds, a non-retryable exception is
    raised, or ``max_attempts`` is reached. Subclasses only decide how long to
    wait between attempts.
    """

    def __init__(
        self,
        max_attempts: int,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        logger: Optional[ServiceLogger] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.retry_on = retry_on
        self.logger = logger or ServiceLogger(self.__class__.__name__)

    @abstractmethod
    def compute_delay(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Execute the given async function with retries.

        Args:
            func: An async function to execute.
            *args: Positional arguments to pass to the function.
            **kwargs: Keyword arguments to pass to the function.

        Returns:
            The result of the async function if successful.

        Raises:
            The last exception once attempts are exhausted, any exception not
            listed in ``retry_on`` straight away, and ``asyncio.CancelledError``
            as soon as the surrounding task is cancelled (also mid-sleep).
        """
        name = getattr(func, "__name__", str(func))
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await func(*args, **kwargs)
            except asyncio.CancelledError:
                raise
            except self.retry_on as exc:
                if attempt == self.max_attempts:
                    self.logger.error(
                        "Retries exhausted",
                        function=name,
                        error=str(exc),
                        attempts=self.max_attempts,
                    )
                    raise
                delay = self.compute_delay(attempt)
                self.logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} failed, retrying in {delay:.2f}s",
                    function=name,
                    error=str(exc),
                )
                try:
                    await asyncio.sleep(delay)
                except asyncio.CancelledError:
                    self.logger.info("Retry sleep cancelled", function=name, attempt=attempt)
                    raise
