import asyncio
from typing import Optional

import httpx

from orderflow.shared.logger import ServiceLogger
from orderflow.shared.metrics import MetricsCollector
from orderflow.shared.metrics.metrics_schema import ValidationMetrics
from orderflow.shared.retry import FixedDelayRetry, RetryPolicy


class UserLookupError(Exception):
    """The user service answered with a non-success status."""

    def __init__(self, user_id: int, status_code: int):
        self.user_id = user_id
        self.status_code = status_code
        super().__init__(f"user service returned {status_code} for user {user_id}")


# Anything else is a bug and propagates
RETRYABLE_ERRORS = (httpx.HTTPError, UserLookupError)


class UserServiceClient:
    """
    Existence check against the user registry.

    The HTTP client is built once at startup (base URL, per-attempt timeout)
    and injected; this class owns only the retry policy around it.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[ServiceLogger] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.http_client = http_client
        self.logger = logger or ServiceLogger("UserServiceClient")
        self.retry_policy = retry_policy or FixedDelayRetry(
            max_attempts=3, delay=1.0, retry_on=RETRYABLE_ERRORS, logger=self.logger
        )
        self.metrics = metrics or MetricsCollector(self.logger, namespace="user_service")

    async def exists(self, user_id: int, timeout: Optional[float] = None) -> bool:
        """
        Return True only when the registry confirms the user.

        Transport errors and non-2xx answers are retried by the retry policy;
        an empty 2xx body is a definite "no". ``timeout`` bounds the whole call
        including retry sleeps; hitting it yields False. Cancelling the calling
        task propagates straight through.
        """
        try:
            if timeout is None:
                return await self._lookup(user_id)
            return await asyncio.wait_for(self._lookup(user_id), timeout=timeout)
        except asyncio.TimeoutError:
            self.metrics.increment(ValidationMetrics.DEADLINE_EXCEEDED)
            self.logger.warning("User lookup deadline exceeded", user_id=user_id, timeout=timeout)
            return False

    async def _lookup(self, user_id: int) -> bool:
        attempts = 0

        async def _fetch() -> bool:
            nonlocal attempts
            attempts += 1
            self.metrics.increment(ValidationMetrics.ATTEMPTS)
            if attempts > 1:
                self.metrics.increment(ValidationMetrics.RETRIES)

            response = await self.http_client.get(f"/users/{user_id}")
            if not response.is_success:
                raise UserLookupError(user_id, response.status_code)

            body = response.content.strip()
            return bool(body) and body != b"null"

        try:
            found = await self.retry_policy.execute(_fetch)
        except RETRYABLE_ERRORS as exc:
            self.metrics.increment(ValidationMetrics.EXHAUSTED)
            self.logger.warning(
                "User service unreachable after retries",
                user_id=user_id,
                attempts=attempts,
                error=str(exc),
            )
            return False

        self.metrics.increment(ValidationMetrics.FOUND if found else ValidationMetrics.NOT_FOUND)
        self.logger.info("User lookup finished", user_id=user_id, found=found, attempts=attempts)
        return found

    async def aclose(self):
        await self.http_client.aclose()
