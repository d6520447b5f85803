"""Resilience patterns for the model and CRM calls.

Provides:
- CircuitBreaker: consecutive-failure breaker with HALF_OPEN recovery
- retry: decorator for a bounded number of retries with jittered backoff
"""

import asyncio
import enum
import functools
import logging
import random
import threading
import time
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")


class CircuitState(enum.Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when a call is attempted on an open circuit."""

    def __init__(self, service_name: str, retry_after: float = 0.0) -> None:
        self.service_name = service_name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker is open for {service_name}")


class CircuitBreaker:
    """Circuit breaker for an external service.

    Opens after ``failure_threshold`` consecutive failures. After
    ``recovery_timeout`` seconds it moves to HALF_OPEN and lets calls through;
    ``success_threshold`` consecutive successes close it again, any failure
    re-opens it.
    """

    def __init__(
        self,
        service_name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        success_threshold: int = 2,
    ) -> None:
        self.service_name = service_name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold

        self._failure_count: int = 0
        self._success_count: int = 0
        self._last_failure_time: float = 0.0
        self._state: CircuitState = CircuitState.CLOSED
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit state, accounting for recovery timeout."""
        with self._lock:
            if self._state == CircuitState.OPEN and self._last_failure_time > 0:
                elapsed = time.monotonic() - self._last_failure_time
                if elapsed >= self.recovery_timeout:
                    self._state = CircuitState.HALF_OPEN
                    self._success_count = 0
                    logger.warning(
                        "Circuit breaker HALF_OPEN for %s (testing recovery after %.1fs)",
                        self.service_name,
                        elapsed,
                    )
            return self._state

    def check(self) -> None:
        """Raise if the circuit is open (calls are not allowed)."""
        if self.state == CircuitState.OPEN:
            retry_after = max(
                0.0,
                self.recovery_timeout - (time.monotonic() - self._last_failure_time),
            )
            raise CircuitBreakerOpen(self.service_name, retry_after=retry_after)

    def record_success(self) -> None:
        """Record a successful call."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count < self.success_threshold:
                    return
                logger.warning(
                    "Circuit breaker CLOSED for %s (recovered after %d successes)",
                    self.service_name,
                    self._success_count,
                )
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0

    def record_failure(self) -> None:
        """Record a failed call. Opens the circuit after the threshold."""
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.monotonic()

            if self._state == CircuitState.HALF_OPEN:
                logger.warning(
                    "Circuit breaker re-OPENED for %s (failed during HALF_OPEN test)",
                    self.service_name,
                )
                self._state = CircuitState.OPEN
                self._success_count = 0
            elif self._failure_count >= self.failure_threshold:
                if self._state != CircuitState.OPEN:
                    logger.warning(
                        "Circuit breaker OPEN for %s after %d consecutive failures",
                        self.service_name,
                        self._failure_count,
                    )
                self._state = CircuitState.OPEN

    async def call(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Execute an async function through the circuit breaker.

        Raises:
            CircuitBreakerOpen: If the circuit is open.
            Exception: Any exception raised by *func* (after recording the failure).
        """
        self.check()
        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        else:
            self.record_success()
            return result

    def reset(self) -> None:
        """Force-reset the circuit breaker to CLOSED (e.g. for tests)."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._last_failure_time = 0.0


# Pre-configured breakers for the services this backend calls
model_circuit_breaker = CircuitBreaker("anthropic", failure_threshold=5, recovery_timeout=60.0)
hubspot_circuit_breaker = CircuitBreaker("hubspot", failure_threshold=5, recovery_timeout=60.0)
salesforce_circuit_breaker = CircuitBreaker(
    "salesforce", failure_threshold=5, recovery_timeout=60.0
)


def retry(
    max_retries: int,
    retry_on: Callable[[BaseException], bool],
    backoff_factor: float = 2.0,
    max_delay: float = 8.0,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator: retry an async function with exponential backoff + jitter.

    Args:
        max_retries: Retry attempts after the initial call.
        retry_on: Predicate deciding whether an exception is transient.
        backoff_factor: Multiplier for the delay between retries.
        max_delay: Cap on the computed delay (seconds).
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    if attempt >= max_retries or not retry_on(exc):
                        raise
                    delay = min(backoff_factor**attempt, max_delay)
                    jitter = random.uniform(0, delay)  # noqa: S311
                    attempt += 1
                    logger.warning(
                        "Retry %d/%d for %s after %s (waiting %.2fs)",
                        attempt,
                        max_retries,
                        func.__qualname__,
                        type(exc).__name__,
                        jitter,
                    )
                    await asyncio.sleep(jitter)

        return wrapper

    return decorator
