"""Resilience primitives for Canvas and LLM calls.

Every collaborator owns one :class:`ResiliencePolicy`. Transport failures are
retried with jittered backoff; anything else fails on the first attempt. All
failures leave the policy as :class:`ExternalServiceError` so callers handle a
single error type.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from enum import StrEnum
from typing import TypeVar

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

T = TypeVar("T")

# Transport-level failures only. HTTP status errors, auth errors and
# malformed payloads fail on the first attempt.
_RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (ConnectionError, TimeoutError)


class ExternalServiceError(RuntimeError):
    """Raised when a collaborator call fails after the retry policy gives up."""

    def __init__(
        self,
        message: str,
        *,
        service: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class EmptyCompletionError(ExternalServiceError):
    """Raised when a model call succeeds but returns no content."""


class CircuitBreakerOpenError(ExternalServiceError):
    """Raised without calling the collaborator while its breaker is open."""

    def __init__(self, service: str, retry_after_seconds: float) -> None:
        super().__init__(
            f"{service} is unavailable after repeated failures; retry in {retry_after_seconds:.0f}s",
            service=service,
        )
        self.retry_after_seconds = retry_after_seconds


class CircuitBreakerState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Consecutive-failure breaker shared by every call through one policy.

    After ``failure_threshold`` failures in a row the breaker opens and
    rejects calls until ``recovery_timeout_seconds`` pass. The next call is
    then let through as a probe; its outcome closes or reopens the breaker.
    """

    def __init__(
        self,
        name: str,
        *,
        failure_threshold: int = 5,
        recovery_timeout_seconds: float = 60.0,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout_seconds = recovery_timeout_seconds
        self._lock = threading.Lock()
        self._consecutive_failures = 0
        self._opened_at: float | None = None
        self.last_status_code: int | None = None

    def _current_state(self, now: float) -> CircuitBreakerState:
        if self._opened_at is None:
            return CircuitBreakerState.CLOSED
        if now - self._opened_at >= self.recovery_timeout_seconds:
            return CircuitBreakerState.HALF_OPEN
        return CircuitBreakerState.OPEN

    def guard(self) -> None:
        """Raise :class:`CircuitBreakerOpenError` if calls are currently rejected."""
        now = time.monotonic()
        with self._lock:
            opened_at = self._opened_at
            if opened_at is not None and self._current_state(now) == CircuitBreakerState.OPEN:
                remaining = self.recovery_timeout_seconds - (now - opened_at)
                raise CircuitBreakerOpenError(self.name, max(remaining, 0.0))

    def record_success(self) -> None:
        with self._lock:
            self._consecutive_failures = 0
            self._opened_at = None
            self.last_status_code = None

    def record_failure(self, status_code: int | None = None) -> None:
        with self._lock:
            self._consecutive_failures += 1
            self.last_status_code = status_code
            half_open = self._current_state(time.monotonic()) == CircuitBreakerState.HALF_OPEN
            if half_open or self._consecutive_failures >= self.failure_threshold:
                self._opened_at = time.monotonic()

    @property
    def state(self) -> CircuitBreakerState:
        with self._lock:
            return self._current_state(time.monotonic())


class ResiliencePolicy:
    """Retry plus circuit breaking for one named collaborator."""

    def __init__(
        self,
        *,
        name: str,
        max_attempts: int,
        failure_threshold: int = 5,
        recovery_timeout_seconds: float = 60.0,
        retry_on: tuple[type[BaseException], ...] = _RETRYABLE_EXCEPTIONS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        self.name = name
        self.max_attempts = max_attempts
        self.retry_on = retry_on
        self.breaker = CircuitBreaker(
            name,
            failure_threshold=failure_threshold,
            recovery_timeout_seconds=recovery_timeout_seconds,
        )

    def execute(self, operation: Callable[[], T]) -> T:
        """Run ``operation``; any failure surfaces as :class:`ExternalServiceError`."""
        self.breaker.guard()

        retryer = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(initial=0.25, max=8.0),
            retry=retry_if_exception_type(self.retry_on),
            reraise=True,
        )

        try:
            result = retryer(operation)
        except ExternalServiceError as exc:
            self.breaker.record_failure(exc.status_code)
            raise
        except RetryError as exc:  # pragma: no cover
            error = self._wrap(
                f"{self.name} failed after {self.max_attempts} attempts: {_root_cause(exc)}", exc
            )
            self.breaker.record_failure(error.status_code)
            raise error from exc
        except Exception as exc:
            error = self._wrap(f"{self.name} failed: {exc}", exc)
            self.breaker.record_failure(error.status_code)
            raise error from exc

        self.breaker.record_success()
        return result

    def _wrap(self, message: str, exc: BaseException) -> ExternalServiceError:
        return ExternalServiceError(
            message,
            service=self.name,
            status_code=extract_status_code(exc),
        )


def extract_status_code(exc: BaseException) -> int | None:
    """Find an HTTP status code on an exception or anything it was raised from."""
    current: BaseException | None = exc
    seen: set[int] = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        status = getattr(current, "status_code", None)
        if isinstance(status, int):
            return status
        response = getattr(current, "response", None)
        status = getattr(response, "status_code", None)
        if isinstance(status, int):
            return status
        current = current.__cause__ or current.__context__
    return None


def _root_cause(exc: BaseException) -> str:
    message = str(exc)
    current = exc.__cause__ or exc.__context__
    while current is not None and current is not exc:
        if str(current).strip():
            message = str(current).strip()
        current = current.__cause__ or current.__context__
    return message
