"""Retry and rate-limit settings shared by the reconciler, work queue and API client."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int
from .errors import ConfigurationError


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for optimistic-concurrency conflicts."""

    max_attempts: int = 5
    initial_delay: float = 0.01
    factor: float = 2.0
    max_delay: float = 1.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ConfigurationError("retry delays must be non-negative")
        if self.factor < 1:
            raise ConfigurationError("backoff factor must be >= 1")

    def delay_for(self, attempt: int) -> float:
        """Base delay (before jitter) after the given 1-based failed attempt."""

        return min(self.initial_delay * self.factor ** (attempt - 1), self.max_delay)


@dataclass(slots=True, frozen=True)
class QueueRateLimit:
    """Per-key exponential requeue delay for the sync work queue."""

    base_delay: float = 0.005
    max_delay: float = 1000.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


def get_retry_policy() -> RetryPolicy:
    defaults = RetryPolicy()
    return RetryPolicy(
        max_attempts=env_int("COREHOSTS_RETRY_MAX_ATTEMPTS", defaults.max_attempts),
        initial_delay=env_float("COREHOSTS_RETRY_INITIAL_DELAY", defaults.initial_delay),
        factor=env_float("COREHOSTS_RETRY_FACTOR", defaults.factor),
        max_delay=env_float("COREHOSTS_RETRY_MAX_DELAY", defaults.max_delay),
        jitter=env_float("COREHOSTS_RETRY_JITTER", defaults.jitter),
    )


def get_queue_rate_limit() -> QueueRateLimit:
    defaults = QueueRateLimit()
    return QueueRateLimit(
        base_delay=env_float("COREHOSTS_QUEUE_BASE_DELAY", defaults.base_delay),
        max_delay=env_float("COREHOSTS_QUEUE_MAX_DELAY", defaults.max_delay),
    )
