"""Retry, rate-limit and timeout policy for the hosted catalog backend.

Only reads are ever retried: a PATCH that failed in flight may already have
been applied, and link writes are not repeated behind the caller's back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

import httpx

from .env import optional_int_env_var
from .errors import InvalidConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

RETRIES_ENV: Final[str] = "CATALOG_API_RETRIES"
RATE_LIMIT_ENV: Final[str] = "CATALOG_API_RATE_LIMIT"
TIMEOUT_ENV: Final[str] = "CATALOG_API_TIMEOUT"

DEFAULT_RETRIES: Final[int] = 3
DEFAULT_REQUESTS_PER_SECOND: Final[int] = 20
DEFAULT_TIMEOUT_SECONDS: Final[int] = 10

READ_METHODS: Final[frozenset[str]] = frozenset({"GET", "HEAD"})
# gateway throttling and restarts in front of PostgREST
TRANSIENT_STATUSES: Final[frozenset[int]] = frozenset({429, 502, 503, 504})
TRANSIENT_ERRORS: Final[tuple[type[httpx.HTTPError], ...]] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    total: int = DEFAULT_RETRIES
    backoff_factor: float = 0.25
    backoff_jitter: float = 1.0
    max_backoff_wait: float = 10.0
    methods: frozenset[str] = READ_METHODS
    statuses: frozenset[int] = TRANSIENT_STATUSES
    exceptions: tuple[type[httpx.HTTPError], ...] = TRANSIENT_ERRORS

    def __post_init__(self) -> None:
        writes = self.methods - READ_METHODS
        if writes:
            raise InvalidConfigurationError(
                "retried methods", ", ".join(sorted(writes)), "read methods only"
            )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float = 1.0


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    base_url: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict[str, str])
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = field(
        default_factory=lambda: RateLimit(DEFAULT_REQUESTS_PER_SECOND)
    )

    @classmethod
    def from_environment(
        cls,
        *,
        base_url: str,
        headers: Mapping[str, str],
    ) -> ResilienceConfig:
        """Backend policy tuned by ``CATALOG_API_*``; a rate limit of 0 disables it."""

        retries = optional_int_env_var(RETRIES_ENV, DEFAULT_RETRIES)
        per_second = optional_int_env_var(RATE_LIMIT_ENV, DEFAULT_REQUESTS_PER_SECOND)
        timeout = optional_int_env_var(TIMEOUT_ENV, DEFAULT_TIMEOUT_SECONDS)
        if timeout <= 0:
            raise InvalidConfigurationError(TIMEOUT_ENV, timeout, "a positive number of seconds")
        return cls(
            base_url=base_url,
            headers=dict(headers),
            timeout_seconds=float(timeout),
            retry=RetryPolicy(total=max(retries, 0)),
            ratelimit=RateLimit(per_second) if per_second > 0 else None,
        )
