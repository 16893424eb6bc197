from __future__ import annotations

import asyncio
import random
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
BASE_DELAY_MS = 250
BACKOFF_FACTOR = 1.5
MAX_BACKOFF_EXPONENT = 6
MAX_DELAY_MS = 5000

CONNECTION_ERROR_PATTERNS = (
    re.compile(r"connection.*pool", re.IGNORECASE),
    re.compile(r"timeout.*connection", re.IGNORECASE),
    re.compile(r"failed.*connect", re.IGNORECASE),
    re.compile(r"ECONNREFUSED"),
    re.compile(r"ETIMEDOUT"),
    re.compile(r"connection.*(terminated|closed|refused|reset)", re.IGNORECASE),
    re.compile(r"too.*many.*connections", re.IGNORECASE),
    re.compile(r"timed out", re.IGNORECASE),
    re.compile(r"could not acquire", re.IGNORECASE),
    re.compile(r"query.*timeout", re.IGNORECASE),
)


def is_connection_error(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError, ConnectionError, TimeoutError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    message = str(exc)
    return any(pattern.search(message) for pattern in CONNECTION_ERROR_PATTERNS)


def connection_retry_delay_seconds(attempt: int, *, rng: random.Random | None = None) -> float:
    jitter = 0.5 + (rng or random).random()
    exponent = min(max(1, attempt), MAX_BACKOFF_EXPONENT)
    delay_ms = min(BASE_DELAY_MS * BACKOFF_FACTOR**exponent * jitter, MAX_DELAY_MS)
    return delay_ms / 1000


async def with_connection_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    rng: random.Random | None = None,
) -> T:
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            attempt += 1
            if attempt >= max_attempts or not is_connection_error(exc):
                raise
            delay = connection_retry_delay_seconds(attempt, rng=rng)
            logger.warning(
                "db_connection_retry_scheduled",
                attempt=attempt,
                max_attempts=max_attempts,
                delay_seconds=round(delay, 3),
                error_type=type(exc).__name__,
            )
            await asyncio.sleep(delay)
