from __future__ import annotations

import asyncio
import time
from collections.abc import Coroutine
from typing import Any, TypeVar

import structlog

from quizpost.db.session import dispose_engine

T = TypeVar("T")

logger = structlog.get_logger(__name__)


def _job_name(job: Coroutine[Any, Any, T]) -> str:
    return getattr(job, "__qualname__", type(job).__name__)


async def _run_job_with_fresh_pool(job: Coroutine[Any, Any, T]) -> T:
    # Each asyncio.run() owns a new loop; pooled asyncpg connections cannot cross loops.
    await dispose_engine()
    started = time.monotonic()
    try:
        return await job
    except Exception:
        logger.exception("async_job_failed", job=_job_name(job))
        raise
    finally:
        await dispose_engine()
        logger.debug(
            "async_job_finished",
            job=_job_name(job),
            duration_ms=int((time.monotonic() - started) * 1000),
        )


def run_async_job(job: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(_run_job_with_fresh_pool(job))
