from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from quizpost.services.api_auth import API_TOKEN_HEADER

logger = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_MAX_POLL_INTERVAL_SECONDS = 10.0
DEFAULT_MAX_CONSECUTIVE_ERRORS = 5
DEFAULT_POLL_TIMEOUT_SECONDS = 600.0
TERMINAL_BATCH_STATUSES = frozenset({"COMPLETE", "FAILED", "CANCELLED"})
RETRYABLE_CLIENT_ERROR_CODES = frozenset({408, 429})


class BatchPollingError(Exception):
    pass


class BatchPollingTimeoutError(BatchPollingError):
    pass


class BatchPollingAbortedError(BatchPollingError):
    pass


@dataclass(frozen=True, slots=True)
class BatchProgress:
    batch_id: str
    status: str
    stage: str
    completed_count: int
    total_count: int
    percent: int
    is_complete: bool
    error_message: str | None

    @classmethod
    def from_status(cls, payload: dict[str, Any]) -> BatchProgress:
        total = max(1, int(payload.get("total_count") or 1))
        completed = max(0, int(payload.get("completed_count") or 0))
        is_complete = bool(payload.get("is_complete"))
        percent = 100 if is_complete else min(100, round(completed / total * 100))
        return cls(
            batch_id=str(payload.get("batch_id", "")),
            status=str(payload.get("status", "")),
            stage=str(payload.get("stage", "")),
            completed_count=completed,
            total_count=total,
            percent=percent,
            is_complete=is_complete,
            error_message=payload.get("error_message"),
        )

    @property
    def is_terminal(self) -> bool:
        return self.is_complete or bool(self.error_message) or self.status in TERMINAL_BATCH_STATUSES


class BatchGenerationClient:
    def __init__(
        self,
        *,
        base_url: str,
        api_token: str,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={API_TOKEN_HEADER: api_token},
        )

    async def __aenter__(self) -> BatchGenerationClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._client.request(method, path, **kwargs)
        response.raise_for_status()
        return response.json()

    async def list_templates(self, *, quiz_type: str | None = None) -> list[dict[str, Any]]:
        params = {"type": quiz_type} if quiz_type else None
        return await self._request("GET", "/api/templates", params=params)

    async def start_batch(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/api/quiz-generation/batch", json=payload)

    async def get_status(self, batch_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/quiz-generation/batch/{batch_id}/status")

    async def finalize(self, batch_id: str) -> dict[str, Any]:
        return await self._request("POST", f"/api/quiz-generation/batch/{batch_id}/finalize")


ProgressCallback = Callable[[BatchProgress], Awaitable[None] | None]


def error_backoff_seconds(*, interval: float, consecutive_errors: int, max_interval: float) -> float:
    return min(max_interval, interval * 2 ** max(0, consecutive_errors))


def _is_rejected_request(exc: Exception) -> bool:
    if not isinstance(exc, httpx.HTTPStatusError):
        return False
    status_code = exc.response.status_code
    return 400 <= status_code < 500 and status_code not in RETRYABLE_CLIENT_ERROR_CODES


async def poll_batch_until_complete(
    client: BatchGenerationClient,
    batch_id: str,
    *,
    on_progress: ProgressCallback | None = None,
    interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    max_interval: float = DEFAULT_MAX_POLL_INTERVAL_SECONDS,
    max_consecutive_errors: int = DEFAULT_MAX_CONSECUTIVE_ERRORS,
    timeout: float = DEFAULT_POLL_TIMEOUT_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> BatchProgress:
    deadline = clock() + timeout
    consecutive_errors = 0
    while True:
        delay = interval
        try:
            payload = await client.get_status(batch_id)
        except (httpx.HTTPError, ValueError) as exc:
            if _is_rejected_request(exc):
                raise BatchPollingAbortedError(
                    f"status request for batch {batch_id} was rejected with HTTP {exc.response.status_code}"
                ) from exc
            consecutive_errors += 1
            logger.warning(
                "batch_status_poll_failed",
                batch_id=batch_id,
                consecutive_errors=consecutive_errors,
                error_type=type(exc).__name__,
            )
            if consecutive_errors >= max_consecutive_errors:
                raise BatchPollingAbortedError(
                    f"status polling failed {consecutive_errors} times in a row"
                ) from exc
            delay = error_backoff_seconds(
                interval=interval,
                consecutive_errors=consecutive_errors,
                max_interval=max_interval,
            )
        else:
            consecutive_errors = 0
            progress = BatchProgress.from_status(payload)
            if on_progress is not None:
                maybe_awaitable = on_progress(progress)
                if maybe_awaitable is not None:
                    await maybe_awaitable
            if progress.is_terminal:
                return progress

        if clock() + delay > deadline:
            raise BatchPollingTimeoutError(f"batch {batch_id} did not complete within {timeout:.0f}s")
        await sleep(delay)
