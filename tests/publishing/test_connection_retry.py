from __future__ import annotations

import random

import pytest
from sqlalchemy.exc import OperationalError

from quizpost.publishing import retry
from quizpost.publishing.retry import (
    connection_retry_delay_seconds,
    is_connection_error,
    with_connection_retry,
)


class _FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__()
        self._value = value

    def random(self) -> float:
        return self._value


def test_is_connection_error_matches_driver_and_message_failures() -> None:
    assert is_connection_error(ConnectionRefusedError("refused"))
    assert is_connection_error(OperationalError("SELECT 1", {}, Exception("boom")))
    assert is_connection_error(RuntimeError("could not acquire connection from pool"))
    assert is_connection_error(RuntimeError("Connection terminated unexpectedly"))
    assert not is_connection_error(ValueError("quiz title must not be blank"))


def test_retry_delay_grows_with_jitter_and_stops_growing() -> None:
    assert connection_retry_delay_seconds(1, rng=_FixedRandom(0.5)) == pytest.approx(0.375)
    assert connection_retry_delay_seconds(2, rng=_FixedRandom(0.0)) == pytest.approx(0.28125)
    assert connection_retry_delay_seconds(50, rng=_FixedRandom(0.5)) == pytest.approx(2.84765625)
    capped = connection_retry_delay_seconds(50, rng=_FixedRandom(0.5))
    assert capped == connection_retry_delay_seconds(6, rng=_FixedRandom(0.5))


@pytest.mark.asyncio
async def test_with_connection_retry_recovers_from_transient_failure(monkeypatch) -> None:
    sleeps: list[float] = []

    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr(retry.asyncio, "sleep", _sleep)
    attempts = {"count": 0}

    async def _operation() -> str:
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise ConnectionResetError("connection reset by peer")
        return "done"

    result = await with_connection_retry(_operation, rng=_FixedRandom(0.5))

    assert result == "done"
    assert attempts["count"] == 3
    assert sleeps == [pytest.approx(0.375), pytest.approx(0.5625)]


@pytest.mark.asyncio
async def test_with_connection_retry_gives_up_after_max_attempts(monkeypatch) -> None:
    async def _sleep(delay: float) -> None:
        del delay

    monkeypatch.setattr(retry.asyncio, "sleep", _sleep)
    attempts = {"count": 0}

    async def _operation() -> None:
        attempts["count"] += 1
        raise TimeoutError("timed out")

    with pytest.raises(TimeoutError):
        await with_connection_retry(_operation, max_attempts=2)
    assert attempts["count"] == 2


@pytest.mark.asyncio
async def test_with_connection_retry_does_not_retry_other_errors(monkeypatch) -> None:
    sleeps: list[float] = []

    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr(retry.asyncio, "sleep", _sleep)
    attempts = {"count": 0}

    async def _operation() -> None:
        attempts["count"] += 1
        raise ValueError("bad payload")

    with pytest.raises(ValueError):
        await with_connection_retry(_operation)
    assert attempts["count"] == 1
    assert sleeps == []
