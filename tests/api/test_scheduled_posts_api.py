from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from quizpost.catalog.errors import QuizNotFoundError
from quizpost.main import app
from quizpost.publishing import service as publishing_service
from quizpost.publishing.errors import (
    InvalidScheduleTimeError,
    PostConflictError,
    PostNotCancellableError,
    PostNotFoundError,
    PostNotRetryableError,
    RetryLimitExceededError,
)
from quizpost.publishing.types import ScheduledPostSnapshot
from quizpost.services import api_auth
from tests.fakes import API_HEADERS, FIXED_NOW, api_settings


@pytest.fixture(autouse=True)
def _api_access(monkeypatch) -> None:
    monkeypatch.setattr(api_auth, "get_settings", lambda: api_settings())


@pytest.fixture
def client() -> TestClient:
    return TestClient(app, client=("127.0.0.1", 5100))


def _snapshot(**overrides: object) -> ScheduledPostSnapshot:
    base: dict[str, object] = {
        "post_id": uuid4(),
        "quiz_id": uuid4(),
        "quiz_title": "Word Challenge",
        "image_url": "http://localhost:8000/media/quizzes/q.png",
        "scheduled_at": FIXED_NOW + timedelta(days=1),
        "published_at": None,
        "status": "PENDING",
        "fb_post_id": None,
        "caption": None,
        "error_message": None,
        "retry_count": 0,
        "last_retry_at": None,
    }
    base.update(overrides)
    return ScheduledPostSnapshot(**base)


def test_list_scheduled_posts(monkeypatch, client: TestClient) -> None:
    snapshot = _snapshot(status="FAILED", error_message="Invalid OAuth access token.", retry_count=1)

    async def _list_scheduled_posts():
        return [snapshot]

    monkeypatch.setattr(publishing_service, "list_scheduled_posts", _list_scheduled_posts)

    response = client.get("/api/scheduled-posts", headers=API_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body[0]["id"] == str(snapshot.post_id)
    assert body[0]["status"] == "FAILED"
    assert body[0]["error_message"] == "Invalid OAuth access token."
    assert body[0]["retry_count"] == 1


def test_create_scheduled_post(monkeypatch, client: TestClient) -> None:
    captured: dict[str, object] = {}

    async def _schedule_post(*, quiz_id, scheduled_at, caption=None):
        captured.update({"quiz_id": quiz_id, "scheduled_at": scheduled_at, "caption": caption})
        return _snapshot(quiz_id=quiz_id, scheduled_at=scheduled_at, caption=caption)

    monkeypatch.setattr(publishing_service, "schedule_post", _schedule_post)
    quiz_id = uuid4()

    response = client.post(
        "/api/scheduled-posts",
        json={"quiz_id": str(quiz_id), "scheduled_at": "2026-03-03T09:00:00Z", "caption": "Try it"},
        headers=API_HEADERS,
    )

    assert response.status_code == 201
    assert response.json()["quiz_id"] == str(quiz_id)
    assert captured["quiz_id"] == quiz_id
    assert captured["caption"] == "Try it"
    assert captured["scheduled_at"].isoformat() == "2026-03-03T09:00:00+00:00"


@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (QuizNotFoundError(), 404, "E_QUIZ_NOT_FOUND"),
        (InvalidScheduleTimeError("scheduled time must be in the future"), 400, "E_SCHEDULE_TIME_INVALID"),
        (PostConflictError(), 409, "E_SCHEDULE_CONFLICT"),
    ],
)
def test_create_scheduled_post_maps_errors(
    monkeypatch,
    client: TestClient,
    error,
    status_code: int,
    code: str,
) -> None:
    async def _schedule_post(**kwargs):
        del kwargs
        raise error

    monkeypatch.setattr(publishing_service, "schedule_post", _schedule_post)

    response = client.post(
        "/api/scheduled-posts",
        json={"quiz_id": str(uuid4()), "scheduled_at": "2026-03-03T09:00:00Z"},
        headers=API_HEADERS,
    )

    assert response.status_code == status_code
    assert response.json()["detail"]["code"] == code


def test_cancel_scheduled_post(monkeypatch, client: TestClient) -> None:
    cancelled: list[object] = []

    async def _cancel_post(post_id):
        cancelled.append(post_id)

    monkeypatch.setattr(publishing_service, "cancel_post", _cancel_post)
    post_id = uuid4()

    response = client.delete(f"/api/scheduled-posts/{post_id}", headers=API_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert cancelled == [post_id]


@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (PostNotFoundError(), 404, "E_POST_NOT_FOUND"),
        (PostNotCancellableError("post cannot be cancelled (status=PUBLISHED)"), 409, "E_POST_NOT_CANCELLABLE"),
    ],
)
def test_cancel_scheduled_post_maps_errors(
    monkeypatch,
    client: TestClient,
    error,
    status_code: int,
    code: str,
) -> None:
    async def _cancel_post(post_id):
        del post_id
        raise error

    monkeypatch.setattr(publishing_service, "cancel_post", _cancel_post)

    response = client.delete(f"/api/scheduled-posts/{uuid4()}", headers=API_HEADERS)

    assert response.status_code == status_code
    assert response.json()["detail"]["code"] == code


def test_retry_scheduled_post(monkeypatch, client: TestClient) -> None:
    post_id = uuid4()

    async def _retry_post(requested_id):
        return _snapshot(post_id=requested_id, retry_count=2, last_retry_at=FIXED_NOW)

    monkeypatch.setattr(publishing_service, "retry_post", _retry_post)

    response = client.post(f"/api/scheduled-posts/{post_id}/retry", headers=API_HEADERS)

    assert response.status_code == 200
    assert response.json()["id"] == str(post_id)
    assert response.json()["retry_count"] == 2


@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (PostNotFoundError(), 404, "E_POST_NOT_FOUND"),
        (PostNotRetryableError("only failed posts can be retried"), 400, "E_POST_NOT_RETRYABLE"),
        (RetryLimitExceededError("maximum retry attempts (3) reached"), 400, "E_RETRY_LIMIT_REACHED"),
    ],
)
def test_retry_scheduled_post_maps_errors(
    monkeypatch,
    client: TestClient,
    error,
    status_code: int,
    code: str,
) -> None:
    async def _retry_post(post_id):
        del post_id
        raise error

    monkeypatch.setattr(publishing_service, "retry_post", _retry_post)

    response = client.post(f"/api/scheduled-posts/{uuid4()}/retry", headers=API_HEADERS)

    assert response.status_code == status_code
    assert response.json()["detail"]["code"] == code
