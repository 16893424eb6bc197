from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from quizpost.catalog import service as catalog_service
from quizpost.catalog.errors import InvalidTemplateError, TemplateNotFoundError
from quizpost.catalog.types import TemplateSnapshot
from quizpost.core.statuses import QuizType
from quizpost.main import app
from quizpost.services import api_auth
from tests.fakes import API_HEADERS, FIXED_NOW, api_settings


@pytest.fixture(autouse=True)
def _api_access(monkeypatch) -> None:
    monkeypatch.setattr(api_auth, "get_settings", lambda: api_settings())


@pytest.fixture
def client() -> TestClient:
    return TestClient(app, client=("127.0.0.1", 5100))


def _snapshot(*, quiz_type: str = "WORDLE", name: str = "Daily Word") -> TemplateSnapshot:
    return TemplateSnapshot(
        template_id=uuid4(),
        name=name,
        quiz_type=quiz_type,
        html="<h1>{{title}}</h1>",
        css=None,
        variables={"brandingText": "Quiz Daily"},
        image_url=None,
        description=None,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


def test_list_templates_filters_by_type(monkeypatch, client: TestClient) -> None:
    captured: dict[str, object] = {}
    snapshot = _snapshot()

    async def _list_templates(*, quiz_type=None):
        captured["quiz_type"] = quiz_type
        return [snapshot]

    monkeypatch.setattr(catalog_service, "list_templates", _list_templates)

    response = client.get("/api/templates", params={"type": "WORDLE"}, headers=API_HEADERS)

    assert response.status_code == 200
    assert captured == {"quiz_type": "WORDLE"}
    body = response.json()
    assert body[0]["id"] == str(snapshot.template_id)
    assert body[0]["quiz_type"] == "WORDLE"
    assert body[0]["variables"] == {"brandingText": "Quiz Daily"}


def test_list_templates_rejects_unknown_type(client: TestClient) -> None:
    response = client.get("/api/templates", params={"type": "CROSSWORD"}, headers=API_HEADERS)
    assert response.status_code == 422


def test_create_template_returns_created(monkeypatch, client: TestClient) -> None:
    captured: dict[str, object] = {}

    async def _create_template(**kwargs):
        captured.update(kwargs)
        return _snapshot(quiz_type=kwargs["quiz_type"], name=kwargs["name"])

    monkeypatch.setattr(catalog_service, "create_template", _create_template)

    response = client.post(
        "/api/templates",
        json={"name": "Numbers", "html": "<div>{{sequence}}</div>", "quiz_type": "NUMBER_SEQUENCE"},
        headers=API_HEADERS,
    )

    assert response.status_code == 201
    assert response.json()["name"] == "Numbers"
    assert captured["quiz_type"] == QuizType.NUMBER_SEQUENCE.value
    assert captured["variables"] == {}


def test_create_template_maps_validation_error(monkeypatch, client: TestClient) -> None:
    async def _create_template(**kwargs):
        del kwargs
        raise InvalidTemplateError("template name and html are required")

    monkeypatch.setattr(catalog_service, "create_template", _create_template)

    response = client.post(
        "/api/templates",
        json={"name": "x", "html": " ", "quiz_type": "WORDLE"},
        headers=API_HEADERS,
    )

    assert response.status_code == 400
    assert response.json() == {
        "detail": {"code": "E_TEMPLATE_INVALID", "message": "template name and html are required"}
    }


def test_get_template_returns_404(monkeypatch, client: TestClient) -> None:
    async def _get_template(template_id):
        del template_id
        raise TemplateNotFoundError

    monkeypatch.setattr(catalog_service, "get_template", _get_template)

    response = client.get(f"/api/templates/{uuid4()}", headers=API_HEADERS)

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "E_TEMPLATE_NOT_FOUND"}}


def test_preview_template_passes_query_overrides(monkeypatch, client: TestClient) -> None:
    captured: dict[str, object] = {}

    async def _preview_template(template_id, *, overrides=None):
        captured["template_id"] = template_id
        captured["overrides"] = overrides
        return "<html><body><h1>Override</h1></body></html>"

    monkeypatch.setattr(catalog_service, "preview_template", _preview_template)
    template_id = uuid4()

    response = client.get(
        f"/api/templates/{template_id}/preview",
        params={"title": "Override"},
        headers=API_HEADERS,
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "<h1>Override</h1>" in response.text
    assert captured == {"template_id": template_id, "overrides": {"title": "Override"}}
