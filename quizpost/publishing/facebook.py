from __future__ import annotations

from typing import Any

import httpx
import structlog

from quizpost.core.config import Settings, get_settings
from quizpost.publishing.errors import PublishError, PublishingNotConfiguredError

logger = structlog.get_logger(__name__)

GRAPH_API_BASE_URL = "https://graph.facebook.com"
MAX_MESSAGE_LENGTH = 63206


def absolute_image_url(image_url: str, *, public_base_url: str) -> str:
    if image_url.startswith(("http://", "https://")):
        return image_url
    return f"{public_base_url.rstrip('/')}/{image_url.lstrip('/')}"


def _graph_error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return default


class FacebookClient:
    def __init__(self, *, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.facebook_page_id and self._settings.facebook_page_access_token)

    def _url(self, path: str) -> str:
        return f"{GRAPH_API_BASE_URL}/{self._settings.facebook_graph_api_version}/{path}"

    async def _post(
        self,
        client: httpx.AsyncClient,
        path: str,
        body: dict[str, Any],
        *,
        default_error: str,
    ) -> dict[str, Any]:
        response = await client.post(
            self._url(path),
            json={**body, "access_token": self._settings.facebook_page_access_token},
        )
        if response.status_code >= 400:
            raise PublishError(_graph_error_message(response, default_error))
        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("id"):
            raise PublishError(default_error)
        return payload

    async def publish_photo_post(self, *, image_url: str, message: str | None = None) -> str:
        if not self.is_configured:
            raise PublishingNotConfiguredError("Facebook page credentials are not configured")
        if message is not None and len(message) > MAX_MESSAGE_LENGTH:
            raise PublishError("Message exceeds maximum length")

        page_id = self._settings.facebook_page_id
        resolved_url = absolute_image_url(image_url, public_base_url=self._settings.public_base_url)
        try:
            async with httpx.AsyncClient(timeout=self._settings.facebook_timeout_seconds) as client:
                photo = await self._post(
                    client,
                    f"{page_id}/photos",
                    {"url": resolved_url, "published": False},
                    default_error="Failed to upload photo",
                )
                feed_body: dict[str, Any] = {"attached_media": [{"media_fbid": str(photo["id"])}]}
                if message:
                    feed_body["message"] = message
                post = await self._post(
                    client,
                    f"{page_id}/feed",
                    feed_body,
                    default_error="Failed to create Facebook post",
                )
        except httpx.HTTPError as exc:
            raise PublishError(f"Facebook request failed: {type(exc).__name__}") from exc

        logger.info("facebook_post_created", page_id=page_id, fb_post_id=str(post["id"]))
        return str(post["id"])
