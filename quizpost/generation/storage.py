from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from uuid import UUID

from quizpost.core.config import Settings, get_settings

QUIZ_IMAGE_SUBDIR = "quizzes"


def media_root(settings: Settings | None = None) -> Path:
    resolved = settings or get_settings()
    return Path(resolved.media_dir)


def public_media_url(relative_path: str, settings: Settings | None = None) -> str:
    resolved = settings or get_settings()
    return f"{resolved.public_base_url.rstrip('/')}/media/{relative_path.lstrip('/')}"


def save_quiz_image(
    quiz_id: UUID,
    png_bytes: bytes,
    *,
    settings: Settings | None = None,
    now_utc: datetime | None = None,
) -> str:
    resolved = settings or get_settings()
    stamp = int((now_utc or datetime.now(timezone.utc)).timestamp() * 1000)
    relative_path = f"{QUIZ_IMAGE_SUBDIR}/{quiz_id}-{stamp}.png"
    target = media_root(resolved) / relative_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(png_bytes)
    return public_media_url(relative_path, resolved)


def with_cache_buster(url: str | None, *, stamp: int) -> str | None:
    if not url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}v={stamp}"
