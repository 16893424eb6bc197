from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from quizpost.db.models.quizzes import Quiz
from quizpost.db.models.scheduled_posts import ScheduledPost


@dataclass(slots=True)
class ScheduledPostSnapshot:
    post_id: UUID
    quiz_id: UUID
    quiz_title: str | None
    image_url: str | None
    scheduled_at: datetime
    published_at: datetime | None
    status: str
    fb_post_id: str | None
    caption: str | None
    error_message: str | None
    retry_count: int
    last_retry_at: datetime | None

    @classmethod
    def from_models(cls, post: ScheduledPost, quiz: Quiz | None = None) -> ScheduledPostSnapshot:
        return cls(
            post_id=post.id,
            quiz_id=post.quiz_id,
            quiz_title=quiz.title if quiz is not None else None,
            image_url=quiz.image_url if quiz is not None else None,
            scheduled_at=post.scheduled_at,
            published_at=post.published_at,
            status=post.status,
            fb_post_id=post.fb_post_id,
            caption=post.caption,
            error_message=post.error_message,
            retry_count=post.retry_count,
            last_retry_at=post.last_retry_at,
        )


@dataclass(slots=True)
class ClaimedPost:
    post_id: UUID
    quiz_id: UUID
    quiz_title: str
    image_url: str | None
    caption: str | None

    @property
    def message(self) -> str:
        return self.caption or f"Quiz: {self.quiz_title}"


@dataclass(slots=True)
class PublishOutcome:
    post_id: UUID
    status: str
    fb_post_id: str | None = None
    error: str | None = None
    retry_count: int | None = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"id": str(self.post_id), "status": self.status}
        if self.fb_post_id is not None:
            payload["fbPostId"] = self.fb_post_id
        if self.error is not None:
            payload["error"] = self.error
            payload["retryCount"] = self.retry_count
        return payload


@dataclass(slots=True)
class PublishRunResult:
    results: list[PublishOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)
