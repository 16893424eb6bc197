from __future__ import annotations

from enum import StrEnum


class QuizType(StrEnum):
    WORDLE = "WORDLE"
    NUMBER_SEQUENCE = "NUMBER_SEQUENCE"
    RHYME_TIME = "RHYME_TIME"
    CONCEPT_CONNECTION = "CONCEPT_CONNECTION"


class QuizStatus(StrEnum):
    DRAFT = "DRAFT"
    READY = "READY"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"


class PostStatus(StrEnum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class BatchStatus(StrEnum):
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class BatchStage(StrEnum):
    PREPARING = "preparing"
    GENERATING = "generating"
    SCHEDULING = "scheduling"
    PROCESSING_IMAGES = "processing-images"
    COMPLETE = "complete"


class OutboxEventStatus(StrEnum):
    NEW = "NEW"
    SENT = "SENT"
    FAILED = "FAILED"


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    PROGRESSIVE = "progressive"


def sql_in(values: type[StrEnum]) -> str:
    return ",".join(f"'{member.value}'" for member in values)
