from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import TypeVar

from quizpost.core.statuses import Difficulty

T = TypeVar("T")

BASE_DIFFICULTIES = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)
THEME_VARIATIONS = (
    "challenge",
    "puzzle",
    "brain teaser",
    "riddle",
    "mystery",
    "problem",
    "exercise",
    "test",
    "game",
    "question",
)


def difficulty_for_index(difficulty: str, index: int, total: int) -> Difficulty:
    resolved = Difficulty(difficulty.lower())
    if resolved is not Difficulty.PROGRESSIVE:
        return resolved
    position = math.floor(index / max(1, total) * len(BASE_DIFFICULTIES))
    return BASE_DIFFICULTIES[min(position, len(BASE_DIFFICULTIES) - 1)]


def pick_template(
    templates: Sequence[T],
    index: int,
    variety: int,
    *,
    rng: random.Random | None = None,
) -> T:
    if not templates:
        raise ValueError("at least one template is required")
    resolved_rng = rng or random.Random()
    if len(templates) > 1 and resolved_rng.random() < max(0, min(100, variety)) / 100:
        return resolved_rng.choice(list(templates))
    return templates[index % len(templates)]


def themed_variation(theme: str | None, index: int) -> str:
    if theme and theme.strip():
        return f"{theme.strip()} {THEME_VARIATIONS[index % len(THEME_VARIATIONS)]}"
    return f"Quiz {index + 1}"
