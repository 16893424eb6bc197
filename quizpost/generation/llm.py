from __future__ import annotations

import random
from enum import StrEnum

import structlog
from openai import APIError, AsyncOpenAI

from quizpost.core.config import Settings, get_settings
from quizpost.core.statuses import QuizType
from quizpost.generation.errors import GenerationError

logger = structlog.get_logger(__name__)

REGION_UNSUPPORTED_CODE = "unsupported_country_region_territory"
REGION_UNSUPPORTED_MESSAGE = "Country, region, or territory not supported"


class TextPurpose(StrEnum):
    TITLE = "title"
    SUBTITLE = "subtitle"
    HINT = "hint"
    BRANDING = "branding"
    SOLUTION = "solution"
    WORD = "word"
    CONCEPTS = "concepts"
    THEME = "theme"
    RHYME_CHECK = "rhyme_check"
    RHYME_EXAMPLES = "rhyme_examples"
    TRANSLATION = "translation"


FALLBACK_TITLES: dict[QuizType, tuple[str, ...]] = {
    QuizType.WORDLE: (
        "Word Puzzle Quiz",
        "Word Challenge",
        "Mystery Word Quiz",
        "Word Discovery",
        "Hidden Word Quiz",
    ),
    QuizType.NUMBER_SEQUENCE: (
        "Number Pattern Quiz",
        "Sequence Challenge",
        "Number Sequence",
        "Pattern Discovery",
        "Number Logic Quiz",
    ),
    QuizType.RHYME_TIME: (
        "Rhyming Words Quiz",
        "Rhyme Challenge",
        "Word Pairs Quiz",
        "Rhyme Match",
        "Word Rhymes Quiz",
    ),
    QuizType.CONCEPT_CONNECTION: (
        "Concept Links Quiz",
        "Connection Challenge",
        "Common Thread Quiz",
        "Concept Relationships",
        "Theme Discovery Quiz",
    ),
}
GENERIC_TITLES = ("Quiz Challenge", "Skills Test", "Brain Teaser", "Mind Challenge", "Problem Solving Quiz")

FALLBACK_TEXT: dict[TextPurpose, str] = {
    TextPurpose.HINT: "Look carefully at the pattern to solve this puzzle.",
    TextPurpose.SUBTITLE: "Test your skills with this challenge!",
    TextPurpose.BRANDING: "Powered by FB Quiz",
    TextPurpose.SOLUTION: "The solution requires careful analysis of the pattern.",
}


def _is_region_refusal(exc: APIError) -> bool:
    code = getattr(exc, "code", None)
    if code == REGION_UNSUPPORTED_CODE:
        return True
    return REGION_UNSUPPORTED_MESSAGE in str(exc)


class QuizTextGenerator:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        client: AsyncOpenAI | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._rng = rng or random.Random()
        self._client = client
        if self._client is None and self._settings.openai_api_key:
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                timeout=self._settings.openai_timeout_seconds,
            )

    @property
    def is_live(self) -> bool:
        return self._client is not None

    def fallback(self, purpose: TextPurpose, *, quiz_type: QuizType | None = None) -> str:
        if purpose is TextPurpose.TITLE:
            titles = FALLBACK_TITLES.get(quiz_type, GENERIC_TITLES)
            return self._rng.choice(titles).replace('"', "").replace("'", "")
        if purpose in FALLBACK_TEXT:
            return FALLBACK_TEXT[purpose]
        raise GenerationError(f"text generation unavailable for {purpose.value}")

    async def complete(
        self,
        purpose: TextPurpose,
        system_prompt: str,
        user_prompt: str,
        *,
        quiz_type: QuizType | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        if self._client is None:
            return self.fallback(purpose, quiz_type=quiz_type)

        try:
            completion = await self._client.chat.completions.create(
                model=self._settings.openai_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=max_tokens or self._settings.openai_max_tokens,
                temperature=(
                    temperature if temperature is not None else self._settings.openai_temperature
                ),
            )
        except APIError as exc:
            if _is_region_refusal(exc):
                logger.warning("openai_region_unsupported_fallback", purpose=purpose.value)
                return self.fallback(purpose, quiz_type=quiz_type)
            logger.warning(
                "openai_completion_failed",
                purpose=purpose.value,
                error_type=type(exc).__name__,
            )
            raise GenerationError(f"text generation failed: {exc}") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise GenerationError("text generation returned empty content")
        return content.strip()
