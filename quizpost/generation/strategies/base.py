from __future__ import annotations

import re
from abc import ABC, abstractmethod

import structlog

from quizpost.core.languages import get_language
from quizpost.core.statuses import QuizType
from quizpost.generation.llm import QuizTextGenerator, TextPurpose
from quizpost.generation.types import GeneratedQuiz, GenerationContext, StrategyContent

logger = structlog.get_logger(__name__)

_GREETING_PREFIX = re.compile(r"^(Hi|Hello|Greetings|Sure|Let me|I'll|Here's|Here is).*?,\s*", re.IGNORECASE)
_ASSISTANT_PREFIX = re.compile(
    r"^(I will|I can|I would|I am|I'm) (going to |happy to |here to |able to )?(help|explain|show|assist|guide)",
    re.IGNORECASE,
)
_SIGN_OFF = re.compile(
    r"\b(hope this helps|let me know|feel free|don't hesitate|is there anything else)\b.*?$",
    re.IGNORECASE,
)


def strip_quotes(text: str) -> str:
    return re.sub(r"[\"']", "", text).strip()


def clean_solution(text: str) -> str:
    cleaned = _GREETING_PREFIX.sub("", text)
    cleaned = _ASSISTANT_PREFIX.sub("", cleaned)
    cleaned = _SIGN_OFF.sub("", cleaned)
    return cleaned.strip()


class QuizStrategy(ABC):
    quiz_type: QuizType
    description: str

    def __init__(self, text_generator: QuizTextGenerator) -> None:
        self.text = text_generator

    @abstractmethod
    async def generate_content(self, context: GenerationContext) -> StrategyContent: ...

    @abstractmethod
    def validate_content(self, content: str, language: str) -> bool: ...

    def _language_name(self, context: GenerationContext) -> str:
        return get_language(context.language).name

    def _seed_prompt(self, context: GenerationContext, default: str) -> str:
        parts = [context.content or context.theme or default]
        if context.difficulty:
            parts.append(f"Difficulty: {context.difficulty}")
        if context.unique_marker:
            parts.append(f"Variation: {context.unique_marker}")
        return "\n".join(parts)

    async def generate_title(self, context: GenerationContext) -> str:
        raw = await self.text.complete(
            TextPurpose.TITLE,
            f"Create a catchy title in {self._language_name(context)} that:\n"
            "- Should be a simple statement, not a question\n"
            f"- Should be about {self.description}\n"
            "- Should be 2-5 words long\n"
            "- Should NOT contain any quotation marks\n"
            '- Should end with "Quiz" or "Challenge"',
            self._seed_prompt(context, "Generate an engaging quiz title"),
            quiz_type=self.quiz_type,
        )
        return strip_quotes(raw).rstrip("?").strip()

    async def generate_subtitle(self, context: GenerationContext) -> str:
        raw = await self.text.complete(
            TextPurpose.SUBTITLE,
            f"Create a short subtitle in {self._language_name(context)} that explains the "
            f"{self.description} challenge in a single sentence, without quotation marks "
            "and not as a question.",
            self._seed_prompt(context, "Generate a subtitle"),
            quiz_type=self.quiz_type,
        )
        return strip_quotes(raw).rstrip("?").strip()

    async def generate_branding_text(self, context: GenerationContext) -> str:
        return await self.text.complete(
            TextPurpose.BRANDING,
            f"Create a short branding text in {self._language_name(context)} that emphasizes "
            f"{self.description}, is catchy and is 2-4 words long.",
            self._seed_prompt(context, "Generate branding text"),
            quiz_type=self.quiz_type,
        )

    async def generate_hint(self, context: GenerationContext, content: StrategyContent) -> str:
        return await self.text.complete(
            TextPurpose.HINT,
            f"Create a subtle hint in {self._language_name(context)} that rewards careful "
            "analysis, avoids obvious giveaways and is a single sentence.",
            self._seed_prompt(context, "Generate a hint"),
            quiz_type=self.quiz_type,
        )

    async def generate_solution(self, context: GenerationContext, content: StrategyContent) -> str:
        raw = await self.text.complete(
            TextPurpose.SOLUTION,
            f"Generate a clear explanation in {self._language_name(context)} of how to solve "
            f'this {self.description} quiz. The answer is "{content.answer}".',
            self._seed_prompt(context, f'Explain the solution for "{content.answer}"'),
            quiz_type=self.quiz_type,
        )
        return clean_solution(raw)

    async def generate(self, context: GenerationContext) -> GeneratedQuiz:
        content = await self.generate_content(context)
        title = await self.generate_title(context)
        subtitle = await self.generate_subtitle(context)
        hint = await self.generate_hint(context, content)
        branding_text = await self.generate_branding_text(context)
        solution = await self.generate_solution(context, content)
        logger.info(
            "quiz_content_generated",
            quiz_type=self.quiz_type.value,
            language=context.language,
            difficulty=context.difficulty,
        )
        return GeneratedQuiz(
            quiz_type=self.quiz_type,
            title=title,
            subtitle=subtitle,
            hint=hint,
            branding_text=branding_text,
            answer=content.answer,
            solution=solution,
            variables=dict(content.variables),
            metadata=dict(content.metadata),
        )
