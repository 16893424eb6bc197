from __future__ import annotations

import re

from quizpost.core.languages import is_valid_word
from quizpost.core.statuses import QuizType
from quizpost.generation.errors import InvalidContentError
from quizpost.generation.llm import TextPurpose
from quizpost.generation.strategies.base import QuizStrategy, clean_solution
from quizpost.generation.types import GenerationContext, StrategyContent

CONCEPTS_COUNT = 4
_CONCEPT_TEXT = re.compile(r'<span class="concept-text">(.*?)</span>', re.DOTALL)


def extract_concepts(raw: str) -> list[str]:
    concepts = [match.strip() for match in _CONCEPT_TEXT.findall(raw)]
    if concepts:
        return concepts
    return [part.strip().upper() for part in re.split(r"[,\n]", raw) if part.strip()]


def concepts_grid_html(concepts: list[str]) -> str:
    return "\n".join(
        f'<div class="concept-card"><span class="concept-text">{concept}</span></div>' for concept in concepts
    )


class ConceptConnectionStrategy(QuizStrategy):
    quiz_type = QuizType.CONCEPT_CONNECTION
    description = "concept connection puzzle"

    def validate_content(self, content: str, language: str) -> bool:
        words = content.split()
        if len(words) != 1:
            return False
        return is_valid_word(content, language)

    async def generate_content(self, context: GenerationContext) -> StrategyContent:
        raw = await self.text.complete(
            TextPurpose.CONCEPTS,
            f"Generate exactly {CONCEPTS_COUNT} related single words in {self._language_name(context)} "
            "that belong to the same category, in CAPITAL LETTERS. Return ONLY lines of the form "
            '<div class="concept-card"><span class="concept-text">WORD</span></div>',
            self._seed_prompt(context, "Generate related concepts"),
            quiz_type=self.quiz_type,
            max_tokens=200,
            temperature=0.8,
        )
        concepts = extract_concepts(raw)
        if len(concepts) != CONCEPTS_COUNT:
            raise InvalidContentError("invalid number of concepts generated")
        if len(set(concepts)) != CONCEPTS_COUNT:
            raise InvalidContentError("duplicate concepts detected")
        for concept in concepts:
            if not self.validate_content(concept, context.language):
                raise InvalidContentError(f"invalid concept for language {context.language}: {concept}")

        theme = await self.text.complete(
            TextPurpose.THEME,
            f"Identify the strongest thematic connection between these concepts: {', '.join(concepts)}. "
            f"Return ONLY the theme in {self._language_name(context)}, no explanations.",
            "What is the common theme?",
            quiz_type=self.quiz_type,
            max_tokens=50,
            temperature=0.5,
        )
        theme = theme.strip().strip(".")
        return StrategyContent(
            answer=theme,
            variables={"conceptsGrid": concepts_grid_html(concepts)},
            metadata={"theme": theme, "concepts": ",".join(concepts)},
        )

    async def generate_solution(self, context: GenerationContext, content: StrategyContent) -> str:
        raw = await self.text.complete(
            TextPurpose.SOLUTION,
            f"Explain in {self._language_name(context)} how these concepts are connected. The "
            f'connecting theme is "{content.answer}". Use sections Connection, Explanation, Examples.',
            f'Explain how {content.metadata.get("concepts", "")} are connected by "{content.answer}"',
            quiz_type=self.quiz_type,
            max_tokens=300,
            temperature=0.7,
        )
        return clean_solution(raw)
