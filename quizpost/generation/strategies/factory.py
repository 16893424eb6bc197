from __future__ import annotations

import random

from quizpost.core.statuses import QuizType
from quizpost.generation.errors import UnsupportedQuizTypeError
from quizpost.generation.llm import QuizTextGenerator
from quizpost.generation.strategies.base import QuizStrategy
from quizpost.generation.strategies.concept_connection import ConceptConnectionStrategy
from quizpost.generation.strategies.number_sequence import NumberSequenceStrategy
from quizpost.generation.strategies.rhyme_time import RhymeTimeStrategy
from quizpost.generation.strategies.wordle import WordleStrategy


class StrategyFactory:
    def __init__(
        self,
        text_generator: QuizTextGenerator | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.text = text_generator or QuizTextGenerator(rng=rng)
        self.rng = rng or random.Random()
        self._strategies: dict[QuizType, QuizStrategy] = {}

    def get(self, quiz_type: QuizType | str) -> QuizStrategy:
        try:
            resolved = QuizType(quiz_type)
        except ValueError as exc:
            raise UnsupportedQuizTypeError(f"unsupported quiz type: {quiz_type}") from exc

        strategy = self._strategies.get(resolved)
        if strategy is None:
            strategy = self._build(resolved)
            self._strategies[resolved] = strategy
        return strategy

    def _build(self, quiz_type: QuizType) -> QuizStrategy:
        if quiz_type is QuizType.NUMBER_SEQUENCE:
            return NumberSequenceStrategy(self.text, rng=self.rng)
        if quiz_type is QuizType.WORDLE:
            return WordleStrategy(self.text, rng=self.rng)
        if quiz_type is QuizType.RHYME_TIME:
            return RhymeTimeStrategy(self.text, rng=self.rng)
        return ConceptConnectionStrategy(self.text)
