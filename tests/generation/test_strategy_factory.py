from __future__ import annotations

import pytest

from quizpost.core.statuses import QuizType
from quizpost.generation.errors import UnsupportedQuizTypeError
from quizpost.generation.strategies.concept_connection import ConceptConnectionStrategy
from quizpost.generation.strategies.factory import StrategyFactory
from quizpost.generation.strategies.number_sequence import NumberSequenceStrategy
from quizpost.generation.strategies.rhyme_time import RhymeTimeStrategy
from quizpost.generation.strategies.wordle import WordleStrategy
from tests.fakes import ScriptedTextGenerator


@pytest.mark.parametrize(
    ("quiz_type", "strategy_class"),
    [
        (QuizType.WORDLE, WordleStrategy),
        (QuizType.NUMBER_SEQUENCE, NumberSequenceStrategy),
        (QuizType.RHYME_TIME, RhymeTimeStrategy),
        (QuizType.CONCEPT_CONNECTION, ConceptConnectionStrategy),
    ],
)
def test_factory_builds_strategy_per_quiz_type(quiz_type: QuizType, strategy_class: type) -> None:
    factory = StrategyFactory(ScriptedTextGenerator())

    strategy = factory.get(quiz_type.value)

    assert isinstance(strategy, strategy_class)
    assert factory.get(quiz_type) is strategy


def test_factory_rejects_unknown_quiz_type() -> None:
    with pytest.raises(UnsupportedQuizTypeError):
        StrategyFactory(ScriptedTextGenerator()).get("CROSSWORD")
