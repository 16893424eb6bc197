from __future__ import annotations

import random

import pytest

from quizpost.core.statuses import QuizType
from quizpost.generation.errors import InvalidContentError
from quizpost.generation.llm import TextPurpose
from quizpost.generation.strategies.number_sequence import (
    NumberSequenceStrategy,
    SequenceType,
    format_number,
    identify_sequence_type,
    next_term,
    parse_sequence,
    sequence_html,
)
from quizpost.generation.types import GenerationContext
from tests.fakes import ScriptedTextGenerator


@pytest.mark.parametrize(
    ("sequence", "expected_type", "expected_next"),
    [
        ([2, 4, 6, 8, 10], SequenceType.ARITHMETIC, 12),
        ([3, 6, 12, 24, 48], SequenceType.GEOMETRIC, 96),
        ([1, 1, 2, 3, 5], SequenceType.FIBONACCI, 8),
        ([2, 5, 11, 20, 32], SequenceType.QUADRATIC, 47),
        ([1, 3, 9, 11, 17], SequenceType.ALTERNATING, 19),
        ([2, 4, 6, 12, 14], SequenceType.ALTERNATING, 28),
        ([2, 4, 8, 16, 32], SequenceType.POWERS, 64),
        ([1, 4, 9, 16, 25], SequenceType.SQUARE_NUMBERS, 36),
        ([2, 3, 5, 7, 11], SequenceType.PRIME_NUMBERS, 13),
    ],
)
def test_identify_and_continue_known_patterns(
    sequence: list[int],
    expected_type: SequenceType,
    expected_next: int,
) -> None:
    floats = [float(num) for num in sequence]
    sequence_type = identify_sequence_type(floats)

    assert sequence_type is expected_type
    assert next_term(floats, sequence_type) == pytest.approx(expected_next)


def test_short_sequence_is_custom_and_has_no_next_term() -> None:
    assert identify_sequence_type([1.0, 2.0]) is SequenceType.CUSTOM
    with pytest.raises(InvalidContentError):
        next_term([1.0, 2.0], SequenceType.CUSTOM)


def test_parse_sequence_rejects_non_numbers() -> None:
    assert parse_sequence(" 1, 2 ,3,, ") == [1.0, 2.0, 3.0]
    with pytest.raises(InvalidContentError):
        parse_sequence("1, two, 3")


def test_format_number_drops_trailing_zeroes() -> None:
    assert format_number(3.0) == "3"
    assert format_number(2.5) == "2.5"


def test_sequence_html_appends_missing_box() -> None:
    html = sequence_html([1.0, 2.0])
    assert html.count('class="number-box"') == 2
    assert html.endswith('<div class="number-box missing">?</div>')


def test_validate_content_requires_recognised_pattern() -> None:
    strategy = NumberSequenceStrategy(ScriptedTextGenerator())

    assert strategy.validate_content("2, 4, 6", "en") is True
    assert strategy.validate_content("1, 7, 3", "en") is False
    assert strategy.validate_content("1, 2", "en") is False
    assert strategy.validate_content("a, b, c", "en") is False


@pytest.mark.asyncio
async def test_generate_from_supplied_sequence_builds_template_variables() -> None:
    text = ScriptedTextGenerator({TextPurpose.TITLE: '"Number Fun Quiz?"'})
    strategy = NumberSequenceStrategy(text, rng=random.Random(3))

    quiz = await strategy.generate(
        GenerationContext(quiz_type=QuizType.NUMBER_SEQUENCE, content="2, 4, 6, 8, 10")
    )

    assert quiz.answer == "12"
    assert quiz.title == "Number Fun Quiz"
    assert quiz.metadata["sequenceType"] == "arithmetic"
    assert quiz.metadata["range"] == "2-10"
    assert "## Mathematical Pattern" in quiz.solution
    assert "increases by 2" in quiz.solution
    variables = quiz.template_variables()
    assert variables["title"] == "Number Fun Quiz"
    assert variables["brandingText"] == "Quiz Daily"
    assert 'number-box missing' in variables["sequence"]
    assert TextPurpose.SOLUTION not in text.purposes()


@pytest.mark.asyncio
async def test_generate_without_content_uses_random_pattern() -> None:
    strategy = NumberSequenceStrategy(ScriptedTextGenerator(), rng=random.Random(11))

    content = await strategy.generate_content(GenerationContext(quiz_type=QuizType.NUMBER_SEQUENCE))

    assert content.metadata["sequenceType"] in {member.value for member in SequenceType}
    assert content.metadata["length"] == "5"
    assert content.answer.lstrip("-").replace(".", "", 1).isdigit()
