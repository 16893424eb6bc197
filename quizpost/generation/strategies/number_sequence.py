from __future__ import annotations

import math
import random
from enum import StrEnum

from quizpost.core.statuses import QuizType
from quizpost.generation.errors import InvalidContentError
from quizpost.generation.llm import QuizTextGenerator
from quizpost.generation.strategies.base import QuizStrategy
from quizpost.generation.types import GenerationContext, StrategyContent

PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71)
TERM_COUNT = 5
EPSILON = 0.0001


class SequenceType(StrEnum):
    ARITHMETIC = "arithmetic"
    GEOMETRIC = "geometric"
    FIBONACCI = "fibonacci"
    QUADRATIC = "quadratic"
    ALTERNATING = "alternating"
    POWERS = "powers"
    SQUARE_NUMBERS = "square_numbers"
    PRIME_NUMBERS = "prime_numbers"
    CUSTOM = "custom"


SEQUENCE_WEIGHTS: tuple[tuple[SequenceType, int], ...] = (
    (SequenceType.ARITHMETIC, 10),
    (SequenceType.GEOMETRIC, 15),
    (SequenceType.FIBONACCI, 15),
    (SequenceType.QUADRATIC, 20),
    (SequenceType.ALTERNATING, 15),
    (SequenceType.POWERS, 10),
    (SequenceType.SQUARE_NUMBERS, 10),
    (SequenceType.PRIME_NUMBERS, 5),
)


def _close(left: float, right: float, tolerance: float = EPSILON) -> bool:
    return abs(left - right) < tolerance


def _all_equal(values: list[float]) -> bool:
    return bool(values) and all(_close(value, values[0]) for value in values)


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def parse_sequence(content: str) -> list[float]:
    terms: list[float] = []
    for raw in content.split(","):
        token = raw.strip()
        if not token:
            continue
        try:
            terms.append(float(token))
        except ValueError as exc:
            raise InvalidContentError(f"invalid number: {token}") from exc
    return terms


def identify_sequence_type(sequence: list[float]) -> SequenceType:
    if len(sequence) < 3:
        return SequenceType.CUSTOM

    if all(_close(num, (idx + 1) ** 2, 0.001) for idx, num in enumerate(sequence)):
        return SequenceType.SQUARE_NUMBERS

    if all(num in PRIMES for num in sequence):
        start = PRIMES.index(int(sequence[0]))
        window = PRIMES[start : start + len(sequence)]
        if len(window) == len(sequence) and all(num == prime for num, prime in zip(sequence, window)):
            return SequenceType.PRIME_NUMBERS

    for base in range(2, 6):
        if all(_close(num, base ** (idx + 1), 0.001) for idx, num in enumerate(sequence)):
            return SequenceType.POWERS
    for power in (2, 3):
        if all(_close(num, (idx + 1) ** power, 0.001) for idx, num in enumerate(sequence)):
            return SequenceType.POWERS

    differences = [b - a for a, b in zip(sequence, sequence[1:])]
    if _all_equal(differences):
        return SequenceType.ARITHMETIC

    if all(num != 0 for num in sequence[:-1]):
        ratios = [b / a for a, b in zip(sequence, sequence[1:])]
        if _all_equal(ratios):
            return SequenceType.GEOMETRIC

    if all(_close(sequence[idx + 2], sequence[idx] + sequence[idx + 1]) for idx in range(len(sequence) - 2)):
        return SequenceType.FIBONACCI

    if len(sequence) >= 4:
        second_differences = [b - a for a, b in zip(differences, differences[1:])]
        if _all_equal(second_differences):
            return SequenceType.QUADRATIC

    if len(sequence) >= 5:
        even_diffs = differences[0::2]
        odd_diffs = differences[1::2]
        if _all_equal(even_diffs) and _all_equal(odd_diffs) and not _close(even_diffs[0], odd_diffs[0]):
            return SequenceType.ALTERNATING

        if all(sequence[idx] != 0 for idx in range(0, len(sequence) - 1, 2)):
            multiplied = [sequence[idx + 1] / sequence[idx] for idx in range(0, len(sequence) - 1, 2)]
            added = [sequence[idx + 1] - sequence[idx] for idx in range(1, len(sequence) - 1, 2)]
            if _all_equal(multiplied) and _all_equal(added):
                return SequenceType.ALTERNATING

    return SequenceType.CUSTOM


def next_term(sequence: list[float], sequence_type: SequenceType) -> float:
    last = sequence[-1]
    if sequence_type is SequenceType.ARITHMETIC:
        return last + (sequence[1] - sequence[0])
    if sequence_type is SequenceType.GEOMETRIC:
        return last * (sequence[1] / sequence[0])
    if sequence_type is SequenceType.FIBONACCI:
        return last + sequence[-2]
    if sequence_type is SequenceType.QUADRATIC:
        differences = [b - a for a, b in zip(sequence, sequence[1:])]
        return last + differences[-1] + (differences[1] - differences[0])
    if sequence_type is SequenceType.ALTERNATING:
        if len(sequence) < 5:
            return last + (sequence[1] - sequence[0])
        even_diffs = [sequence[idx + 1] - sequence[idx] for idx in range(0, len(sequence) - 1, 2)]
        odd_diffs = [sequence[idx + 1] - sequence[idx] for idx in range(1, len(sequence) - 1, 2)]
        if _all_equal(even_diffs) and _all_equal(odd_diffs):
            step = even_diffs[0] if (len(sequence) - 1) % 2 == 0 else odd_diffs[0]
            return last + step
        ratio = sequence[1] / sequence[0]
        added = sequence[2] - sequence[1]
        return last * ratio if (len(sequence) - 1) % 2 == 0 else last + added
    if sequence_type is SequenceType.POWERS:
        for base in range(2, 6):
            if all(_close(num, base ** (idx + 1), 0.001) for idx, num in enumerate(sequence)):
                return float(base ** (len(sequence) + 1))
        for power in (2, 3):
            if all(_close(num, (idx + 1) ** power, 0.001) for idx, num in enumerate(sequence)):
                return float((len(sequence) + 1) ** power)
        return last * 2
    if sequence_type is SequenceType.SQUARE_NUMBERS:
        return (math.sqrt(last) + 1) ** 2
    if sequence_type is SequenceType.PRIME_NUMBERS:
        if last in PRIMES and PRIMES.index(int(last)) < len(PRIMES) - 1:
            return float(PRIMES[PRIMES.index(int(last)) + 1])
        return last + 2
    raise InvalidContentError("cannot compute the next term of a custom sequence")


def sequence_html(sequence: list[float]) -> str:
    boxes = "".join(f'<div class="number-box">{format_number(num)}</div>' for num in sequence)
    return boxes + '<div class="number-box missing">?</div>'


def choose_sequence_type(rng: random.Random) -> SequenceType:
    total = sum(weight for _, weight in SEQUENCE_WEIGHTS)
    pick = rng.randrange(total)
    for sequence_type, weight in SEQUENCE_WEIGHTS:
        if pick < weight:
            return sequence_type
        pick -= weight
    return SEQUENCE_WEIGHTS[0][0]


def build_sequence(sequence_type: SequenceType, rng: random.Random) -> tuple[list[int], int]:
    if sequence_type is SequenceType.ARITHMETIC:
        start = rng.randint(1, 10)
        difference = rng.randint(1, 5)
        terms = [start + difference * idx for idx in range(TERM_COUNT)]
        return terms, terms[-1] + difference

    if sequence_type is SequenceType.GEOMETRIC:
        start = rng.randint(1, 5)
        ratio = rng.randint(2, 4)
        terms = [start * ratio**idx for idx in range(TERM_COUNT)]
        return terms, terms[-1] * ratio

    if sequence_type is SequenceType.FIBONACCI:
        first = rng.randint(1, 5)
        second = first + rng.randint(0, 4)
        terms = [first, second]
        while len(terms) < TERM_COUNT:
            terms.append(terms[-1] + terms[-2])
        return terms, terms[-1] + terms[-2]

    if sequence_type is SequenceType.QUADRATIC:
        coefficient = rng.randint(1, 3)
        offset = rng.randint(0, 4)
        terms = [coefficient * n * n + offset for n in range(1, TERM_COUNT + 1)]
        return terms, coefficient * 36 + offset

    if sequence_type is SequenceType.ALTERNATING:
        terms: list[int]
        if rng.randrange(2) == 0:
            start = rng.randint(1, 10)
            first_step = rng.randint(1, 5)
            second_step = rng.randint(6, 10)
            terms = [start]
            for idx in range(1, TERM_COUNT + 1):
                terms.append(terms[-1] + (first_step if idx % 2 == 1 else second_step))
        else:
            start = rng.randint(2, 6)
            multiplier = rng.randint(2, 3)
            addend = rng.randint(2, 4)
            terms = [start]
            for idx in range(1, TERM_COUNT + 1):
                terms.append(terms[-1] * multiplier if idx % 2 == 1 else terms[-1] + addend)
        return terms[:TERM_COUNT], terms[TERM_COUNT]

    if sequence_type is SequenceType.POWERS:
        if rng.randrange(2) == 0:
            base = rng.randint(2, 4)
            return [base**n for n in range(1, TERM_COUNT + 1)], base ** (TERM_COUNT + 1)
        power = rng.randint(2, 3)
        return [n**power for n in range(1, TERM_COUNT + 1)], (TERM_COUNT + 1) ** power

    if sequence_type is SequenceType.SQUARE_NUMBERS:
        return [n * n for n in range(1, TERM_COUNT + 1)], 36

    if sequence_type is SequenceType.PRIME_NUMBERS:
        start = rng.randrange(8)
        return list(PRIMES[start : start + TERM_COUNT]), PRIMES[start + TERM_COUNT]

    return [2, 4, 6, 8, 10], 12


def explain_sequence(sequence: list[float], sequence_type: SequenceType, answer: str) -> str:
    shown = ", ".join(format_number(num) for num in sequence)
    last = format_number(sequence[-1]) if sequence else ""
    if sequence_type is SequenceType.ARITHMETIC:
        difference = sequence[1] - sequence[0]
        formula = f"a_n = a_1 + (n-1)d where d = {format_number(difference)}"
        verb = "increases" if difference > 0 else "decreases"
        explanation = (
            f"Each number {verb} by {format_number(abs(difference))}, "
            f"so the next number is {answer}."
        )
    elif sequence_type is SequenceType.GEOMETRIC:
        ratio = format_number(sequence[1] / sequence[0])
        formula = f"a_n = a_1 × r^(n-1) where r = {ratio}"
        explanation = f"Each number is multiplied by {ratio}: {last} × {ratio} = {answer}."
    elif sequence_type is SequenceType.FIBONACCI:
        formula = "a_n = a_(n-1) + a_(n-2) for n ≥ 3"
        explanation = (
            "Each number is the sum of the two previous numbers: "
            f"{format_number(sequence[-2])} + {last} = {answer}."
        )
    elif sequence_type is SequenceType.QUADRATIC:
        formula = "a_n = an² + bn + c"
        explanation = (
            "The differences between consecutive terms grow by a constant amount, "
            f"revealing a quadratic pattern. The next number is {answer}."
        )
    elif sequence_type is SequenceType.ALTERNATING:
        formula = "a_n alternates between two operations"
        explanation = f"The sequence alternates between two operations. Applying the next one gives {answer}."
    elif sequence_type is SequenceType.POWERS:
        formula = "a_n follows a pattern of powers"
        explanation = f"Each term is a power in a regular progression. Continuing it gives {answer}."
    elif sequence_type is SequenceType.SQUARE_NUMBERS:
        formula = "a_n = n²"
        explanation = f"The sequence lists the square numbers, so the next term is {answer}."
    elif sequence_type is SequenceType.PRIME_NUMBERS:
        formula = "a_n = nth prime number"
        explanation = f"The sequence lists consecutive prime numbers, so the next prime is {answer}."
    else:
        formula = "custom pattern"
        explanation = f"The next number is {answer}."
    return (
        f"## Mathematical Pattern\n\n{formula}\n\n"
        f"## Explanation\n\n{explanation}\n\n"
        f"## Verification\n\nSequence: {shown}, ?\n\nNext number: {answer}\n"
    )


class NumberSequenceStrategy(QuizStrategy):
    quiz_type = QuizType.NUMBER_SEQUENCE
    description = "number sequence pattern"

    def __init__(self, text_generator: QuizTextGenerator, *, rng: random.Random | None = None) -> None:
        super().__init__(text_generator)
        self.rng = rng or random.Random()

    async def generate_content(self, context: GenerationContext) -> StrategyContent:
        if context.content and context.content.strip():
            sequence = parse_sequence(context.content)
            sequence_type = identify_sequence_type(sequence)
            answer = next_term(sequence, sequence_type)
        else:
            sequence_type = choose_sequence_type(self.rng)
            terms, next_value = build_sequence(sequence_type, self.rng)
            sequence = [float(term) for term in terms]
            answer = float(next_value)

        return StrategyContent(
            answer=format_number(answer),
            variables={"sequence": sequence_html(sequence)},
            metadata={
                "sequenceType": sequence_type.value,
                "sequence": ",".join(format_number(num) for num in sequence),
                "length": str(len(sequence)),
                "range": f"{format_number(min(sequence))}-{format_number(max(sequence))}",
            },
        )

    def validate_content(self, content: str, language: str) -> bool:
        try:
            sequence = parse_sequence(content)
        except InvalidContentError:
            return False
        if len(sequence) < 3:
            return False
        return identify_sequence_type(sequence) is not SequenceType.CUSTOM

    async def generate_solution(self, context: GenerationContext, content: StrategyContent) -> str:
        sequence_type = SequenceType(content.metadata.get("sequenceType", SequenceType.CUSTOM))
        sequence = parse_sequence(content.metadata.get("sequence", ""))
        if sequence_type is SequenceType.CUSTOM or len(sequence) < 2:
            return await super().generate_solution(context, content)
        return explain_sequence(sequence, sequence_type, content.answer)
