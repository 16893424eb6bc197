from __future__ import annotations

import json
import random
import re
import string
from collections import Counter
from typing import ClassVar

import structlog

from quizpost.core.languages import is_valid_word
from quizpost.core.statuses import QuizType
from quizpost.generation.errors import GenerationError, InvalidContentError
from quizpost.generation.llm import QuizTextGenerator, TextPurpose
from quizpost.generation.strategies.base import QuizStrategy
from quizpost.generation.types import GenerationContext, StrategyContent

logger = structlog.get_logger(__name__)

COMMON_LETTERS = "ESARTNLICOUP"
PLACEHOLDER_LETTERS = "QWJKXZ"
MIN_WORD_LENGTH = 4
MAX_WORD_LENGTH = 7
MAX_ATTEMPTS = 6

ENGLISH_HINTS: dict[str, str] = {
    "correctHint": "Letter is in the word and in the correct position",
    "misplacedHint": "Letter is in the word but in the wrong position",
    "wrongHint": "Letter is not in the word",
}


def letter_positions(word: str, letter: str) -> list[int]:
    return [idx for idx, char in enumerate(word) if char == letter]


class AttemptBuilder:
    def __init__(self, word: str, rng: random.Random) -> None:
        self.word = word
        self.rng = rng
        self.used: set[str] = set()
        self.remaining: list[str] = list(dict.fromkeys(word))

    def _filler(self, pool: str) -> str:
        candidates = [letter for letter in pool if letter not in self.word and letter not in self.used]
        if candidates:
            return self.rng.choice(candidates)
        for fallback_pool in (COMMON_LETTERS, PLACEHOLDER_LETTERS, string.ascii_uppercase):
            candidates = [
                letter for letter in fallback_pool if letter not in self.word and letter not in self.used
            ]
            if candidates:
                return self.rng.choice(candidates)
        return self.rng.choice(string.ascii_uppercase)

    def _fill(self, attempt: list[str], pool: str) -> str:
        for idx, slot in enumerate(attempt):
            if not slot:
                letter = self._filler(pool)
                attempt[idx] = letter
                self.used.add(letter)
        return "".join(attempt)

    def _place_misplaced(self, attempt: list[str], letter: str, *, avoid_adjacent: bool = False) -> None:
        correct = letter_positions(self.word, letter)
        size = len(self.word)
        for _ in range(size * 2):
            pos = self.rng.randrange(size)
            if attempt[pos] or pos in correct:
                continue
            if avoid_adjacent and any(abs(cp - pos) <= 1 for cp in correct):
                continue
            attempt[pos] = letter
            self.used.add(letter)
            return
        for pos in range(size):
            if not attempt[pos]:
                attempt[pos] = letter
                self.used.add(letter)
                return

    def misplaced(self) -> str:
        attempt = [""] * len(self.word)
        count = min(len(self.remaining), self.rng.randint(1, 2))
        for letter in self.remaining[:count]:
            self._place_misplaced(attempt, letter)
        return self._fill(attempt, COMMON_LETTERS)

    def mixed(self) -> str:
        size = len(self.word)
        attempt = [""] * size
        candidates = list(self.remaining)

        duplicates = [letter for letter, total in Counter(self.word).items() if total > 1]
        if duplicates:
            for pos in letter_positions(self.word, duplicates[0])[:2]:
                attempt[pos] = self.word[pos]
                self.used.add(self.word[pos])
                if self.word[pos] in self.remaining:
                    self.remaining.remove(self.word[pos])

        correct_count = min(size // 2, self.rng.randint(2, 3))
        open_positions = [pos for pos in range(size) if not attempt[pos]]
        for _ in range(correct_count):
            if not open_positions:
                break
            pos = open_positions.pop(self.rng.randrange(len(open_positions)))
            attempt[pos] = self.word[pos]
            self.used.add(self.word[pos])
            if self.word[pos] in self.remaining:
                self.remaining.remove(self.word[pos])

        if candidates:
            count = min(len(candidates), self.rng.randint(1, 2))
            for letter in candidates[:count]:
                self._place_misplaced(attempt, letter)
        return self._fill(attempt, COMMON_LETTERS)

    def final(self) -> str:
        attempt = [""] * len(self.word)
        for letter in list(self.remaining):
            self._place_misplaced(attempt, letter, avoid_adjacent=True)
        return self._fill(attempt, PLACEHOLDER_LETTERS)


def build_attempts(word: str, rng: random.Random) -> list[str]:
    builder = AttemptBuilder(word, rng)
    return [builder.misplaced(), builder.mixed(), builder.final()]


def classify_letter(letter: str, index: int, answer: str) -> str:
    if index < len(answer) and answer[index] == letter:
        return "correct"
    if letter in answer:
        return "misplaced"
    return "wrong"


def word_grid_html(attempts: list[str], answer: str) -> str:
    rows = []
    for attempt in attempts:
        boxes = "".join(
            f'<div class="letter-box {classify_letter(letter, idx, answer)}">{letter}</div>'
            for idx, letter in enumerate(attempt)
        )
        rows.append(f'<div class="word-attempt"><div class="word-grid-row">{boxes}</div></div>')
    return f'<div class="word-grid-container">{"".join(rows)}</div>'


class WordleStrategy(QuizStrategy):
    quiz_type = QuizType.WORDLE
    description = "a word guessing game"

    _hint_cache: ClassVar[dict[str, dict[str, str]]] = {"en": ENGLISH_HINTS}

    def __init__(self, text_generator: QuizTextGenerator, *, rng: random.Random | None = None) -> None:
        super().__init__(text_generator)
        self.rng = rng or random.Random()

    def validate_content(self, content: str, language: str) -> bool:
        word = content.strip().upper()
        if not MIN_WORD_LENGTH <= len(word) <= MAX_WORD_LENGTH:
            return False
        return is_valid_word(word, language)

    async def _generate_word(self, context: GenerationContext) -> str:
        word = await self.text.complete(
            TextPurpose.WORD,
            f"Generate a single common word in {self._language_name(context)} that is "
            f"{MIN_WORD_LENGTH}-{MAX_WORD_LENGTH} letters long, with no proper nouns or "
            "abbreviations. Return ONLY the word in CAPITAL LETTERS.",
            self._seed_prompt(context, "Generate a word for Wordle"),
            quiz_type=self.quiz_type,
            max_tokens=10,
            temperature=0.8,
        )
        return word.strip().strip(".").upper()

    async def color_hints(self, language: str) -> dict[str, str]:
        cached = self._hint_cache.get(language)
        if cached is not None:
            return dict(cached)
        try:
            raw = await self.text.complete(
                TextPurpose.TRANSLATION,
                "You are a professional translator. Return only a JSON object with keys "
                "correctHint, misplacedHint, wrongHint.",
                f"Translate these Wordle color hints into {language}: {json.dumps(ENGLISH_HINTS)}",
                quiz_type=self.quiz_type,
                max_tokens=150,
                temperature=0.3,
            )
            parsed = json.loads(re.sub(r"```(json)?", "", raw).strip())
            hints = {key: str(parsed.get(key) or fallback) for key, fallback in ENGLISH_HINTS.items()}
        except (GenerationError, ValueError, AttributeError):
            logger.warning("wordle_hint_translation_failed", language=language)
            return dict(ENGLISH_HINTS)
        self._hint_cache[language] = hints
        return dict(hints)

    async def generate_content(self, context: GenerationContext) -> StrategyContent:
        word = (context.content or "").strip().upper() or await self._generate_word(context)
        if not self.validate_content(word, context.language):
            raise InvalidContentError(f"invalid word for language {context.language}: {word}")

        attempts = build_attempts(word, self.rng)
        hints = await self.color_hints(context.language)
        return StrategyContent(
            answer=word,
            variables={"wordGrid": word_grid_html(attempts, word), **hints},
            metadata={
                "wordLength": str(len(word)),
                "attempts": str(len(attempts)),
                "maxAttempts": str(MAX_ATTEMPTS),
            },
        )
