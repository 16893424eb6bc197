from __future__ import annotations

import random
import re

import structlog

from quizpost.core.languages import DEFAULT_LANGUAGE, is_valid_word
from quizpost.core.statuses import QuizType
from quizpost.generation.errors import GenerationError
from quizpost.generation.llm import QuizTextGenerator, TextPurpose
from quizpost.generation.strategies.base import QuizStrategy
from quizpost.generation.types import GenerationContext, StrategyContent

logger = structlog.get_logger(__name__)

MAX_PAIR_ATTEMPTS = 3
FALLBACK_PAIRS: dict[str, tuple[tuple[str, str], ...]] = {
    "en": (("CAT", "HAT"), ("PLAY", "DAY"), ("NIGHT", "LIGHT"), ("MOON", "SOON"), ("LAKE", "CAKE")),
    "fr": (("CHAT", "RAT"), ("JOUR", "TOUR"), ("PAIN", "MAIN"), ("CIEL", "MIEL"), ("PORTE", "SORTE")),
    "es": (("SOL", "COL"), ("MAR", "DAR"), ("FLOR", "AMOR"), ("PAN", "DAN"), ("LUZ", "CRUZ")),
    "de": (("HAUS", "MAUS"), ("WELT", "GELD"), ("NACHT", "MACHT"), ("HAND", "LAND"), ("BILD", "WILD")),
    "it": (("AMORE", "CUORE"), ("SOLE", "MOLE"), ("GATTO", "FATTO"), ("VITA", "DITA"), ("MARE", "FARE")),
    "pt": (("MAR", "LAR"), ("SOL", "VOL"), ("PAZ", "GAZ"), ("FIM", "SIM"), ("MÃO", "PÃO")),
    "nl": (("HUIS", "MUIS"), ("LAND", "ZAND"), ("DAG", "VLAG"), ("BOEK", "HOEK"), ("KAT", "RAT")),
}
POSITIVE_ANSWER = re.compile(r"^(true|yes|oui|si|ja|correct|vrai|verdadero|wahr)$", re.IGNORECASE)
_PUNCTUATION = re.compile(r"[.,!?;:'\"()]")


def clean_word(raw: str) -> str:
    return _PUNCTUATION.sub("", raw.strip()).upper()


def rhyme_grid_html(first: str, second: str, *, show_first: bool) -> str:
    shown = '<div class="rhyme-card"><p class="rhyme-text">{}</p></div>'
    hidden = '<div class="rhyme-card missing"><p class="rhyme-text">?</p></div>'
    if show_first:
        return shown.format(first) + hidden
    return hidden + shown.format(second)


class RhymeTimeStrategy(QuizStrategy):
    quiz_type = QuizType.RHYME_TIME
    description = "rhyming word pair"

    def __init__(self, text_generator: QuizTextGenerator, *, rng: random.Random | None = None) -> None:
        super().__init__(text_generator)
        self.rng = rng or random.Random()

    def validate_content(self, content: str, language: str) -> bool:
        cleaned = clean_word(content)
        if not cleaned or len(cleaned.split()) != 1:
            return False
        return is_valid_word(cleaned, language)

    async def _attempt_pair(self, context: GenerationContext) -> tuple[str, str] | None:
        language_name = self._language_name(context)
        first = clean_word(
            await self.text.complete(
                TextPurpose.WORD,
                f"Generate a single simple, common word in {language_name} with 1-2 syllables "
                "and clear rhyming possibilities. Return ONLY the word in CAPITAL LETTERS.",
                self._seed_prompt(context, "Generate first rhyming word"),
                quiz_type=self.quiz_type,
                max_tokens=10,
                temperature=0.8,
            )
        )
        if not self.validate_content(first, context.language):
            logger.info("rhyme_word_rejected", word=first, position="first")
            return None

        second = clean_word(
            await self.text.complete(
                TextPurpose.WORD,
                f'Generate a single word in {language_name} that perfectly rhymes with "{first}" '
                "and is a different word. Return ONLY the word in CAPITAL LETTERS.",
                f"Generate a word that rhymes with {first}",
                quiz_type=self.quiz_type,
                max_tokens=10,
                temperature=0.8,
            )
        )
        if not self.validate_content(second, context.language):
            logger.info("rhyme_word_rejected", word=second, position="second")
            return None
        if first.lower() == second.lower():
            return None

        if context.language == DEFAULT_LANGUAGE:
            try:
                verdict = await self.text.complete(
                    TextPurpose.RHYME_CHECK,
                    f'Do these words perfectly rhyme: "{first}" and "{second}"? '
                    'Return ONLY "true" or "false".',
                    f'Do "{first}" and "{second}" rhyme?',
                    quiz_type=self.quiz_type,
                    max_tokens=10,
                    temperature=0.1,
                )
            except GenerationError:
                logger.warning("rhyme_verification_unavailable", first=first, second=second)
            else:
                if not POSITIVE_ANSWER.match(verdict.strip()):
                    return None
        return first, second

    def fallback_pair(self, language: str) -> tuple[str, str]:
        pairs = FALLBACK_PAIRS.get(language, FALLBACK_PAIRS[DEFAULT_LANGUAGE])
        return self.rng.choice(pairs)

    async def generate_content(self, context: GenerationContext) -> StrategyContent:
        pair: tuple[str, str] | None = None
        for attempt in range(1, MAX_PAIR_ATTEMPTS + 1):
            try:
                pair = await self._attempt_pair(context)
            except GenerationError as exc:
                logger.warning("rhyme_pair_attempt_failed", attempt=attempt, error=str(exc))
                pair = None
            if pair is not None:
                break

        source = "generated"
        if pair is None:
            pair = self.fallback_pair(context.language)
            source = "fallback"
            logger.info("rhyme_fallback_pair_used", language=context.language)

        first, second = pair
        return StrategyContent(
            answer=f"{first}-{second}",
            variables={"rhymeGrid": rhyme_grid_html(first, second, show_first=self.rng.random() > 0.5)},
            metadata={"source": source},
        )

    async def generate_hint(self, context: GenerationContext, content: StrategyContent) -> str:
        return await self.text.complete(
            TextPurpose.HINT,
            f"Create a clever hint in {self._language_name(context)} that suggests both rhyming "
            "words without stating them, in a single sentence.",
            self._seed_prompt(context, "Generate a hint for rhyming words"),
            quiz_type=self.quiz_type,
            max_tokens=100,
            temperature=0.8,
        )

    async def generate_solution(self, context: GenerationContext, content: StrategyContent) -> str:
        first, _, second = content.answer.partition("-")
        try:
            examples = await self.text.complete(
                TextPurpose.RHYME_EXAMPLES,
                f'Generate 3-5 common words in {self._language_name(context)} that rhyme with "{first}". '
                "Return them as a comma-separated list.",
                f"Generate words that rhyme with {first}",
                quiz_type=self.quiz_type,
                max_tokens=50,
            )
        except GenerationError:
            examples = "Unable to generate additional rhyming examples."
        return (
            "## Rhyming Pair\n\n"
            f"The correct rhyming pair is: **{first}** and **{second}**\n\n"
            "## Explanation\n\n"
            "These words share the same ending sound pattern, creating a perfect rhyme.\n\n"
            "## Examples of Similar Rhymes\n\n"
            f"{examples}\n"
        )
