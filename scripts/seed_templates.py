from __future__ import annotations

import argparse
import asyncio

from quizpost.catalog import service as catalog_service
from quizpost.core.statuses import QuizType

BASE_CSS = """
body { margin: 0; font-family: 'Inter', sans-serif; }
.quiz-card { width: 1080px; height: 1080px; display: flex; flex-direction: column;
  align-items: center; justify-content: center; color: #fff; text-align: center; }
.quiz-title { font-size: 72px; font-weight: 800; margin: 0 60px 24px; }
.quiz-subtitle { font-size: 36px; opacity: 0.9; margin-bottom: 48px; }
.quiz-branding { position: absolute; bottom: 40px; font-size: 28px; opacity: 0.8; }
.letter-box, .number-box, .rhyme-box, .concept-card { display: inline-flex; align-items: center;
  justify-content: center; min-width: 96px; height: 96px; margin: 8px; border-radius: 16px;
  font-size: 48px; font-weight: 700; background: rgba(255, 255, 255, 0.18); }
.letter-box.correct { background: #22c55e; }
.letter-box.misplaced { background: #eab308; }
.letter-box.wrong { background: #64748b; }
.number-box.missing, .rhyme-box.hidden { border: 4px dashed #fff; background: transparent; }
.concept-card { min-width: 400px; font-size: 40px; }
"""

DEFAULT_TEMPLATES: tuple[dict[str, object], ...] = (
    {
        "name": "Classic Wordle",
        "quiz_type": QuizType.WORDLE,
        "description": "Guess the hidden word from three colored attempts.",
        "html": (
            '<div class="quiz-card" style="background: linear-gradient(135deg, #1e3a8a, #6d28d9)">'
            '<h1 class="quiz-title">{{title}}</h1><p class="quiz-subtitle">{{subtitle}}</p>'
            "{{wordGrid}}"
            '<p class="quiz-legend">{{correctHint}} · {{misplacedHint}} · {{wrongHint}}</p>'
            '<div class="quiz-branding">{{brandingText}}</div></div>'
        ),
        "variables": {"title": "", "subtitle": "", "wordGrid": "", "brandingText": ""},
    },
    {
        "name": "Number Sequence",
        "quiz_type": QuizType.NUMBER_SEQUENCE,
        "description": "Find the next number in the sequence.",
        "html": (
            '<div class="quiz-card" style="background: linear-gradient(135deg, #0f766e, #0369a1)">'
            '<h1 class="quiz-title">{{title}}</h1><p class="quiz-subtitle">{{subtitle}}</p>'
            "{{sequence}}"
            '<div class="quiz-branding">{{brandingText}}</div></div>'
        ),
        "variables": {"title": "", "subtitle": "", "sequence": "", "brandingText": ""},
    },
    {
        "name": "Rhyme Time",
        "quiz_type": QuizType.RHYME_TIME,
        "description": "Find the word that rhymes with the one shown.",
        "html": (
            '<div class="quiz-card" style="background: linear-gradient(135deg, #be185d, #f97316)">'
            '<h1 class="quiz-title">{{title}}</h1><p class="quiz-subtitle">{{subtitle}}</p>'
            "{{rhymeGrid}}"
            '<div class="quiz-branding">{{brandingText}}</div></div>'
        ),
        "variables": {"title": "", "subtitle": "", "rhymeGrid": "", "brandingText": ""},
    },
    {
        "name": "Concept Connection",
        "quiz_type": QuizType.CONCEPT_CONNECTION,
        "description": "Find the theme that connects four concepts.",
        "html": (
            '<div class="quiz-card" style="background: linear-gradient(135deg, #4338ca, #0891b2)">'
            '<h1 class="quiz-title">{{title}}</h1><p class="quiz-subtitle">{{subtitle}}</p>'
            "{{conceptsGrid}}"
            '<div class="quiz-branding">{{brandingText}}</div></div>'
        ),
        "variables": {"title": "", "subtitle": "", "conceptsGrid": "", "brandingText": ""},
    },
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the default quiz templates")
    parser.add_argument("--dry-run", action="store_true")
    return parser.parse_args()


async def _seed(*, dry_run: bool) -> int:
    existing = {(item.name, item.quiz_type) for item in await catalog_service.list_templates()}
    created = 0
    for template in DEFAULT_TEMPLATES:
        key = (str(template["name"]), str(template["quiz_type"]))
        if key in existing:
            print(f"seed_templates: skip existing name={key[0]} type={key[1]}")  # noqa: T201
            continue
        if dry_run:
            print(f"seed_templates: would create name={key[0]} type={key[1]}")  # noqa: T201
            continue
        snapshot = await catalog_service.create_template(
            name=key[0],
            html=str(template["html"]),
            quiz_type=key[1],
            css=BASE_CSS,
            variables=dict(template["variables"]),  # type: ignore[arg-type]
            description=str(template["description"]),
        )
        created += 1
        print(f"seed_templates: created id={snapshot.template_id} name={snapshot.name}")  # noqa: T201
    return created


def main() -> None:
    args = _parse_args()
    created = asyncio.run(_seed(dry_run=args.dry_run))
    print(f"seed_templates: done created={created}")  # noqa: T201


if __name__ == "__main__":
    main()
