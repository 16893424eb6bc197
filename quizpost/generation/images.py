from __future__ import annotations

import re
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from quizpost.core.statuses import QuizType

CARD_SIZE = 1080
_MARGIN = 80
_TEXT_MAIN = (255, 255, 255, 255)
_TEXT_MUTED = (225, 228, 240, 255)
_BOX_FILL = (255, 255, 255, 40)
_BOX_OUTLINE = (255, 255, 255, 200)
_MISSING_FILL = (255, 215, 0, 90)
_LETTER_FILLS = {
    "correct": (83, 141, 78, 255),
    "misplaced": (201, 180, 88, 255),
    "wrong": (120, 124, 126, 255),
}
GRADIENTS: dict[QuizType, tuple[tuple[int, int, int], tuple[int, int, int]]] = {
    QuizType.WORDLE: ((18, 18, 19), (58, 58, 60)),
    QuizType.NUMBER_SEQUENCE: ((30, 60, 114), (42, 82, 152)),
    QuizType.RHYME_TIME: ((131, 58, 180), (253, 29, 29)),
    QuizType.CONCEPT_CONNECTION: ((102, 126, 234), (118, 75, 162)),
}
_DEFAULT_GRADIENT = ((20, 20, 30), (60, 60, 90))

_NUMBER_BOX = re.compile(r'<div class="number-box( missing)?">\s*([^<]*?)\s*</div>')
_WORD_ROW = re.compile(r'<div class="word-grid-row">((?:<div class="letter-box [a-z]+">[^<]*</div>)*)</div>')
_LETTER_BOX = re.compile(r'<div class="letter-box (correct|misplaced|wrong)">([^<]*)</div>')
_RHYME_CARD = re.compile(r'<div class="rhyme-card( missing)?">\s*<p class="rhyme-text">([^<]*)</p>')
_CONCEPT_TEXT = re.compile(r'<span class="concept-text">([^<]*)</span>')

_FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass(slots=True)
class QuizCard:
    quiz_type: QuizType
    title: str
    subtitle: str = ""
    branding_text: str = ""
    variables: dict[str, object] = field(default_factory=dict)


def _font(*, size: int, bold: bool) -> _FontType:
    candidates = [
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf")
        if bold
        else Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf")
        if bold
        else Path("/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf"),
    ]
    for path in candidates:
        if path.exists():
            return ImageFont.truetype(str(path), size=size)
    return ImageFont.load_default()


def _text_width(draw: ImageDraw.ImageDraw, text: str, font: _FontType) -> int:
    if not text:
        return 0
    left, _, right, _ = draw.textbbox((0, 0), text, font=font)
    return int(right - left)


def _wrap(draw: ImageDraw.ImageDraw, text: str, font: _FontType, max_width: int) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        trial = f"{current} {word}".strip()
        if current and _text_width(draw, trial, font) > max_width:
            lines.append(current)
            current = word
        else:
            current = trial
    if current:
        lines.append(current)
    return lines


def _draw_centered_lines(
    draw: ImageDraw.ImageDraw,
    *,
    text: str,
    y: int,
    font: _FontType,
    fill: tuple[int, int, int, int],
    line_gap: int = 12,
    max_lines: int = 3,
) -> int:
    for line in _wrap(draw, text, font, CARD_SIZE - 2 * _MARGIN)[:max_lines]:
        x = int((CARD_SIZE - _text_width(draw, line, font)) / 2)
        draw.text((x, y), line, font=font, fill=fill)
        y += int(draw.textbbox((0, 0), line, font=font)[3]) + line_gap
    return y


def _gradient_background(quiz_type: QuizType) -> Image.Image:
    top, bottom = GRADIENTS.get(quiz_type, _DEFAULT_GRADIENT)
    image = Image.new("RGBA", (CARD_SIZE, CARD_SIZE), top + (255,))
    draw = ImageDraw.Draw(image)
    for y in range(CARD_SIZE):
        ratio = y / (CARD_SIZE - 1)
        color = tuple(int(top[idx] * (1.0 - ratio) + bottom[idx] * ratio) for idx in range(3))
        draw.line(((0, y), (CARD_SIZE, y)), fill=color + (255,))
    return image


def _draw_box_row(
    draw: ImageDraw.ImageDraw,
    *,
    items: list[tuple[str, tuple[int, int, int, int]]],
    y: int,
    box_size: int,
    gap: int,
    font: _FontType,
) -> int:
    if not items:
        return y
    count = len(items)
    available = CARD_SIZE - 2 * _MARGIN
    size = min(box_size, int((available - gap * (count - 1)) / count))
    left = int((CARD_SIZE - (size * count + gap * (count - 1))) / 2)
    for idx, (label, fill) in enumerate(items):
        x0 = left + idx * (size + gap)
        draw.rounded_rectangle((x0, y, x0 + size, y + size), radius=16, fill=fill, outline=_BOX_OUTLINE, width=3)
        text_x = x0 + int((size - _text_width(draw, label, font)) / 2)
        bbox = draw.textbbox((0, 0), label, font=font)
        text_y = y + int((size - (bbox[3] - bbox[1])) / 2) - bbox[1]
        draw.text((text_x, text_y), label, font=font, fill=_TEXT_MAIN)
    return y + size


def _draw_body(draw: ImageDraw.ImageDraw, card: QuizCard, *, top: int) -> None:
    variables = card.variables
    if card.quiz_type is QuizType.NUMBER_SEQUENCE:
        boxes = _NUMBER_BOX.findall(str(variables.get("sequence", "")))
        items = [(value, _MISSING_FILL if missing else _BOX_FILL) for missing, value in boxes]
        _draw_box_row(draw, items=items, y=top + 120, box_size=140, gap=20, font=_font(size=56, bold=True))
        return

    if card.quiz_type is QuizType.WORDLE:
        y = top + 20
        letter_font = _font(size=52, bold=True)
        for row in _WORD_ROW.findall(str(variables.get("wordGrid", ""))):
            items = [(letter, _LETTER_FILLS[kind]) for kind, letter in _LETTER_BOX.findall(row)]
            y = _draw_box_row(draw, items=items, y=y, box_size=104, gap=14, font=letter_font) + 24
        legend_font = _font(size=26, bold=False)
        for key in ("correctHint", "misplacedHint", "wrongHint"):
            text = str(variables.get(key) or "")
            if text:
                y = _draw_centered_lines(draw, text=text, y=y + 4, font=legend_font, fill=_TEXT_MUTED, max_lines=1)
        return

    if card.quiz_type is QuizType.RHYME_TIME:
        cards = _RHYME_CARD.findall(str(variables.get("rhymeGrid", "")))
        items = [(word.strip(), _MISSING_FILL if missing else _BOX_FILL) for missing, word in cards]
        _draw_box_row(draw, items=items, y=top + 80, box_size=380, gap=60, font=_font(size=60, bold=True))
        return

    concepts = _CONCEPT_TEXT.findall(str(variables.get("conceptsGrid", "")))
    concept_font = _font(size=44, bold=True)
    for row_start in range(0, len(concepts), 2):
        row = [(concept.strip(), _BOX_FILL) for concept in concepts[row_start : row_start + 2]]
        _draw_box_row(draw, items=row, y=top + 40 + (row_start // 2) * 300, box_size=280, gap=60, font=concept_font)


def render_quiz_card_png(card: QuizCard) -> bytes:
    image = _gradient_background(card.quiz_type)
    draw = ImageDraw.Draw(image)

    y = _draw_centered_lines(draw, text=card.title, y=_MARGIN, font=_font(size=64, bold=True), fill=_TEXT_MAIN)
    if card.subtitle:
        y = _draw_centered_lines(
            draw,
            text=card.subtitle,
            y=y + 16,
            font=_font(size=34, bold=False),
            fill=_TEXT_MUTED,
            max_lines=2,
        )
    _draw_body(draw, card, top=y + 40)

    if card.branding_text:
        branding_font = _font(size=30, bold=False)
        x = int((CARD_SIZE - _text_width(draw, card.branding_text, branding_font)) / 2)
        draw.text((x, CARD_SIZE - _MARGIN - 20), card.branding_text, font=branding_font, fill=_TEXT_MUTED)

    buffer = BytesIO()
    image.convert("RGB").save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()
