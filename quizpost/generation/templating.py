from __future__ import annotations

import html as html_lib
import json
import re
from collections.abc import Mapping

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return "\n".join(stringify(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def template_placeholders(template_html: str) -> list[str]:
    return list(dict.fromkeys(_PLACEHOLDER.findall(template_html)))


def merge_variables(*sources: Mapping[str, object] | None) -> dict[str, object]:
    merged: dict[str, object] = {}
    for source in sources:
        if source:
            merged.update(source)
    return merged


def render_template(template_html: str, variables: Mapping[str, object]) -> str:
    return _PLACEHOLDER.sub(lambda match: stringify(variables.get(match.group(1))), template_html)


def build_document(
    template_html: str,
    css: str | None,
    variables: Mapping[str, object],
    *,
    title: str | None = None,
) -> str:
    body = render_template(template_html, variables)
    page_title = html_lib.escape(title or stringify(variables.get("title")) or "Quiz")
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        '<meta name="viewport" content="width=1080, height=1080">\n'
        f"<title>{page_title}</title>\n"
        "<style>\n"
        "html, body { margin: 0; padding: 0; width: 1080px; height: 1080px; overflow: hidden; }\n"
        f"{css or ''}\n"
        "</style>\n"
        "</head>\n"
        f"<body>\n{body}\n</body>\n"
        "</html>\n"
    )
