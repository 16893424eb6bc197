from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LanguageSpec:
    code: str
    name: str
    character_set: re.Pattern[str]


LANGUAGES: dict[str, LanguageSpec] = {
    "en": LanguageSpec("en", "English", re.compile(r"^[a-zA-Z]+$")),
    "es": LanguageSpec("es", "Spanish", re.compile(r"^[a-záéíóúüñA-ZÁÉÍÓÚÜÑ]+$")),
    "fr": LanguageSpec("fr", "French", re.compile(r"^[a-zàâäéèêëîïôöùûüÿçA-ZÀÂÄÉÈÊËÎÏÔÖÙÛÜŸÇ]+$")),
    "de": LanguageSpec("de", "German", re.compile(r"^[a-zäöüßA-ZÄÖÜ]+$")),
    "it": LanguageSpec("it", "Italian", re.compile(r"^[a-zàèéìíîòóùúA-ZÀÈÉÌÍÎÒÓÙÚ]+$")),
    "pt": LanguageSpec("pt", "Portuguese", re.compile(r"^[a-záâãàéêíóôõúüçA-ZÁÂÃÀÉÊÍÓÔÕÚÜÇ]+$")),
    "nl": LanguageSpec("nl", "Dutch", re.compile(r"^[a-záéíóúA-ZÁÉÍÓÚ]+$")),
}
SUPPORTED_LANGUAGES = tuple(LANGUAGES)
DEFAULT_LANGUAGE = "en"


def get_language(code: str | None) -> LanguageSpec:
    return LANGUAGES.get((code or DEFAULT_LANGUAGE).lower(), LANGUAGES[DEFAULT_LANGUAGE])


def is_valid_word(word: str, language: str) -> bool:
    candidate = word.strip()
    if not candidate:
        return False
    return get_language(language).character_set.match(candidate) is not None
