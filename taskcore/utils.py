from __future__ import annotations

import math
from typing import Mapping


def translate(translations: Mapping[str, Mapping[str, str]], language: str, key: str, fallback_language: str = "en") -> str:
    """Look ``key`` up in the ``language`` table, then in the fallback table, then return it unchanged."""
    for lang in (language, fallback_language):
        table = translations.get(lang)
        if isinstance(table, Mapping) and key in table:
            return table[key]
    return key


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded away from zero."""
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))
