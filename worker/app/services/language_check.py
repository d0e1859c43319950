"""
Script-consistency check for model output.

The model is prompted, not guaranteed, to answer in the requested language.
This is Unicode-range detection, not language identification: short strings
(prices, symbols, brand names) are skipped via a minimum length.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Optional

from worker.app.config import settings
from worker.app.errors import EmptyContentFailure, LanguageMismatchFailure
from worker.app.models import AnalysisResult, Language

log = logging.getLogger(__name__)

# CJK punctuation, hiragana, katakana, half/full-width forms, kanji, ext. A
JAPANESE_RE = re.compile(
    "[\u3000-\u303f\u3040-\u309f\u30a0-\u30ff\uff00-\uff9f\u4e00-\u9faf\u3400-\u4dbf]"
)

# Languages written in a non-Latin script; everything else is Latin-script.
SCRIPT_PATTERNS: Dict[Language, re.Pattern] = {Language.JA: JAPANESE_RE}


def has_japanese(text: str) -> bool:
    return bool(JAPANESE_RE.search(text))


def validate_language(
    result: AnalysisResult,
    language: Language | str,
    min_length: Optional[int] = None,
) -> None:
    """Raise EmptyContentFailure / LanguageMismatchFailure, else return None."""
    lang = Language.parse(language)
    if min_length is None:
        min_length = settings.LANGUAGE_MIN_TEXT_LEN

    texts = result.texts()
    if not texts:
        raise EmptyContentFailure("no text content found")

    meaningful = [t for t in texts if len(t.strip()) > min_length]
    if not meaningful:
        return

    own_script = SCRIPT_PATTERNS.get(lang)
    if own_script is not None:
        if not any(own_script.search(t) for t in meaningful):
            raise LanguageMismatchFailure(
                f"expected {lang.value} script, none found in {len(meaningful)} field(s)"
            )
        return

    for other, pattern in SCRIPT_PATTERNS.items():
        hits = [t for t in meaningful if pattern.search(t)]
        if hits:
            log.debug("[language] %s script found: %.80r", other.value, hits[0])
            raise LanguageMismatchFailure(
                f"expected {lang.value}, found {other.value} script in {len(hits)} field(s)"
            )
