"""
Recover the JSON object from a model reply.

Models are asked for bare JSON but often wrap it in prose or ```json fences.
parse_model_reply() tries a direct parse first; the span-scan path is a
best-effort fallback and is logged + counted whenever it is taken.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Tuple

from worker.app.errors import ParseFailure
from worker.app.telemetry import telemetry

log = logging.getLogger(__name__)

FENCE_RE = re.compile(r"\s*```(?:json)?\s*", re.IGNORECASE)
# visual-v1 keys that mark "the" answer object among several candidates
EXPECTED_FIELDS = ("description", "text", "tables", "analysis")
# spans handed to json.loads; keeps adversarial replies linear
MAX_CANDIDATES = 32


def strip_code_fences(text: str) -> str:
    return FENCE_RE.sub("\n", text).strip()


def _balanced_spans(text: str) -> List[Tuple[int, int]]:
    """
    (start, end) of every balanced {...} in one pass, outermost first.

    Quotes only open a string inside an object, so stray quotes in the
    surrounding prose do not hide braces. Unterminated spans are dropped.
    """
    spans: List[Tuple[int, int]] = []
    opened: List[int] = []
    in_str = False
    escaped = False
    for i, ch in enumerate(text):
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_str = False
        elif ch == '"':
            in_str = bool(opened)
        elif ch == "{":
            opened.append(i)
        elif ch == "}" and opened:
            spans.append((opened.pop(), i + 1))
    spans.sort()
    return spans


def _try_load(candidate: str) -> Optional[Any]:
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError):
        return None


def extract_json(text: str) -> Any:
    """
    Fallback extraction: strip fences, then prefer the first object carrying
    the expected fields, else the first balanced span that parses at all.
    Raises ParseFailure when nothing parses.
    """
    cleaned = strip_code_fences(text)

    first = None
    for start, end in _balanced_spans(cleaned)[:MAX_CANDIDATES]:
        obj = _try_load(cleaned[start:end])
        if obj is None:
            continue
        if isinstance(obj, dict) and all(k in obj for k in EXPECTED_FIELDS):
            return obj
        if first is None:
            first = obj

    if first is not None:
        return first
    raise ParseFailure("No JSON found in response")


def parse_model_reply(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        pass

    log.info("[extract] direct JSON parse failed, attempting extraction from text")
    telemetry.increment("fallback_extractions")
    try:
        obj = extract_json(raw)
    except ParseFailure:
        log.warning("[extract] no JSON object in reply: %.200r", raw)
        raise
    telemetry.log_json("fallback_extraction", level="info", reply_chars=len(raw))
    return obj
