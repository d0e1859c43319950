import json
import logging
from typing import Any, List, Optional

from worker.app.models import AnalysisResult

log = logging.getLogger(__name__)

STRING_FIELDS = ("description", "text")
LIST_FIELDS = ("graphs", "objects", "analysis")


def _coerce_text(value: Any) -> Optional[str]:
    """Primitive -> str, container -> JSON text, None -> None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value)
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        s = _coerce_text(item)
        if s is not None:
            out.append(s)
    return out


def _table_rows(value: Any) -> List[List[str]]:
    if not isinstance(value, list):
        return []
    rows = []
    for row in value:
        if not isinstance(row, list):
            continue
        rows.append([_coerce_text(cell) or "" for cell in row])
    return rows


def sanitize_result(value: Any) -> AnalysisResult:
    """
    Coerce an arbitrary parsed JSON value into an AnalysisResult.

    Total: never raises. A missing or wrong-typed field falls back to its
    empty default while correctly-typed siblings are kept. Unknown keys are
    dropped.
    """
    if not isinstance(value, dict):
        log.warning("[sanitize] expected a JSON object, got %s", type(value).__name__)
        return AnalysisResult()

    fields = {}
    for name in STRING_FIELDS:
        v = value.get(name)
        fields[name] = v if isinstance(v, str) else ""
    for name in LIST_FIELDS:
        fields[name] = _text_list(value.get(name))
    fields["tables"] = _table_rows(value.get("tables"))
    return AnalysisResult(**fields)
