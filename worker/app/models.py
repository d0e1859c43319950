# worker/app/models.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class Language(str, Enum):
    EN = "en"
    JA = "ja"

    @classmethod
    def parse(cls, value: "str | Language") -> "Language":
        """Return the Language for a tag like 'en' / 'JA'; ValueError if unsupported."""
        if isinstance(value, Language):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            supported = ", ".join(lang.value for lang in cls)
            raise ValueError(
                f"unsupported language {value!r} (supported: {supported})"
            ) from None


@dataclass(frozen=True)
class ImageInput:
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


class AnalysisResult(BaseModel):
    """Canonical extraction result (schema visual-v1). Empty means 'no data'."""

    description: str = ""
    text: str = ""
    tables: List[List[str]] = Field(default_factory=list)
    graphs: List[str] = Field(default_factory=list)
    objects: List[str] = Field(default_factory=list)
    analysis: List[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.description.strip()
            or self.text.strip()
            or any(cell.strip() for row in self.tables for cell in row)
            or any(s.strip() for s in self.graphs)
            or any(s.strip() for s in self.objects)
            or any(s.strip() for s in self.analysis)
        )

    def texts(self) -> List[str]:
        """Every non-empty text value across all fields."""
        out = [self.description, self.text]
        out.extend(self.analysis)
        out.extend(self.graphs)
        out.extend(self.objects)
        out.extend(cell for row in self.tables for cell in row)
        return [t for t in out if t]


class CacheEntry(BaseModel):
    result: AnalysisResult
    timestamp: float  # epoch seconds
    language: Language


class AnalysisOutcome(BaseModel):
    result: AnalysisResult
    fingerprint: str
    language: Language
    cached: bool = False
