# worker/app/errors.py
"""
Classified failures of the analysis pipeline.

Only ValidationError, ImageReadError, ConfigurationError and ExhaustedRetries
ever cross the pipeline boundary. The RetryableFailure family is raised by a
single model attempt and consumed by the retry loop.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from worker.app.messages import message
from worker.app.models import Language


class AnalysisError(Exception):
    kind = "analysis_error"
    message_key = "exhausted"

    def __init__(self, detail: str = "", **fields: Any):
        super().__init__(detail or self.kind)
        self.detail = detail
        self.fields: Dict[str, Any] = fields

    def message_for(self, language: Language | str) -> str:
        return message(self.message_key, language, detail=self.detail, **self.fields)


class ValidationError(AnalysisError):
    kind = "validation_error"

    def __init__(self, detail: str, message_key: str, **fields: Any):
        super().__init__(detail, **fields)
        self.message_key = message_key


class ImageReadError(AnalysisError):
    kind = "read_error"
    message_key = "read_failed"


class ConfigurationError(AnalysisError):
    kind = "configuration_error"
    message_key = "configuration"


class RetryableFailure(AnalysisError):
    """A single model attempt failed; another attempt may succeed."""


class TransportFailure(RetryableFailure):
    kind = "transport_failure"
    message_key = "transport"


class ParseFailure(RetryableFailure):
    kind = "parse_failure"
    message_key = "parse"


class EmptyContentFailure(RetryableFailure):
    kind = "empty_content"
    message_key = "empty_content"


class LanguageMismatchFailure(RetryableFailure):
    kind = "language_mismatch"
    message_key = "language_mismatch"


class ExhaustedRetries(AnalysisError):
    kind = "analysis_failed"
    message_key = "exhausted"

    def __init__(
        self,
        language: Language | str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ):
        super().__init__(f"analysis failed after {attempts} attempt(s)")
        self.language = Language.parse(language)
        self.attempts = attempts
        self.last_error = last_error

    def __str__(self) -> str:
        return self.message_for(self.language)
