"""
Remote-model invocation with retry.

One attempt = generate -> parse -> sanitize -> non-empty check -> language
check. Attempt-level failures are logged and retried with linear backoff;
after MAX_ATTEMPTS the caller only sees ExhaustedRetries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from worker.app.config import settings
from worker.app.errors import (
    AnalysisError,
    ConfigurationError,
    EmptyContentFailure,
    ExhaustedRetries,
    RetryableFailure,
    TransportFailure,
)
from worker.app.models import AnalysisResult, ImageInput, Language
from worker.app.prompts import prompt_for
from worker.app.services.json_extract import parse_model_reply
from worker.app.services.language_check import validate_language
from worker.app.services.sanitize import sanitize_result
from worker.app.telemetry import telemetry
from worker.app.utils.retry import linear_backoff, retry_async

log = logging.getLogger(__name__)

# (prompt, image) -> raw reply text; blocking, run off the event loop
Generator = Callable[[str, ImageInput], str]


def resolve_provider(name: Optional[str] = None) -> Generator:
    name = (name or settings.MODEL_PROVIDER or "").strip().lower()
    if name == "gemini":
        from worker.providers.llm.gemini import generate
    elif name == "ollama":
        from worker.providers.llm.ollama import generate
    elif name == "dev":
        from worker.providers.llm.dev import generate
    else:
        raise ConfigurationError(f"unknown MODEL_PROVIDER {name!r}")
    return generate


class ModelInvoker:
    def __init__(
        self,
        generate: Optional[Generator] = None,
        max_attempts: Optional[int] = None,
        backoff_s: Optional[float] = None,
        min_text_len: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._generate = generate
        self.max_attempts = max_attempts or settings.MAX_ATTEMPTS
        self.backoff_s = settings.RETRY_BACKOFF_S if backoff_s is None else backoff_s
        self.min_text_len = (
            settings.LANGUAGE_MIN_TEXT_LEN if min_text_len is None else min_text_len
        )
        self._sleep = sleep

    @property
    def generate(self) -> Generator:
        if self._generate is None:
            self._generate = resolve_provider()
        return self._generate

    async def _call_model(self, prompt: str, image: ImageInput) -> str:
        try:
            raw = await asyncio.to_thread(self.generate, prompt, image)
        except AnalysisError:
            raise
        except Exception as e:
            raise TransportFailure(f"model call failed: {e}") from e
        if not isinstance(raw, str) or not raw.strip():
            raise TransportFailure("Empty response from API")
        return raw

    async def attempt(self, image: ImageInput, language: Language) -> AnalysisResult:
        """A single try; raises a RetryableFailure subclass on any bad outcome."""
        telemetry.increment("model_attempts")
        started = time.time()
        raw = await self._call_model(prompt_for(language), image)
        log.debug("[invoke] raw reply (%d chars) in %.2fs", len(raw), time.time() - started)

        result = sanitize_result(parse_model_reply(raw))
        if result.is_empty():
            raise EmptyContentFailure("model returned no usable content")
        validate_language(result, language, self.min_text_len)
        return result

    async def invoke(self, image: ImageInput, language: Language | str) -> AnalysisResult:
        lang = Language.parse(language)

        def _log_failure(n: int, e: BaseException) -> None:
            log.warning(
                "[invoke] attempt %d/%d failed: %s: %s",
                n,
                self.max_attempts,
                getattr(e, "kind", type(e).__name__),
                e,
            )
            telemetry.log_json(
                "model_attempt_failed",
                level="warning",
                attempt=n,
                error_kind=getattr(e, "kind", type(e).__name__),
                error=str(e),
                language=lang.value,
            )

        try:
            return await retry_async(
                lambda n: self.attempt(image, lang),
                max_attempts=self.max_attempts,
                backoff=linear_backoff(self.backoff_s),
                retryable=lambda e: isinstance(e, RetryableFailure),
                sleep=self._sleep,
                on_failure=_log_failure,
            )
        except RetryableFailure as e:
            log.error("[invoke] giving up after %d attempts", self.max_attempts)
            raise ExhaustedRetries(lang, self.max_attempts, e) from e
