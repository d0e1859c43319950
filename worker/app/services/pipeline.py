"""
Analysis pipeline: validate -> fingerprint -> cache -> invoke -> store.

Cache reads and writes touch the filesystem and run in a worker thread.

The output language is resolved once per call (explicit argument, else the
pipeline's current language at entry) and threaded through every step, so a
language change only affects calls that start after it.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from functools import lru_cache
from typing import Iterable, Optional

from worker.app.config import settings
from worker.app.errors import AnalysisError
from worker.app.models import AnalysisOutcome, AnalysisResult, ImageInput, Language
from worker.app.services.hasher import fingerprint
from worker.app.services.images import validate_image
from worker.app.services.model_invoker import ModelInvoker
from worker.app.services.result_cache import ResultCache
from worker.app.telemetry import telemetry

log = logging.getLogger(__name__)


class AnalysisPipeline:
    def __init__(
        self,
        cache: Optional[ResultCache] = None,
        invoker: Optional[ModelInvoker] = None,
        language: Language | str | None = None,
        max_file_bytes: Optional[int] = None,
        mime_types: Optional[Iterable[str]] = None,
    ):
        self.cache = cache or ResultCache()
        self.invoker = invoker or ModelInvoker()
        self._language = Language.parse(language or settings.DEFAULT_LANGUAGE)
        self._language_lock = threading.Lock()
        self.max_file_bytes = (
            settings.MAX_FILE_BYTES if max_file_bytes is None else max_file_bytes
        )
        self.mime_types = list(mime_types or settings.SUPPORTED_MIME_TYPES)

    # --- language state -------------------------------------------------------
    @property
    def language(self) -> Language:
        return self._language

    def set_output_language(self, language: Language | str) -> bool:
        """Switch the output language; clears the whole cache when it changes."""
        lang = Language.parse(language)
        with self._language_lock:
            if lang == self._language:
                return False
            previous, self._language = self._language, lang
        removed = self.cache.clear_all()
        log.info(
            "[pipeline] language %s -> %s; cleared %d cached results",
            previous.value,
            lang.value,
            removed,
        )
        telemetry.log_json(
            "language_changed",
            previous=previous.value,
            language=lang.value,
            cache_cleared=removed,
        )
        return True

    def clear_cache(self) -> int:
        return self.cache.clear_all()

    # --- analysis -------------------------------------------------------------
    async def run(
        self,
        image: bytes,
        mime_type: str,
        language: Language | str | None = None,
    ) -> AnalysisOutcome:
        lang = Language.parse(language) if language is not None else self._language
        request_id = str(uuid.uuid4())
        started = time.time()
        img = ImageInput(data=bytes(image), mime_type=mime_type)

        telemetry.log_json(
            "analyze_start",
            request_id=request_id,
            language=lang.value,
            mime=mime_type,
            size=img.size,
        )

        try:
            validate_image(img, self.max_file_bytes, self.mime_types)
            fp = fingerprint(img.data)

            cached = await asyncio.to_thread(self.cache.get, fp, lang)
            if cached is not None:
                log.info("Using cached result for image %s (%s)", fp[:12], lang.value)
                telemetry.increment("cache_hits")
                self._log_done(request_id, started, fp, lang, cached=True)
                return AnalysisOutcome(
                    result=cached, fingerprint=fp, language=lang, cached=True
                )

            telemetry.increment("cache_misses")
            log.info("No cache found for %s (%s), analyzing image...", fp[:12], lang.value)
            result = await self.invoker.invoke(img, lang)
            await asyncio.to_thread(self.cache.put, fp, lang, result)
        except AnalysisError as e:
            telemetry.increment("analyze_failed")
            telemetry.set_error(f"{e.kind}: {e.detail or e}")
            telemetry.log_json(
                "analyze_failure",
                level="error",
                request_id=request_id,
                language=lang.value,
                duration_ms=int((time.time() - started) * 1000),
                status="error",
                error_kind=e.kind,
                error=e.detail or str(e),
            )
            log.error("Error analyzing image: %s: %s", e.kind, e.detail or e)
            raise

        self._log_done(request_id, started, fp, lang, cached=False)
        return AnalysisOutcome(result=result, fingerprint=fp, language=lang, cached=False)

    async def analyze(
        self,
        image: bytes,
        mime_type: str,
        language: Language | str | None = None,
    ) -> AnalysisResult:
        return (await self.run(image, mime_type, language)).result

    def _log_done(
        self, request_id: str, started: float, fp: str, lang: Language, cached: bool
    ) -> None:
        telemetry.increment("analyze_total")
        telemetry.log_json(
            "analyze_success",
            request_id=request_id,
            fingerprint=fp,
            language=lang.value,
            cached=cached,
            duration_ms=int((time.time() - started) * 1000),
            status="success",
        )


@lru_cache(maxsize=1)
def get_pipeline() -> AnalysisPipeline:
    """Process-wide pipeline used by the HTTP routes and the CLI."""
    return AnalysisPipeline()
