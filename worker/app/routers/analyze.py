# worker/app/routers/analyze.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from worker.app.dependencies.auth import require_auth
from worker.app.errors import (
    AnalysisError,
    ExhaustedRetries,
    ImageReadError,
    ValidationError,
)
from worker.app.models import AnalysisResult, Language
from worker.app.services.hasher import read_image_bytes
from worker.app.services.images import check_size
from worker.app.services.pipeline import get_pipeline

log = logging.getLogger(__name__)
router = APIRouter(tags=["analyze"])


class AnalyzeOut(BaseModel):
    ok: bool = True
    cached: bool
    fingerprint: str
    language: Language
    result: AnalysisResult


class LanguageIn(BaseModel):
    language: Language

    @field_validator("language", mode="before")
    def _normalize(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class LanguageOut(BaseModel):
    ok: bool = True
    language: Language
    changed: bool = False


def _error_response(e: AnalysisError, language: Language) -> JSONResponse:
    if isinstance(e, (ValidationError, ImageReadError)):
        status = 400
    elif isinstance(e, ExhaustedRetries):
        status = 502
    else:
        status = 500  # ConfigurationError and anything unclassified
    return JSONResponse(
        {"ok": False, "error": e.kind, "message": e.message_for(language)},
        status_code=status,
    )


@router.post("/analyze", response_model=AnalyzeOut)
async def analyze(
    file: UploadFile = File(...),
    lang: Optional[str] = Query(default=None),
    _: bool = Depends(require_auth),
):
    pipeline = get_pipeline()
    try:
        language = Language.parse(lang) if lang else pipeline.language
    except ValueError as e:
        return JSONResponse({"ok": False, "error": "invalid_language", "message": str(e)}, status_code=422)

    try:
        check_size(file.size, pipeline.max_file_bytes)
        data = await read_image_bytes(file, max_bytes=pipeline.max_file_bytes)
        outcome = await pipeline.run(data, file.content_type or "", language)
    except AnalysisError as e:
        return _error_response(e, language)

    return AnalyzeOut(
        cached=outcome.cached,
        fingerprint=outcome.fingerprint,
        language=outcome.language,
        result=outcome.result,
    )


@router.get("/language", response_model=LanguageOut)
async def get_language():
    return LanguageOut(language=get_pipeline().language)


@router.post("/language", response_model=LanguageOut)
async def set_language(body: LanguageIn, _: bool = Depends(require_auth)):
    changed = get_pipeline().set_output_language(body.language)
    return LanguageOut(language=body.language, changed=changed)


@router.delete("/cache")
async def clear_cache(_: bool = Depends(require_auth)):
    removed = get_pipeline().clear_cache()
    log.info("[cache] cleared on request (%d entries)", removed)
    return {"ok": True, "removed": removed}
