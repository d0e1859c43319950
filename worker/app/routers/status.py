# worker/app/routers/status.py
from __future__ import annotations

import time

import requests
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from worker.app.config import settings
from worker.app.services.pipeline import get_pipeline
from worker.app.telemetry import telemetry

# Keep router path exactly as-is for compatibility
router = APIRouter()

# Module-level memoization for Ollama reachability (15s cache)
_ollama_cache: tuple = (0.0, False)


def _ollama_reachable() -> bool:
    """
    Check if Ollama is reachable with 2s timeout, memoized for 15s.
    """
    global _ollama_cache
    now = time.time()
    last_ts, last_bool = _ollama_cache

    # Return cached value if within 15s
    if now - last_ts < 15.0:
        return last_bool

    try:
        resp = requests.get(f"{settings.OLLAMA_URL}/api/tags", timeout=2.0)
        reachable = resp.status_code == 200
    except Exception:
        reachable = False

    _ollama_cache = (now, reachable)
    return reachable


def _model_status() -> dict:
    provider = (settings.MODEL_PROVIDER or "").lower()
    if provider == "gemini":
        return {
            "provider": "gemini",
            "model": settings.MODEL_NAME,
            "configured": len(settings.GEMINI_API_KEY or "") >= 30,
        }
    if provider == "ollama":
        return {
            "provider": "ollama",
            "model": settings.OLLAMA_VISION_MODEL,
            "reachable": _ollama_reachable(),
        }
    return {"provider": provider or "none", "model": ""}


@router.get("/health")
async def health():
    return {"ok": True}


@router.get("/status")
async def status():
    """
    Returns service health, current language, cache and model info
    plus telemetry counters.
    """
    pipeline = get_pipeline()
    data = {
        "ok": True,
        "language": pipeline.language.value,
        "result_schema": settings.RESULT_SCHEMA,
        "limits": {
            "max_file_bytes": pipeline.max_file_bytes,
            "mime_types": pipeline.mime_types,
            "max_attempts": pipeline.invoker.max_attempts,
        },
        "cache": pipeline.cache.stats(),
        "model": _model_status(),
        **telemetry.get_stats(),
    }
    return JSONResponse(data)
