# worker/app/config.py
from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve repo root: repo/ (since this file is repo/worker/app/config.py)
REPO_ENV = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """
    Central config for the worker. Uses Pydantic v2 + pydantic-settings.

    - Loads env from the repo root .env if present
    - Ignores unknown env vars (prevents CI/local crashes)
    - Case-insensitive env keys
    - Sane defaults for local dev & tests (no live model required with MODEL_PROVIDER=dev)
    - Captures the *analysis contract* knobs (limits, cache horizon, retries, schema)
    """

    model_config = SettingsConfigDict(
        env_file=str(REPO_ENV),
        extra="ignore",  # accept extra env vars (VITE_*, PORT_API, etc.)
        case_sensitive=False,  # allow GEMINI_API_KEY or gemini_api_key, etc.
    )

    # --- Remote model ---------------------------------------------------------
    MODEL_PROVIDER: str = "gemini"  # gemini|ollama|dev
    GEMINI_API_KEY: str = ""
    GEMINI_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    MODEL_NAME: str = "gemini-1.5-flash"
    OLLAMA_URL: str = "http://host.docker.internal:11434"
    OLLAMA_VISION_MODEL: str = "llava:7b"
    LLM_TEMPERATURE: float = 0.2
    LLM_MAX_TOKENS: int = 2048

    # --- Upload limits --------------------------------------------------------
    MAX_FILE_BYTES: int = 50 * 1024 * 1024  # 50 MiB hard cap
    SUPPORTED_MIME_TYPES: List[str] = ["image/jpeg", "image/png", "image/webp"]

    # --- Result cache ---------------------------------------------------------
    # One JSON file per (fingerprint, language) under CACHE_DIR.
    CACHE_DIR: str = "data/cache"
    CACHE_PREFIX: str = "ocr_cache_"
    CACHE_TTL_S: int = 7 * 24 * 60 * 60  # 7 days

    # --- Retries --------------------------------------------------------------
    MAX_ATTEMPTS: int = 3
    RETRY_BACKOFF_S: float = 1.0  # delay before retry n is RETRY_BACKOFF_S * n

    # --- Language -------------------------------------------------------------
    DEFAULT_LANGUAGE: str = "en"  # en|ja
    LANGUAGE_MIN_TEXT_LEN: int = 10  # shorter strings are not script-checked

    # --- Result schema (fixed at build time; recorded for provenance) ---------
    RESULT_SCHEMA: str = "visual-v1"

    # --- Timeouts (ms) --------------------------------------------------------
    HTTP_TIMEOUT_MS: int = 60000  # outbound model calls

    # --- Service --------------------------------------------------------------
    WORKER_AUTH_TOKEN: str = ""

    @property
    def HTTP_TIMEOUT_S(self) -> float:
        return self.HTTP_TIMEOUT_MS / 1000.0


# Singleton-style instance used by the app/tests
settings = Settings()
