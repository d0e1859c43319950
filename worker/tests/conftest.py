# worker/tests/conftest.py
from __future__ import annotations

# Import/bootstrap so "import worker.app" works when running pytest from repo root
import os
import sys
import tempfile
from pathlib import Path
from typing import List

import pytest

TESTS_DIR = Path(__file__).resolve().parent  # .../worker/tests
WORKER_DIR = TESTS_DIR.parent  # .../worker
REPO_ROOT = WORKER_DIR.parent  # repo root

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

# Fast, deterministic test defaults: no live model, no real key, no backoff waits.
os.environ.setdefault("MODEL_PROVIDER", "dev")
os.environ.setdefault("GEMINI_API_KEY", "")
os.environ.setdefault("RETRY_BACKOFF_S", "0")
os.environ.setdefault("WORKER_AUTH_TOKEN", "")
# Keep default cache and telemetry files out of the working directory.
_SCRATCH = tempfile.mkdtemp(prefix="img2insight-tests-")
os.environ.setdefault("CACHE_DIR", os.path.join(_SCRATCH, "cache"))
os.environ.setdefault("WORKER_LOG_DIR", os.path.join(_SCRATCH, "logs"))

from worker.app.models import ImageInput  # noqa: E402
from worker.app.services.model_invoker import ModelInvoker  # noqa: E402
from worker.app.services.pipeline import AnalysisPipeline  # noqa: E402
from worker.app.services.result_cache import ResultCache  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"fake-image-payload" * 8
CAT_REPLY = '{"description":"a cat","text":"","tables":[],"graphs":[],"objects":[],"analysis":[]}'


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedModel:
    """Stand-in for a provider: returns (or raises) scripted replies in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: List[tuple] = []

    def __call__(self, prompt: str, image: ImageInput) -> str:
        self.calls.append((prompt, image))
        reply = self.replies[min(len(self.calls), len(self.replies)) - 1]
        if isinstance(reply, BaseException):
            raise reply
        return reply


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock) -> ResultCache:
    return ResultCache(cache_dir=tmp_path / "cache", prefix="ocr_cache_", ttl_s=3600, clock=clock)


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_pipeline(cache, sleeper):
    def _make(*replies, language="en", max_file_bytes=None):
        model = ScriptedModel(*replies)
        invoker = ModelInvoker(
            generate=model, max_attempts=3, backoff_s=1.0, min_text_len=10, sleep=sleeper
        )
        pipeline = AnalysisPipeline(
            cache=cache,
            invoker=invoker,
            language=language,
            max_file_bytes=max_file_bytes,
        )
        return pipeline, model

    return _make


@pytest.fixture(autouse=True)
def telemetry_log_dir(tmp_path, monkeypatch) -> Path:
    """Route telemetry's JSONL log into the test's own temp dir."""
    from worker.app.telemetry import telemetry

    log_dir = tmp_path / "logs"
    monkeypatch.setattr(telemetry, "_log_dir", log_dir)
    monkeypatch.setattr(telemetry, "_log_file", log_dir / "worker.jsonl")
    return log_dir
