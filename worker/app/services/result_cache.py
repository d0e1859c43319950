"""File-backed, expiring cache of validated analysis results.

Layout: one JSON file per key under the cache dir, named
``<prefix><fingerprint>_<language>.json`` and holding
``{"result": {...}, "timestamp": <epoch s>, "language": "en"}``.

Best-effort by contract: no method raises. Storage or parse problems are
logged and degrade to a miss (get) or a no-op (put / clear_all).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from worker.app.config import settings
from worker.app.models import AnalysisResult, CacheEntry, Language

log = logging.getLogger(__name__)


class ResultCache:
    def __init__(
        self,
        cache_dir: str | Path | None = None,
        prefix: Optional[str] = None,
        ttl_s: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir or settings.CACHE_DIR)
        self.prefix = prefix if prefix is not None else settings.CACHE_PREFIX
        self.ttl_s = float(ttl_s if ttl_s is not None else settings.CACHE_TTL_S)
        self._clock = clock
        self._lock = threading.Lock()

    # --- keys -----------------------------------------------------------------
    def key_for(self, fingerprint: str, language: Language | str) -> str:
        return f"{self.prefix}{fingerprint}_{Language.parse(language).value}"

    def _path_for(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def _entry_paths(self):
        if not self.cache_dir.is_dir():
            return []
        return [
            p
            for p in self.cache_dir.iterdir()
            if p.is_file() and p.name.startswith(self.prefix) and p.suffix == ".json"
        ]

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.ttl_s

    @staticmethod
    def _load(path: Path) -> CacheEntry:
        with open(path, "r", encoding="utf-8") as f:
            return CacheEntry.model_validate(json.load(f))

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False

    # --- public API -----------------------------------------------------------
    def get(self, fingerprint: str, language: Language | str) -> Optional[AnalysisResult]:
        try:
            lang = Language.parse(language)
            path = self._path_for(self.key_for(fingerprint, lang))
            with self._lock:
                if not path.exists():
                    return None
                try:
                    entry = self._load(path)
                except (json.JSONDecodeError, PydanticValidationError, UnicodeDecodeError) as e:
                    log.warning("[cache] dropping unreadable entry %s: %s", path.name, e)
                    self._unlink(path)
                    return None

                if self._expired(entry, self._clock()):
                    log.info("[cache] entry expired: %s", path.name)
                    self._unlink(path)
                    return None

            if entry.language != lang:
                log.warning(
                    "[cache] language mismatch in %s (stored=%s, wanted=%s)",
                    path.name,
                    entry.language.value,
                    lang.value,
                )
                return None
            return entry.result
        except Exception as e:
            log.error("Error reading from cache: %s", e)
            return None

    def put(
        self, fingerprint: str, language: Language | str, result: AnalysisResult
    ) -> None:
        try:
            lang = Language.parse(language)
            entry = CacheEntry(result=result, timestamp=self._clock(), language=lang)
            path = self._path_for(self.key_for(fingerprint, lang))
            payload = entry.model_dump_json()
            with self._lock:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
                # atomic replace: concurrent writers for one key are last-write-wins
                fd, tmp = tempfile.mkstemp(
                    dir=self.cache_dir, prefix=".tmp-", suffix=".json"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        f.write(payload)
                    os.replace(tmp, path)
                except BaseException:
                    self._unlink(Path(tmp))
                    raise
        except Exception as e:
            log.error("Error writing to cache: %s", e)
            return

        self.purge_expired()

    def purge_expired(self) -> int:
        """Remove expired and unreadable entries; returns how many were removed."""
        removed = 0
        try:
            now = self._clock()
            with self._lock:
                for path in self._entry_paths():
                    try:
                        entry = self._load(path)
                        stale = self._expired(entry, now)
                    except Exception:
                        stale = True  # can't parse it, so it can't be served either
                    if stale and self._unlink(path):
                        removed += 1
        except Exception as e:
            log.error("Error cleaning cache: %s", e)
        if removed:
            log.info("[cache] purged %d stale entries", removed)
        return removed

    def clear_all(self) -> int:
        removed = 0
        try:
            with self._lock:
                for path in self._entry_paths():
                    if self._unlink(path):
                        removed += 1
        except Exception as e:
            log.error("Error clearing cache: %s", e)
        log.info("[cache] cleared %d entries", removed)
        return removed

    def stats(self) -> Dict[str, object]:
        try:
            with self._lock:
                entries = len(self._entry_paths())
        except Exception as e:
            log.debug("cache stats failed: %s", e)
            entries = 0
        return {
            "dir": str(self.cache_dir),
            "entries": entries,
            "ttl_s": int(self.ttl_s),
        }
