"""Opaque disk cache for generator responses.

Keyed by a hash of the request. Text replies are stored as JSON, images as raw
bytes. Disabled when no directory is configured (LLM_CACHE_DIR unset), which
is the production default. Unreadable or unwritable entries are treated as
misses; the cache never fails a generation.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

import structlog

logger = structlog.get_logger()


class ResponseCache:
    def __init__(self, directory: str | Path | None) -> None:
        self._root = Path(directory) if directory else None

    @property
    def enabled(self) -> bool:
        return self._root is not None

    def _path(self, namespace: str, key_parts: list[str], ext: str) -> Path | None:
        if self._root is None:
            return None
        digest = hashlib.sha256("|".join(key_parts).encode()).hexdigest()[:20]
        cache_dir = self._root / namespace
        cache_dir.mkdir(parents=True, exist_ok=True)
        return cache_dir / f"{digest}.{ext}"

    def get_text(self, namespace: str, key_parts: list[str]) -> str | None:
        path = self._path(namespace, key_parts, "json")
        if path is None or not path.exists():
            return None
        try:
            value = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError):
            logger.warning("response_cache_corrupt", namespace=namespace, path=str(path))
            return None
        if not isinstance(value, str):
            return None
        logger.info("response_cache_hit", namespace=namespace)
        return value

    def set_text(self, namespace: str, key_parts: list[str], value: str) -> None:
        path = self._path(namespace, key_parts, "json")
        if path is None:
            return
        try:
            path.write_text(json.dumps(value))
        except OSError:
            logger.warning("response_cache_write_failed", namespace=namespace)
            return
        logger.info("response_cache_saved", namespace=namespace)

    def get_bytes(self, namespace: str, key_parts: list[str], ext: str = "img") -> bytes | None:
        path = self._path(namespace, key_parts, ext)
        if path is None or not path.exists():
            return None
        try:
            data = path.read_bytes()
        except OSError:
            return None
        logger.info("response_cache_hit", namespace=namespace, size=len(data))
        return data

    def set_bytes(self, namespace: str, key_parts: list[str], data: bytes, ext: str = "img") -> None:
        path = self._path(namespace, key_parts, ext)
        if path is None:
            return
        try:
            path.write_bytes(data)
        except OSError:
            logger.warning("response_cache_write_failed", namespace=namespace)
            return
        logger.info("response_cache_saved", namespace=namespace, size=len(data))
