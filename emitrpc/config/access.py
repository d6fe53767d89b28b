"""Process-local config cache keyed by resolved file path."""

from __future__ import annotations

import threading
from pathlib import Path

from emitrpc.config.loader import get_config_path, load_config
from emitrpc.config.schema import RpcConfig


class _ConfigCache:
    def __init__(self):
        self._lock = threading.RLock()
        self._entries: dict[Path, RpcConfig] = {}

    def get(self, path: Path, force_reload: bool) -> RpcConfig:
        with self._lock:
            config = None if force_reload else self._entries.get(path)
            if config is None:
                config = load_config(path)
                self._entries[path] = config
            return config

    def invalidate(self, path: Path | None) -> None:
        with self._lock:
            if path is None:
                self._entries.clear()
            else:
                self._entries.pop(path, None)


_cache = _ConfigCache()


def _resolve(config_path: Path | None) -> Path:
    return Path(config_path or get_config_path()).expanduser().resolve()


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> RpcConfig:
    """Load config once per file; ``force_reload`` re-reads it."""
    return _cache.get(_resolve(config_path), force_reload)


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Forget one cached file, or every cached file when no path is given."""
    _cache.invalidate(_resolve(config_path) if config_path is not None else None)
