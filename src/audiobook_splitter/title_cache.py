"""Persistent key -> title lookup in front of the LLM.

The file is a JSON array of ``[key, value]`` pairs. It is loaded on first
use and rewritten in full (atomically) after every ``set``. A missing or
unreadable file is an empty cache. There is no locking; one process per
cache file.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from loguru import logger

log = logger.bind(stage="title_cache")


class TitleCache:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._entries: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._entries is not None:
            return self._entries

        entries: dict[str, str] = {}
        if self.path.exists():
            try:
                pairs = json.loads(self.path.read_text())
                if not isinstance(pairs, list):
                    raise ValueError("expected a JSON array of [key, value] pairs")
                for pair in pairs:
                    if not isinstance(pair, list) or len(pair) != 2:
                        raise ValueError(f"malformed entry {pair!r}")
                    key, value = pair
                    entries[str(key)] = str(value)
            except (json.JSONDecodeError, OSError, TypeError, ValueError) as exc:
                log.warning(f"Ignoring unreadable title cache {self.path}: {exc}")
                entries = {}

        log.debug(f"Loaded {len(entries)} cached title(s) from {self.path}")
        self._entries = entries
        return entries

    def _flush(self) -> None:
        entries = self._load()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump([[k, v] for k, v in entries.items()], f, indent=2)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError as cleanup_err:
                log.warning(f"Failed to cleanup temp file {tmp_path}: {cleanup_err}")
            raise

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        log.debug(f"Caching title for {key!r}")
        self._flush()

    def __contains__(self, key: str) -> bool:
        return key in self._load()

    def __len__(self) -> int:
        return len(self._load())
