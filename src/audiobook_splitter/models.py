"""Core types and constants for the audiobook splitter.

Types:
    AudioSource -- A source audio container on disk.
    Metadata    -- Container-level tags and duration from ffprobe.
    Chapter     -- One named time range of a source, in milliseconds.
    CoverArt    -- Result of cover art extraction: an image file or ABSENT.
    LLMBackend  -- Which LLM transport the title reconciler talks to.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import ClassVar


class LLMBackend(StrEnum):
    CLI = "cli"
    OPENAI = "openai"
    NONE = "none"


AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".aax",
        ".mp3",
        ".m4a",
        ".m4b",
        ".flac",
        ".ogg",
        ".wma",
    }
)

# Whole-book containers; a single chapter is written as plain audio instead
BOOK_EXTENSION_MAP: dict[str, str] = {
    ".m4b": ".m4a",
    ".aax": ".m4a",
}

ENCRYPTED_EXTENSION = ".aax"

# ffprobe time_base for millisecond chapter markers
MILLISECOND_TIME_BASE = "1/1000"


@dataclass(frozen=True)
class AudioSource:
    path: Path

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def is_encrypted(self) -> bool:
        return self.extension == ENCRYPTED_EXTENSION


@dataclass(frozen=True)
class Metadata:
    title: str
    album: str
    artist: str
    duration_ms: int


@dataclass(frozen=True)
class Chapter:
    start_ms: int
    end_ms: int
    title: str

    @property
    def start_seconds(self) -> float:
        return self.start_ms / 1000

    @property
    def duration_seconds(self) -> float:
        return (self.end_ms - self.start_ms) / 1000


@dataclass(frozen=True)
class CoverArt:
    """Cover art extracted from a source.

    ``CoverArt.ABSENT`` is the normal outcome for sources without an
    embedded picture, not a failure.
    """

    path: Path | None = None

    ABSENT: ClassVar[CoverArt]

    @property
    def present(self) -> bool:
        return self.path is not None


CoverArt.ABSENT = CoverArt(None)
