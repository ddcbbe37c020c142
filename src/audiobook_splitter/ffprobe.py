"""FFprobe wrappers: container metadata and embedded chapter markers.

ffprobe's JSON is parsed into typed Metadata / Chapter values here, so a
missing or mistyped field surfaces as ProbeError instead of a KeyError
somewhere downstream.
"""

from __future__ import annotations

import json
import math
from pathlib import Path

from loguru import logger

from .commands import ffprobe
from .errors import ExternalToolError, ProbeError
from .models import MILLISECOND_TIME_BASE, Chapter, Metadata

log = logger.bind(stage="ffprobe")

REQUIRED_TAGS = ("title", "album", "artist")


def _load_json(output: str, what: str) -> dict:
    try:
        data = json.loads(output)
    except json.JSONDecodeError as exc:
        raise ProbeError(f"ffprobe {what} output is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ProbeError(f"ffprobe {what} output is not a JSON object")
    return data


def parse_metadata(output: str) -> Metadata:
    """Parse ``ffprobe -show_format`` JSON into Metadata.

    Tag names are matched case-insensitively. Duration is truncated (not
    rounded) to whole milliseconds so it never overshoots the real length.
    """
    data = _load_json(output, "format")

    fmt = data.get("format")
    if not isinstance(fmt, dict):
        raise ProbeError("ffprobe output has no format section")

    raw_tags = fmt.get("tags")
    if not isinstance(raw_tags, dict):
        raise ProbeError("ffprobe format section has no tags")
    tags = {str(k).lower(): v for k, v in raw_tags.items()}

    values: dict[str, str] = {}
    for key in REQUIRED_TAGS:
        value = tags.get(key)
        if not isinstance(value, str):
            raise ProbeError(f"Missing or invalid '{key}' tag in ffprobe output")
        values[key] = value

    raw_duration = fmt.get("duration")
    try:
        seconds = float(raw_duration)
    except (TypeError, ValueError) as exc:
        raise ProbeError(f"Invalid duration in ffprobe output: {raw_duration!r}") from exc
    if not math.isfinite(seconds) or seconds < 0:
        raise ProbeError(f"Invalid duration in ffprobe output: {raw_duration!r}")

    return Metadata(
        title=values["title"],
        album=values["album"],
        artist=values["artist"],
        duration_ms=math.floor(seconds * 1000),
    )


def parse_chapters(output: str) -> list[Chapter]:
    """Parse ``ffprobe -show_chapters`` JSON, keeping millisecond markers only.

    Markers in any other time base are dropped, not converted.
    """
    data = _load_json(output, "chapters")

    raw_chapters = data.get("chapters", [])
    if not isinstance(raw_chapters, list):
        raise ProbeError("ffprobe chapters section is not a list")

    chapters: list[Chapter] = []
    for index, raw in enumerate(raw_chapters):
        if not isinstance(raw, dict):
            raise ProbeError(f"Chapter marker {index} is not an object")

        time_base = raw.get("time_base")
        if time_base != MILLISECOND_TIME_BASE:
            log.debug(f"Skipping chapter marker {index}: time_base={time_base!r}")
            continue

        start = raw.get("start")
        end = raw.get("end")
        tags = raw.get("tags")
        title = tags.get("title") if isinstance(tags, dict) else None
        if not isinstance(start, int) or not isinstance(end, int):
            raise ProbeError(f"Chapter marker {index} has non-integer start/end")
        if not isinstance(title, str):
            raise ProbeError(f"Chapter marker {index} has no title tag")

        log.debug(f"Chapter {index}: {title!r} [{start}-{end}]")
        chapters.append(Chapter(start_ms=start, end_ms=end, title=title))

    return chapters


def probe_metadata(file: Path) -> Metadata:
    """Read title/album/artist tags and duration of a file."""
    try:
        output = ffprobe(
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            str(file),
        )
    except ExternalToolError as exc:
        raise ProbeError(f"ffprobe failed on {file}: {exc.stderr.strip()}") from exc
    return parse_metadata(output)


def probe_chapters(file: Path) -> list[Chapter]:
    """Read the millisecond chapter markers embedded in a file."""
    try:
        output = ffprobe(
            "-v", "quiet",
            "-print_format", "json",
            "-show_chapters",
            str(file),
        )
    except ExternalToolError as exc:
        raise ProbeError(f"ffprobe failed on {file}: {exc.stderr.strip()}") from exc
    return parse_chapters(output)
