"""ffmpeg argument builders and whole-file audio stream extraction."""

from __future__ import annotations

import math
from pathlib import Path

from loguru import logger

from .commands import ffmpeg

log = logger.bind(stage="ffmpeg")


def format_timestamp(total_seconds: float) -> str:
    """Render seconds as H:M:S for ffmpeg's -ss/-t.

    Hours and minutes are not zero-padded; the seconds field keeps any
    fractional part, e.g. 3661 -> "1:1:1", 61.5 -> "0:1:1.5".
    """
    hours = math.floor(total_seconds / 3600)
    total_seconds -= hours * 3600

    minutes = math.floor(total_seconds / 60)
    total_seconds -= minutes * 60

    return f"{hours}:{minutes}:{total_seconds:g}"


def metadata_args(metadata: dict[str, str]) -> list[str]:
    """Expand a tag dict into repeated ``-metadata key=value`` arguments."""
    args: list[str] = []
    for key, value in metadata.items():
        args.extend(["-metadata", f"{key}={value}"])
    return args


def ffmpeg_nice(
    input_file: Path,
    output_file: Path,
    mono: bool = False,
    metadata: dict[str, str] | None = None,
) -> str:
    """Run a simple single-input ffmpeg transform."""
    args = ["-y", "-i", str(input_file)]

    if mono:
        args.extend(["-ac", "1"])

    args.extend(metadata_args(metadata or {}))
    args.append(str(output_file))

    return ffmpeg(*args)


def extract_audio_stream(source: Path, mono: bool = True) -> Path:
    """Re-package a file's audio as an .m4a tagged with the file's base name.

    Goes through an intermediate .aac beside the source, which is removed
    once the .m4a has been written.
    """
    base = source.parent / source.stem
    intermediate = base.with_name(base.name + ".aac")
    output = base.with_name(base.name + ".m4a")
    if output == source:
        output = base.with_name(base.name + ".audio.m4a")

    log.info(f"Extracting audio stream: {source.name} -> {output.name}")
    ffmpeg_nice(source, intermediate, mono=mono)

    try:
        ffmpeg_nice(
            intermediate,
            output,
            metadata={"title": source.stem, "album": source.stem},
        )
    finally:
        intermediate.unlink(missing_ok=True)

    return output
