"""Cover art: copy the embedded picture out of a source, re-attach it to chapters.

Extraction is best-effort. Plenty of audio files carry no picture, so
that case comes back as ``CoverArt.ABSENT`` rather than an exception.
Attaching writes to a sibling temp file and replaces the chapter file
only once ffmpeg has succeeded.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from loguru import logger

from .commands import ffmpeg
from .errors import ExternalToolError
from .models import CoverArt

log = logger.bind(stage="cover_art")

COVER_PREFIX = ".cover"
COVER_SUFFIX = ".png"


def new_cover_path(source: Path) -> Path:
    """Create a fresh hidden cover image file beside the source.

    Each call gets its own name, so a cover file the user already has
    there is never overwritten or removed.
    """
    fd, name = tempfile.mkstemp(
        dir=source.parent, prefix=COVER_PREFIX, suffix=COVER_SUFFIX,
    )
    os.close(fd)
    return Path(name)


def extract_cover_art(source: Path, dest: Path | None = None) -> CoverArt:
    """Copy the source's video stream (its cover) into a standalone image."""
    dest = dest or new_cover_path(source)
    try:
        ffmpeg("-y", "-i", str(source), "-map", "0:v", "-c", "copy", str(dest))
    except ExternalToolError as exc:
        log.info(f"No cover art in {source.name} (ffmpeg exit {exc.exit_code})")
        dest.unlink(missing_ok=True)
        return CoverArt.ABSENT

    log.debug(f"Cover art extracted: {dest}")
    return CoverArt(dest)


def attach_cover_art(chapter_file: Path, cover: CoverArt) -> Path:
    """Mux ``cover`` into ``chapter_file`` as an attached picture, in place."""
    if not cover.present:
        return chapter_file

    working_file = chapter_file.with_name(
        f"{chapter_file.stem}.add_cover_art{chapter_file.suffix}"
    )

    try:
        ffmpeg(
            "-y",
            "-i", str(chapter_file),
            "-i", str(cover.path),
            "-map", "0:a",
            "-map", "1",
            "-c:a", "copy",
            "-c:v", "mjpeg",
            "-disposition:v:0", "attached_pic",
            str(working_file),
        )
    except ExternalToolError:
        working_file.unlink(missing_ok=True)
        raise

    working_file.replace(chapter_file)
    log.debug(f"Attached cover art to {chapter_file.name}")
    return chapter_file


def remove_cover_art(cover: CoverArt) -> None:
    if cover.present:
        cover.path.unlink(missing_ok=True)
