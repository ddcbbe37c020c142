"""Segmenter -- cut a source into one tagged file per chapter.

Each chapter is a lossless stream copy bounded by start offset and
duration (-ss/-t), stamped with the chapter title and the book title as
album. Cover art is extracted once, attached to every chapter, then
removed. Chapters are cut in order; a failure stops the run and leaves
the chapters already written on disk.
"""

from __future__ import annotations

from pathlib import Path

import click
from loguru import logger

from .commands import ffmpeg
from .cover_art import attach_cover_art, extract_cover_art, remove_cover_art
from .ffmpeg import format_timestamp, metadata_args
from .models import BOOK_EXTENSION_MAP, Chapter
from .sanitize import chapter_number, sanitize_filename

log = logger.bind(stage="segmenter")


def chapter_extension(source: Path) -> str:
    """Output extension for a chapter cut from ``source``."""
    ext = source.suffix.lower()
    return BOOK_EXTENSION_MAP.get(ext, source.suffix)


def chapter_filename(book_title: str, index: int, total: int, source: Path) -> str:
    """``"<book title> - <NN><ext>"`` with NN padded to the chapter count width."""
    number = chapter_number(index, total)
    name = sanitize_filename(book_title) or "Chapter"
    return f"{name} - {number}{chapter_extension(source)}"


def cut_chapter(source: Path, chapter: Chapter, album: str, dest: Path) -> Path:
    """Stream-copy one chapter of ``source`` into ``dest``."""
    ffmpeg(
        "-y",
        "-i", str(source),
        "-ss", format_timestamp(chapter.start_seconds),
        "-t", format_timestamp(chapter.duration_seconds),
        "-map", "0:a",
        "-c", "copy",
        *metadata_args({"title": chapter.title, "album": album}),
        str(dest),
    )
    return dest


def segment(
    source: Path,
    book_title: str,
    chapters: list[Chapter],
    output_dir: Path,
) -> list[Path]:
    """Split ``source`` into per-chapter files under ``output_dir``.

    Returns the produced paths in chapter order.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    total = len(chapters)
    log.info(f"Segmenting {source.name} into {total} chapter(s) -> {output_dir}")

    cover = extract_cover_art(source)
    produced: list[Path] = []
    try:
        for index, chapter in enumerate(chapters, 1):
            dest = output_dir / chapter_filename(book_title, index, total, source)
            log.debug(
                f"Chapter {index}/{total}: {chapter.title!r} "
                f"start={chapter.start_seconds:.3f}s "
                f"duration={chapter.duration_seconds:.3f}s"
            )
            cut_chapter(source, chapter, book_title, dest)
            attach_cover_art(dest, cover)
            produced.append(dest)
            click.echo(f"  CHAPTER: {dest.name}")
    finally:
        remove_cover_art(cover)

    return produced
