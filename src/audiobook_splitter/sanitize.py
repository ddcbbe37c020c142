"""Filename sanitization and chapter numbering."""

import re

from loguru import logger

log = logger.bind(stage="sanitize")


def sanitize_filename(name: str) -> str:
    """Reduce a title to characters that are safe in any filesystem.

    Keeps ASCII letters, digits, spaces, parentheses, apostrophes and
    hyphens; everything else becomes a space. Mis-decoded UTF-8 right
    quotes are repaired to apostrophes first. Runs of whitespace collapse.
    """
    sanitized = name.replace("â€™", "'").replace("’", "'")
    sanitized = re.sub(r"[^a-zA-Z0-9 ()'-]", " ", sanitized)
    sanitized = re.sub(r"\s{2,}", " ", sanitized)
    sanitized = sanitized.strip()

    if sanitized != name:
        log.debug(f"sanitize_filename: {name!r} -> {sanitized!r}")
    return sanitized


def zero_pad(number: int | str, width: int) -> str:
    """Left-pad with zeros: zero_pad(1, 3) -> "001"."""
    return str(number).rjust(width, "0")


def chapter_number(index: int, total: int) -> str:
    """1-based chapter number padded to the width of the chapter count."""
    return zero_pad(index, len(str(total)))
