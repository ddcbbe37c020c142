"""Audible DRM removal -- lossless remux of an .aax using activation bytes."""

import re
from pathlib import Path

from loguru import logger

from .commands import ffmpeg
from .errors import DRMError, ExternalToolError
from .models import ENCRYPTED_EXTENSION

log = logger.bind(stage="drm")

_ACTIVATION_BYTES_RE = re.compile(r"^[0-9a-fA-F]{8}$")


def decrypted_path(source: Path) -> Path:
    """``book.aax`` -> ``book.m4b`` in the same directory."""
    return source.with_suffix(".m4b")


def strip_drm(source: Path, activation_bytes: str) -> Path:
    """Decrypt an Audible .aax into an .m4b beside it. The .aax is left as-is.

    An existing file at the target path is never overwritten or removed.
    """
    if source.suffix.lower() != ENCRYPTED_EXTENSION:
        raise DRMError(f"Not an Audible .aax file: {source.name}")

    activation_bytes = activation_bytes.strip()
    if not _ACTIVATION_BYTES_RE.match(activation_bytes):
        raise DRMError("Activation bytes must be 8 hexadecimal characters")

    output = decrypted_path(source)
    if output.exists():
        raise DRMError(f"Refusing to overwrite existing {output.name}")
    log.info(f"Removing DRM: {source.name} -> {output.name}")

    try:
        ffmpeg(
            "-n",
            "-activation_bytes", activation_bytes,
            "-i", str(source),
            "-c", "copy",
            str(output),
        )
    except ExternalToolError as exc:
        output.unlink(missing_ok=True)
        raise DRMError(
            f"Could not decrypt {source.name}: {exc.stderr.strip()[-300:]}"
        ) from exc

    return output
