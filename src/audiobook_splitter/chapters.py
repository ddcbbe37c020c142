"""Chapter resolution -- embedded markers, or one chapter for the whole file."""

from pathlib import Path

from loguru import logger

from .errors import ProbeError
from .ffprobe import probe_chapters, probe_metadata
from .models import Chapter

log = logger.bind(stage="chapters")


def resolve_chapters(file: Path) -> list[Chapter]:
    """Return the chapters to split a file into. Never empty.

    Uses the embedded millisecond chapter markers in source order when
    there are any. Otherwise (no markers, or only markers in another time
    base) the whole file becomes a single chapter named after its title tag;
    a zero-length file then raises ProbeError.
    """
    chapters = probe_chapters(file)
    if chapters:
        log.info(f"{file.name}: {len(chapters)} embedded chapters")
        return chapters

    metadata = probe_metadata(file)
    if metadata.duration_ms <= 0:
        raise ProbeError(f"{file.name} has no chapter markers and zero duration")
    log.info(
        f"{file.name}: no usable chapter markers, "
        f"using whole file ({metadata.duration_ms} ms)"
    )
    return [Chapter(start_ms=0, end_ms=metadata.duration_ms, title=metadata.title)]
