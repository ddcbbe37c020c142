"""Pipeline runner -- decrypt, name, and split one audiobook file."""

from __future__ import annotations

import re
from pathlib import Path

import click
from loguru import logger

from .ai import (
    LLMCommand,
    OpenAIChat,
    TitleReconciler,
    distinct_candidates,
    get_client,
    needs_disambiguation,
)
from .chapters import resolve_chapters
from .config import PipelineConfig
from .drm import strip_drm
from .errors import ConfigError
from .ffmpeg import extract_audio_stream
from .ffprobe import probe_metadata
from .models import AudioSource, LLMBackend, Metadata
from .sanitize import sanitize_filename
from .segmenter import segment
from .title_cache import TitleCache

log = logger.bind(stage="runner")

# Release noise commonly found in audiobook filenames
_FILENAME_NOISE_RE = re.compile(
    r"\((?:unabridged|abridged|audio\s*book)\)|\[[^\]]*\]",
    re.IGNORECASE,
)


def title_from_filename(stem: str) -> str:
    """Best-effort book title from a filename stem.

    "The_Hobbit.(Unabridged)" -> "The Hobbit"
    """
    text = _FILENAME_NOISE_RE.sub(" ", stem)
    text = re.sub(r"[._]+", " ", text)
    return re.sub(r"\s{2,}", " ", text).strip(" -")


def make_reconciler(config: PipelineConfig) -> TitleReconciler | None:
    """Build the TitleReconciler for the configured LLM backend.

    Returns None when the LLM is disabled.
    """
    if config.llm_backend == LLMBackend.NONE:
        return None

    if config.llm_backend == LLMBackend.OPENAI:
        client = get_client(config.pipeline_llm_base_url, config.pipeline_llm_api_key)
        if client is None:
            raise ConfigError(
                "llm_backend=openai requires PIPELINE_LLM_BASE_URL to be set"
            )
        llm = OpenAIChat(client, config.pipeline_llm_model)
    else:
        llm = LLMCommand(config.pipeline_llm_model, executable=config.llm_command)

    return TitleReconciler(
        llm,
        cache=TitleCache(config.title_cache_file),
        max_attempts=config.disambiguation_attempts,
        max_length=config.max_title_length,
    )


class PipelineRunner:
    """Runs the splitter for a single source file."""

    def __init__(
        self,
        config: PipelineConfig,
        reconciler: TitleReconciler | None = None,
    ) -> None:
        self.config = config
        self.reconciler = reconciler

    def resolve_title(self, filename: str, metadata: Metadata) -> str:
        """Choose the book title from tags and filename, asking the LLM on conflict."""
        candidates = distinct_candidates([
            metadata.title,
            metadata.album,
            title_from_filename(Path(filename).stem),
        ])
        log.debug(f"Title candidates for {filename!r}: {candidates!r}")

        if not candidates:
            title = Path(filename).stem
        elif self.reconciler is None or not needs_disambiguation(
            candidates, self.config.title_match_threshold,
        ):
            title = candidates[0]
        else:
            title = self.reconciler.disambiguate(filename, candidates)

        if (
            self.reconciler is not None
            and self.config.shorten_titles
            and len(title) > self.config.max_title_length
        ):
            title = self.reconciler.shorten(title)

        return title

    def run(
        self,
        source_path: Path,
        title: str | None = None,
        extract_audio: bool = False,
    ) -> list[Path]:
        """Process one source file and return the files produced."""
        source = AudioSource(source_path)
        working = source.path
        decrypted: Path | None = None

        if source.is_encrypted:
            if not self.config.activation_bytes:
                raise ConfigError(
                    f"{source.path.name} is an Audible .aax file; "
                    "set ACTIVATION_BYTES or pass --activation-bytes"
                )
            decrypted = strip_drm(source.path, self.config.activation_bytes)
            working = decrypted

        try:
            if extract_audio:
                output = extract_audio_stream(working, mono=self.config.extract_mono)
                click.echo(f"  AUDIO: {output.name}")
                return [output]

            if title is None:
                metadata = probe_metadata(working)
                title = self.resolve_title(source.path.name, metadata)
            log.info(f"Book title: {title!r}")

            folder = sanitize_filename(title) or sanitize_filename(source.stem)
            chapters = resolve_chapters(working)
            return segment(
                working,
                title,
                chapters,
                self.config.output_dir / (folder or "Untitled"),
            )
        finally:
            if decrypted is not None and not self.config.keep_decrypted:
                log.debug(f"Removing decrypted intermediate {decrypted.name}")
                decrypted.unlink(missing_ok=True)
