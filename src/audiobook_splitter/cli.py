"""CLI entry point for the audiobook splitter."""

import os
import sys
from pathlib import Path

import click
from loguru import logger

from .config import PipelineConfig
from .errors import PipelineError
from .models import AUDIO_EXTENSIONS, LLMBackend
from .runner import PipelineRunner, make_reconciler

log = logger.bind(stage="cli")


def _find_config_file() -> Path | None:
    """Look for .env next to the package or in cwd."""
    pkg_dir = Path(__file__).resolve().parent
    for candidate in [
        pkg_dir.parent.parent / ".env",  # dev: src/../.env
        Path.cwd() / ".env",
    ]:
        if candidate.is_file():
            return candidate
    return None


def _load_env_file(env_file: Path) -> None:
    """Load a shell-style .env file into os.environ (without overriding)."""
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        # Strip quotes
        if (value.startswith('"') and value.endswith('"')) or (
            value.startswith("'") and value.endswith("'")
        ):
            value = value[1:-1]
        # Skip bash variable expansions like ${VAR:-default}
        if "${" in value:
            continue
        # Don't override existing env vars (CLI > env > file)
        if key not in os.environ:
            os.environ[key] = value


@click.command()
@click.argument("source_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Library root; chapters land in <output-dir>/<book title>/.",
)
@click.option(
    "--activation-bytes",
    default=None,
    help="Audible activation bytes (8 hex chars) for .aax sources.",
)
@click.option("--title", default=None, help="Use this book title, skip title resolution.")
@click.option(
    "--llm",
    "llm_backend",
    type=click.Choice([b.value for b in LLMBackend]),
    default=None,
    help="LLM used to disambiguate titles (cli = the `llm` tool).",
)
@click.option(
    "--shorten/--no-shorten",
    default=None,
    help="Shorten titles longer than the title length budget.",
)
@click.option(
    "--extract-audio",
    is_flag=True,
    help="Re-package the whole file as a single .m4a instead of splitting.",
)
@click.option("--keep-decrypted", is_flag=True, help="Keep the decrypted .m4b.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    default=None,
    help="Path to .env file.",
)
def main(
    source_path: str,
    output_dir: str | None,
    activation_bytes: str | None,
    title: str | None,
    llm_backend: str | None,
    shorten: bool | None,
    extract_audio: bool,
    keep_decrypted: bool,
    verbose: bool,
    config_file: str | None,
) -> None:
    """Split an audiobook into tagged per-chapter files with cover art."""
    source = Path(source_path).resolve()

    if source.suffix.lower() not in AUDIO_EXTENSIONS:
        raise click.UsageError(f"Unsupported file type: {source.suffix or source.name}")

    # Load .env into environment before PipelineConfig reads env vars
    env_file = Path(config_file) if config_file else _find_config_file()
    if env_file and env_file.is_file():
        _load_env_file(env_file)
        log.debug(f"Loaded env from {env_file}")
    else:
        log.debug("No .env found")

    # Pass CLI flags as kwargs to avoid env pollution
    config_kwargs: dict[str, object] = {"verbose": verbose}
    if verbose:
        config_kwargs["log_level"] = "DEBUG"
    if output_dir:
        config_kwargs["output_dir"] = Path(output_dir)
    if activation_bytes:
        config_kwargs["activation_bytes"] = activation_bytes
    if llm_backend:
        config_kwargs["llm_backend"] = llm_backend
    if shorten is not None:
        config_kwargs["shorten_titles"] = shorten
    if keep_decrypted:
        config_kwargs["keep_decrypted"] = True

    config = PipelineConfig(**config_kwargs)  # type: ignore[arg-type]
    config.setup_logging()

    log.info(f"Starting: source={source} output_dir={config.output_dir}")
    try:
        reconciler = None if title else make_reconciler(config)
        runner = PipelineRunner(config=config, reconciler=reconciler)
        produced = runner.run(source, title=title, extract_audio=extract_audio)
    except PipelineError as exc:
        log.error(str(exc))
        click.echo(f"ERROR: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Done: {len(produced)} file(s) written")
