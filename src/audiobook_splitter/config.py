"""Splitter configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import LLMBackend


class PipelineConfig(BaseSettings):
    """All splitter configuration with layered resolution:
    .env file < environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -- Directories --
    output_dir: Path = Path("./chapters")
    log_dir: Path = Path.home() / ".cache" / "audiobook-splitter" / "logs"
    title_cache_file: Path = Path.home() / ".cache" / "audiobook-splitter" / "titles.json"

    # -- Audible --
    activation_bytes: str = ""
    keep_decrypted: bool = False

    # -- Behavior --
    verbose: bool = False
    log_level: str = "INFO"
    extract_mono: bool = True

    # -- Titles --
    shorten_titles: bool = True
    max_title_length: int = Field(default=40, ge=1)
    disambiguation_attempts: int = Field(default=2, ge=1)
    title_match_threshold: int = Field(default=90, ge=0, le=100)

    # -- AI (uses PIPELINE_LLM_* env vars to avoid OPENAI_* collisions) --
    llm_backend: LLMBackend = LLMBackend.CLI
    llm_command: str = "llm"
    pipeline_llm_base_url: str = ""
    pipeline_llm_api_key: str = ""
    pipeline_llm_model: str = "gpt4"

    def setup_logging(self) -> None:
        """Configure loguru for the splitter."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<12} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.log_level.upper(),
            filter=_default_extra,
        )

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_dir / "splitter.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )
