"""Exception hierarchy for the audiobook splitter."""


class PipelineError(Exception):
    """Base exception for all pipeline errors."""


class ConfigError(PipelineError):
    """Invalid or missing configuration."""


class ExternalToolError(PipelineError):
    """An external subprocess (ffmpeg, ffprobe, llm) failed."""

    def __init__(self, tool: str, exit_code: int, stderr: str) -> None:
        super().__init__(f"{tool} exited with code {exit_code}: {stderr}")
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr


class ProbeError(PipelineError):
    """Source metadata or chapter markers could not be read."""


class DRMError(PipelineError):
    """Audible decryption failed or the source is not an encrypted .aax."""


class DisambiguationError(PipelineError):
    """The LLM never returned a usable single-line title."""

    def __init__(self, filename: str, attempts: list[str]) -> None:
        super().__init__(
            f"Could not disambiguate title for {filename!r} "
            f"after {len(attempts)} attempt(s)"
        )
        self.filename = filename
        self.attempts = attempts


class RetryExhausted(PipelineError):
    """Every attempt of a bounded retry produced an invalid result."""

    def __init__(self, history: list) -> None:
        super().__init__(f"No valid result after {len(history)} attempt(s)")
        self.history = history
