"""Subprocess choke point for every external tool (ffmpeg, ffprobe, llm)."""

import subprocess

from loguru import logger

from .errors import ExternalToolError

log = logger.bind(stage="commands")


def run(tool: str, args: list[str]) -> str:
    """Run an external program and return its stdout.

    Raises ExternalToolError with the captured stderr on non-zero exit.
    """
    log.debug(f"{tool} {' '.join(args)}")
    result = subprocess.run(
        [tool] + args,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        log.debug(f"{tool} failed: {result.stderr[-500:]}")
        raise ExternalToolError(tool, result.returncode, result.stderr)
    return result.stdout


def ffmpeg(*args: str) -> str:
    return run("ffmpeg", list(args))


def ffprobe(*args: str) -> str:
    return run("ffprobe", list(args))
