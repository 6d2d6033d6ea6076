"""Blocking invocation of external tools (ffmpeg, whisper-cli, sh)."""

import logging
import subprocess
from pathlib import Path

from parlato.errors import ExternalToolError

logger = logging.getLogger(__name__)


def _last_line(text: str | None) -> str:
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    return lines[-1] if lines else ""


def run_tool(
    cmd: list[str],
    timeout: float | None = None,
    cwd: Path | None = None,
) -> subprocess.CompletedProcess:
    """Run a command to completion, raising ExternalToolError on any failure.

    Missing binaries, timeouts and non-zero exits are all reported the same
    way; the last non-empty stderr line is kept as detail.
    """
    cmd = [str(c) for c in cmd]
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, timeout=timeout, cwd=cwd,
        )
    except FileNotFoundError as e:
        raise ExternalToolError(cmd, f"executable not found: {cmd[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(cmd, f"timed out after {timeout}s") from e

    try:
        result.check_returncode()
    except subprocess.CalledProcessError as e:
        detail = _last_line(result.stderr) or f"exit status {result.returncode}"
        raise ExternalToolError(cmd, detail) from e
    return result
