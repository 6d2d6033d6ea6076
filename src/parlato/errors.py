"""Error types raised by the parlato pipeline.

Every error here is fatal for the build that raised it; nothing is retried.
"""


class ParlatoError(Exception):
    """Base error for the parlato pipeline."""


class InputFormatError(ParlatoError):
    """Recognizer output or a stage file has an unrecognized or empty shape."""


class ValidationError(ParlatoError):
    """Required configuration is missing or out of range."""


class ExternalToolError(ParlatoError):
    """An external process (ffmpeg, whisper-cli, sh) failed."""

    def __init__(self, cmd: list[str], detail: str = ""):
        self.cmd = list(cmd)
        self.detail = detail
        message = f"Command failed: {' '.join(self.cmd)}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class PackageIOError(ParlatoError, OSError):
    """Filesystem failure while staging or writing a package."""
