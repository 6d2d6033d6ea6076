"""whisper.cpp backend: runs the ``whisper-cli`` binary with full JSON output."""

import json
import logging
import os
import re
import tempfile
from pathlib import Path

from parlato.asr import Transcriber
from parlato.errors import ExternalToolError, InputFormatError, ValidationError
from parlato.external import run_tool

logger = logging.getLogger(__name__)

WHISPER_DIR = Path(os.environ.get("PARLATO_WHISPER_DIR", "whisper.cpp"))

# threads, processors, beam size, best-of
DEFAULT_FLAGS = ["-t", "4", "-p", "1", "-bs", "5", "-bo", "5"]

_GGML_MODEL_RE = re.compile(r"^ggml-(.+)\.bin$")


def resolve_whisper_bin(explicit: str | Path | None = None, whisper_dir: Path | None = None) -> Path:
    """Return the whisper-cli path: explicit, else bin/, else build/bin/ under whisper_dir.

    The build/bin fallback is returned even if it does not exist so callers
    can report where they looked.
    """
    if explicit:
        return Path(explicit)
    whisper_dir = Path(whisper_dir or WHISPER_DIR)
    primary = whisper_dir / "bin" / "whisper-cli"
    if primary.exists():
        return primary
    return whisper_dir / "build" / "bin" / "whisper-cli"


def default_model_path(whisper_dir: Path | None = None, size: str = "base") -> Path:
    return Path(whisper_dir or WHISPER_DIR) / "models" / f"ggml-{size}.bin"


def dtw_preset(model: str | Path) -> str | None:
    """DTW alignment preset from a model filename: ggml-base.bin → "base"."""
    match = _GGML_MODEL_RE.match(Path(model).name)
    return match.group(1) if match else None


def build_flags(model: str | Path, extra: list[str] | None = None, use_defaults: bool = True) -> list[str]:
    """Decode flags appended after the fixed input/output arguments."""
    extra = list(extra or [])
    if not use_defaults:
        return extra
    flags = list(DEFAULT_FLAGS)
    preset = dtw_preset(model)
    if preset and "-dtw" not in extra and "--dtw" not in extra:
        flags.extend(["-dtw", preset])
    return flags + extra


class WhisperCppTranscriber(Transcriber):
    """Token-level timestamps from whisper.cpp (``-ojf``)."""

    name = "whisper-cpp"

    def __init__(
        self,
        model: str | None = None,
        language: str = "it",
        whisper_bin: str | Path | None = None,
        whisper_dir: Path | None = None,
        extra: list[str] | None = None,
        use_defaults: bool = True,
        **kwargs,
    ):
        super().__init__(model=model, language=language)
        self.whisper_bin = resolve_whisper_bin(whisper_bin, whisper_dir)
        self.extra = list(extra or [])
        self.use_defaults = use_defaults

    def command(self, audio_path: Path, output_base: Path) -> list[str]:
        if not self.model:
            raise ValidationError("--model is required for whisper.cpp")
        return [
            str(self.whisper_bin),
            "-m", str(self.model),
            "-f", str(audio_path),
            "-l", self.language,
            "-ojf",
            "-of", str(output_base),
            *build_flags(self.model, self.extra, self.use_defaults),
        ]

    def transcribe(self, audio_path: Path) -> dict:
        with tempfile.TemporaryDirectory(prefix="parlato-whisper-") as tmpdir:
            output_base = Path(tmpdir) / Path(audio_path).stem
            cmd = self.command(audio_path, output_base)
            run_tool(cmd)

            raw_path = output_base.with_name(output_base.name + ".json")
            if not raw_path.exists():
                raise ExternalToolError(cmd, f"expected whisper.cpp output at {raw_path}")
            try:
                # whisper.cpp may emit invalid UTF-8 when a token splits a character
                return json.loads(raw_path.read_text(encoding="utf-8", errors="replace"))
            except json.JSONDecodeError as e:
                raise InputFormatError(f"Invalid whisper.cpp JSON in {raw_path}: {e}") from e


def download_model(
    model: str,
    models_dir: Path | None = None,
    whisper_dir: Path | None = None,
) -> Path:
    """Fetch a ggml model with whisper.cpp's own download script."""
    whisper_dir = Path(whisper_dir or WHISPER_DIR)
    script = whisper_dir / "models" / "download-ggml-model.sh"
    models_dir = Path(models_dir or whisper_dir / "models")
    if not script.exists():
        raise ValidationError(f"Missing download script: {script}")
    models_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Downloading ggml model {model!r} into {models_dir}")
    run_tool(["sh", str(script), model, str(models_dir)])
    return models_dir / f"ggml-{model}.bin"
