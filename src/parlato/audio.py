"""Audio processing via ffmpeg."""

from pathlib import Path

from parlato.errors import ValidationError
from parlato.external import run_tool


def extract_audio(input_path: Path, output_path: Path) -> Path:
    """Extract/resample audio to 16kHz mono WAV for Whisper."""
    input_path = Path(input_path)
    output_path = Path(output_path)
    if not input_path.exists():
        raise FileNotFoundError(f"File not found: {input_path}")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        "ffmpeg", "-y", "-i", str(input_path),
        "-ac", "1", "-ar", "16000", "-vn",
        str(output_path),
    ]
    run_tool(cmd, timeout=3600)
    return output_path


def cut_clip(
    input_path: Path,
    output_path: Path,
    start: float,
    end: float,
    reencode: bool = False,
) -> Path:
    """Cut [start, end] out of input_path into a standalone file.

    With reencode the clip is rendered as 44.1kHz stereo VBR MP3, which
    keeps cut points sample-accurate; otherwise streams are copied and the
    cut snaps to the nearest frame.
    """
    if end < start:
        raise ValidationError(f"Invalid clip range: {start}-{end}")

    cmd = [
        "ffmpeg",
        "-ss", str(start),
        "-to", str(end),
        "-i", str(input_path),
        "-y",
    ]
    if reencode:
        cmd.extend([
            "-ar", "44100", "-ac", "2",
            "-codec:a", "libmp3lame", "-q:a", "4",
        ])
    else:
        cmd.extend(["-c", "copy"])
    cmd.append(str(output_path))

    run_tool(cmd, timeout=120)
    return Path(output_path)
