"""File-based caching for expensive pipeline operations."""

import hashlib
import json
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

CACHE_DIR = Path(os.environ.get("PARLATO_CACHE_DIR", "~/.cache/parlato")).expanduser()

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def file_hash(path: Path) -> str:
    """Compute SHA-256 hash of a file's contents."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def _atomic_write(target: Path, data: bytes) -> None:
    """Write data to target atomically via temp file + rename."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, target)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def _key_part(value: str) -> str:
    # Model references may be full paths to ggml files.
    return _UNSAFE_KEY_CHARS.sub("-", Path(value).stem or value)


# --- Audio extraction cache ---


def _extract_cache_path(input_hash: str) -> Path:
    return CACHE_DIR / "extract" / f"{input_hash}.wav"


def get_cached_audio(input_hash: str) -> Path | None:
    """Return cached extracted audio path, or None if not cached."""
    path = _extract_cache_path(input_hash)
    if path.exists() and path.stat().st_size > 0:
        logger.info(f"Cache hit: audio extraction ({input_hash[:12]}...)")
        return path
    return None


def store_audio_cache(input_hash: str, audio_path: Path) -> Path:
    """Copy extracted audio into cache. Returns the cache path."""
    dest = _extract_cache_path(input_hash)
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(audio_path, dest)
    logger.info(f"Cached audio extraction ({input_hash[:12]}...)")
    return dest


# --- Transcription cache ---


def _transcription_cache_path(
    audio_hash: str, backend: str, model: str, language: str
) -> Path:
    name = "_".join([audio_hash, backend, _key_part(model), language])
    return CACHE_DIR / "transcribe" / f"{name}.json"


def get_cached_transcription(
    audio_hash: str, backend: str, model: str, language: str
) -> dict | None:
    """Return the cached raw recognizer document, or None if not cached."""
    path = _transcription_cache_path(audio_hash, backend, model, language)
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            logger.info(f"Cache hit: transcription ({audio_hash[:12]}...)")
            return data
        except (json.JSONDecodeError, OSError):
            return None
    return None


def store_transcription_cache(
    audio_hash: str, backend: str, model: str, language: str, result: dict
) -> None:
    """Store a raw recognizer document in cache."""
    path = _transcription_cache_path(audio_hash, backend, model, language)
    _atomic_write(path, json.dumps(result).encode("utf-8"))
    logger.info(f"Cached transcription ({audio_hash[:12]}...)")
