"""Speech timing extraction backends."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class Transcriber(ABC):
    """Abstract base for speech recognition backends."""

    name: str = "base"

    def __init__(self, model: str | None = None, language: str = "it", **kwargs):
        self.model = model
        self.language = language

    @abstractmethod
    def transcribe(self, audio_path: Path) -> dict:
        """Recognize audio_path and return a raw recognizer document.

        The document has one of the shapes understood by
        ``parlato.words.normalize`` (flat, nested or token-based).
        """

    def cache_key(self) -> str:
        return str(self.model or "")


def _get_whisper_cpp_class():
    from parlato.asr.whisper_cpp import WhisperCppTranscriber
    return WhisperCppTranscriber


def _get_whisper_class():
    """Lazy import of the Python whisper backend (pulls in torch)."""
    from parlato.asr.pywhisper import WhisperTranscriber
    return WhisperTranscriber


_TRANSCRIBERS = {
    "whisper-cpp": _get_whisper_cpp_class,
    "whisper": _get_whisper_class,
}


def get_transcriber(name: str, **kwargs) -> Transcriber:
    """Get a transcription backend by name.

    Backends:
        "whisper-cpp": whisper.cpp ``whisper-cli`` binary, token-level JSON.
        "whisper": the openai-whisper Python package, word timestamps.
    """
    if name not in _TRANSCRIBERS:
        raise ValueError(
            f"Unknown transcriber: {name!r}. Available: {list(_TRANSCRIBERS.keys())}"
        )
    cls = _TRANSCRIBERS[name]()
    logger.debug(f"Using {name} transcriber")
    return cls(**kwargs)
