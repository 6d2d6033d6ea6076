"""openai-whisper backend with word-level timestamps."""

import logging
from pathlib import Path

import whisper

from parlato.asr import Transcriber

logger = logging.getLogger(__name__)

_model_cache: dict[str, object] = {}


class WhisperTranscriber(Transcriber):
    """openai-whisper backend; ``model`` is a model size such as "base"."""

    name = "whisper"

    def __init__(self, model: str | None = None, language: str = "it", **kwargs):
        super().__init__(model=model or "base", language=language)

    def transcribe(self, audio_path: Path) -> dict:
        """Return a flat ``{"language", "words"}`` document for the normalizer."""
        if self.model not in _model_cache:
            logger.info(f"Loading whisper model {self.model!r}")
            _model_cache[self.model] = whisper.load_model(self.model)

        result = _model_cache[self.model].transcribe(
            str(audio_path),
            word_timestamps=True,
            language=self.language,
        )
        return {
            "language": result.get("language") or self.language,
            "words": [
                {"word": w["word"], "start": w["start"], "end": w["end"]}
                for seg in result.get("segments", [])
                for w in seg.get("words", [])
            ],
        }
