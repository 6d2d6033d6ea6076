"""Recognizer output → one flat, ordered list of timed words.

Three document shapes are understood, told apart by their top-level key:

    flat        {"words": [{"word"|"w"|"text", "start", "end"}, ...]}
    nested      {"segments": [{"words": [...]}, ...]}          (openai-whisper)
    tokens      {"transcription": [{"tokens": [...]}, ...]}    (whisper.cpp -ojf)

Token documents carry sub-word pieces with millisecond ``offsets``; a piece
with leading whitespace starts a new word, anything else is glued onto the
word currently open.
"""

import json
import logging
import math
import re
from pathlib import Path

from parlato.errors import InputFormatError
from parlato.types import Transcript, Word

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "it"

# whisper.cpp control tokens such as [_BEG_] or [_TT_150]
_SPECIAL_TOKEN_RE = re.compile(r"^\[_[^\]]*\]$")


def _seconds(value) -> float | None:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds):
        return None
    return seconds


def _word_text(entry: dict) -> str:
    return str(entry.get("w") or entry.get("word") or entry.get("text") or "")


def _word_from_entry(entry: dict) -> tuple[str, float | None, float | None]:
    return (
        _word_text(entry).strip(),
        _seconds(entry.get("start")),
        _seconds(entry.get("end")),
    )


def _flat_words(raw: dict) -> list[tuple]:
    return [_word_from_entry(w) for w in raw["words"] if isinstance(w, dict)]


def _nested_words(raw: dict) -> list[tuple]:
    out = []
    for seg in raw["segments"]:
        if not isinstance(seg, dict) or not isinstance(seg.get("words"), list):
            continue
        out.extend(_word_from_entry(w) for w in seg["words"] if isinstance(w, dict))
    return out


def _token_interval(token: dict) -> tuple[float, float] | None:
    offsets = token.get("offsets")
    if not isinstance(offsets, dict):
        return None
    start = _seconds(offsets.get("from"))
    end = _seconds(offsets.get("to"))
    if start is None or end is None:
        return None
    return start / 1000.0, end / 1000.0


def tokens_to_words(tokens: list[dict]) -> list[tuple]:
    """Reassemble whisper.cpp sub-word tokens into (text, start, end) words.

    A word's start comes from its first timed token and its end from its
    most recent timed token. Words that never saw a timed token keep None
    for the missing bound.
    """
    words: list[list] = []
    current: list | None = None

    for token in tokens:
        if not isinstance(token, dict):
            continue
        text = str(token.get("text") or "")
        piece = text.strip()
        if not piece or _SPECIAL_TOKEN_RE.match(piece):
            continue

        interval = _token_interval(token)
        if current is None or text[:1].isspace():
            current = [
                piece,
                interval[0] if interval else None,
                interval[1] if interval else None,
            ]
            words.append(current)
            continue

        current[0] += piece
        if interval:
            if current[1] is None:
                current[1] = interval[0]
            current[2] = interval[1]

    return [tuple(w) for w in words]


def _token_words(raw: dict) -> list[tuple]:
    out = []
    for seg in raw["transcription"]:
        if not isinstance(seg, dict) or not isinstance(seg.get("tokens"), list):
            continue
        out.extend(tokens_to_words(seg["tokens"]))
    return out


_SHAPES = {
    "words": _flat_words,
    "segments": _nested_words,
    "transcription": _token_words,
}


def detect_shape(raw) -> str:
    """Return which recognizer shape a document has ("words", "segments" or "transcription")."""
    if isinstance(raw, dict):
        for key in _SHAPES:
            if isinstance(raw.get(key), list):
                return key
    raise InputFormatError(
        "Unrecognized recognizer output: expected a top-level "
        f"{' / '.join(repr(k) for k in _SHAPES)} list"
    )


def _detected_language(raw: dict) -> str | None:
    if isinstance(raw.get("language"), str) and raw["language"]:
        return raw["language"]
    result = raw.get("result")
    if isinstance(result, dict) and isinstance(result.get("language"), str):
        return result["language"] or None
    return None


def normalize(raw: dict, language: str | None = None) -> Transcript:
    """Normalize one recognizer document into a Transcript.

    Words without text, or without a usable start/end time, are dropped.
    The result is ordered by start time; ties keep document order.
    Raises InputFormatError when the shape is unknown or nothing survives.
    """
    shape = detect_shape(raw)
    candidates = _SHAPES[shape](raw)

    words = []
    for text, start, end in candidates:
        if not text or start is None or end is None:
            continue
        start = max(0.0, start)
        words.append(Word(text=text, start=start, end=max(start, end)))
    words.sort(key=lambda w: w.start)

    logger.debug(f"Normalized {len(words)}/{len(candidates)} words from {shape!r} document")
    if not words:
        raise InputFormatError(
            "No timed words found. Run whisper.cpp with --output-json-full "
            "and --dtw <model>, or use a backend with word timestamps."
        )

    return Transcript(
        words=words,
        language=language or _detected_language(raw) or DEFAULT_LANGUAGE,
        duration=max(w.end for w in words),
    )


def load_transcript(path: Path) -> Transcript:
    """Read a words JSON file (or any raw recognizer document) from disk."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InputFormatError(f"Invalid JSON in {path}: {e}") from e
    return normalize(raw)


def save_transcript(transcript: Transcript, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(transcript.to_dict(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    return path
