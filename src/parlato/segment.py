"""Segmentation: timed words → phrase-sized segments."""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from parlato.errors import InputFormatError, ValidationError
from parlato.types import Segment, Word

logger = logging.getLogger(__name__)

DEFAULT_MAX_GAP = 0.45
DEFAULT_MAX_WORDS = 12
DEFAULT_MAX_DURATION = 3.5

# Italian discourse fillers, dropped from display text only
FILLERS = frozenset({
    "eh", "ehm", "allora", "cioè", "cioe", "diciamo", "praticamente",
    "tipo", "insomma", "boh", "capito", "ok",
})

_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,!?;:])")


@dataclass
class SegmentOptions:
    """Thresholds that close an open segment."""
    max_gap: float = DEFAULT_MAX_GAP            # seconds of silence between words
    max_words: int = DEFAULT_MAX_WORDS
    max_duration: float = DEFAULT_MAX_DURATION  # seconds

    def __post_init__(self):
        if not self.max_gap > 0:
            raise ValidationError(f"max_gap must be positive, got {self.max_gap}")
        if not self.max_words >= 1:
            raise ValidationError(f"max_words must be at least 1, got {self.max_words}")
        if not self.max_duration > 0:
            raise ValidationError(f"max_duration must be positive, got {self.max_duration}")


def normalize_token(token: str) -> str:
    """Lowercase and strip leading/trailing non-alphanumerics ("Cioè," → "cioè")."""
    token = token.lower()
    start, end = 0, len(token)
    while start < end and not token[start].isalnum():
        start += 1
    while end > start and not token[end - 1].isalnum():
        end -= 1
    return token[start:end]


def is_filler(token: str) -> bool:
    return normalize_token(token) in FILLERS


def join_words(words: list[str]) -> str:
    """Join with single spaces, re-attaching punctuation to the preceding word."""
    return _SPACE_BEFORE_PUNCT_RE.sub(r"\1", " ".join(words))


def _make_segment(ordinal: int, words: list[Word], indices: list[int]) -> Segment:
    raw_words = [w.text for w in words]
    display_words = [t for t in raw_words if not is_filler(t)]
    raw_text = join_words(raw_words)
    display_text = join_words(display_words) if display_words else raw_text
    return Segment(
        id=f"seg_{ordinal:05d}",
        start=words[0].start,
        end=words[-1].end,
        display_text=display_text,
        raw_text=raw_text,
        word_indices=tuple(indices),
    )


def segment_words(
    words: list[Word],
    options: SegmentOptions | None = None,
) -> list[Segment]:
    """Greedy single pass over words, closing a segment when any threshold hits.

    A segment closes before word i joins it when the silence since the
    previous word is >= max_gap, the segment already holds max_words words,
    or including word i would make it last >= max_duration.
    """
    options = options or SegmentOptions()
    segments: list[Segment] = []
    current: list[Word] = []
    indices: list[int] = []

    def flush() -> None:
        if not current:
            return
        segments.append(_make_segment(len(segments) + 1, current, indices))
        current.clear()
        indices.clear()

    for i, word in enumerate(words):
        if current:
            gap = word.start - current[-1].end
            duration = word.end - current[0].start
            if (
                gap >= options.max_gap
                or len(current) >= options.max_words
                or duration >= options.max_duration
            ):
                flush()
        current.append(word)
        indices.append(i)
    flush()

    logger.info(f"Segmented {len(words)} words into {len(segments)} segments")
    return segments


def save_segments(segments: list[Segment], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps([s.to_dict() for s in segments], indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    return path


def load_segments(path: Path) -> list[Segment]:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InputFormatError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, list):
        raise InputFormatError(f"Expected a list of segments in {path}")
    try:
        segments = [Segment.from_dict(item) for item in data]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise InputFormatError(f"Malformed segment in {path}: {e}") from e
    for seg in segments:
        if seg.end < seg.start:
            raise InputFormatError(
                f"Segment {seg.id} in {path} ends before it starts ({seg.start}-{seg.end})"
            )
    return segments
