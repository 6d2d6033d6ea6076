"""Core data types for parlato."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Word:
    """A single recognized word with timing."""
    text: str
    start: float     # seconds
    end: float       # seconds


@dataclass
class Transcript:
    """Normalized recognizer output."""
    words: list[Word]
    language: str
    duration: float  # max word end (seconds)

    def to_dict(self) -> dict:
        return {
            "language": self.language,
            "duration_sec": self.duration,
            "words": [
                {"w": w.text, "start": w.start, "end": w.end}
                for w in self.words
            ],
        }


@dataclass(frozen=True)
class Segment:
    """A bounded run of consecutive words, one flashcard's worth."""
    id: str                  # "seg_00001"
    start: float             # first member word start (seconds)
    end: float               # last member word end (seconds)
    display_text: str        # raw text minus fillers
    raw_text: str
    word_indices: tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "text": self.display_text,
            "raw_text": self.raw_text,
            "word_indices": list(self.word_indices),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Segment":
        return cls(
            id=str(data["id"]),
            start=float(data["start"]),
            end=float(data["end"]),
            display_text=str(data.get("text", data.get("raw_text", ""))),
            raw_text=str(data.get("raw_text", data.get("text", ""))),
            word_indices=tuple(int(i) for i in data.get("word_indices", [])),
        )


@dataclass
class DeckResult:
    """Output of one package build."""
    output_path: Path
    deck_id: int
    model_id: int
    cards: int
    media: dict[str, str]   # manifest key -> original clip filename
    skipped: list[str] = field(default_factory=list)   # segment ids without media
