"""Note/card rows and the collection database for one deck build."""

import hashlib
import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path

from parlato.anki.schema import collection_sql, escape_sql
from parlato.errors import PackageIOError
from parlato.types import Segment

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "\x1f"
CLIP_SUFFIX = ".mp3"


@dataclass(frozen=True)
class NoteRow:
    id: int
    guid: str
    model_id: int
    mod: int
    fields: str       # Front + FIELD_SEPARATOR + Back
    sort_field: str   # Front
    checksum: int


@dataclass(frozen=True)
class CardRow:
    id: int
    note_id: int
    deck_id: int
    mod: int
    due: int


class IdAllocator:
    """Note/card ids and due positions for a single build.

    Note ids step by 2 from the build epoch; each card takes its note id + 1.
    """

    def __init__(self, epoch_ms: int):
        self._next_note_id = epoch_ms
        self._next_due = 1

    def allocate(self) -> tuple[int, int, int]:
        """Return (note_id, card_id, due) for the next card."""
        note_id = self._next_note_id
        due = self._next_due
        self._next_note_id += 2
        self._next_due += 1
        return note_id, note_id + 1, due


def field_checksum(text: str) -> int:
    """First 8 hex digits of the SHA-1 of text, as an unsigned 32-bit int."""
    return int(hashlib.sha1(text.encode("utf-8")).hexdigest()[:8], 16)


def note_guid(deck_id: int, front: str, back: str) -> str:
    return hashlib.sha1(f"{deck_id}{front}{back}".encode("utf-8")).hexdigest()


def clip_filename(segment: Segment) -> str:
    return f"{segment.id}{CLIP_SUFFIX}"


def find_clips(segments: list[Segment], clips_dir: Path) -> dict[str, Path]:
    """Map segment id → clip path for the segments whose clip exists."""
    clips_dir = Path(clips_dir)
    found = {}
    for seg in segments:
        path = clips_dir / clip_filename(seg)
        if path.is_file():
            found[seg.id] = path
        else:
            logger.debug(f"No clip for {seg.id} at {path}, skipping")
    return found


def render_fields(segment: Segment, audio_file: str, episode: str = "") -> tuple[str, str]:
    """Front/back field HTML for one segment."""
    front = f"{segment.display_text}<br>[sound:{audio_file}]"
    meta = " | ".join(
        part for part in (episode, f"{segment.start:.2f}-{segment.end:.2f}") if part
    )
    back = f"{segment.raw_text}<br>{meta}"
    return front, back


def build_rows(
    segments: list[Segment],
    clips: dict[str, Path],
    deck_id: int,
    model_id: int,
    epoch_ms: int,
    episode: str = "",
) -> list[tuple[NoteRow, CardRow]]:
    """Build one (note, card) pair per segment that has a clip, in segment order."""
    ids = IdAllocator(epoch_ms)
    mod = epoch_ms // 1000
    rows = []
    for seg in segments:
        clip = clips.get(seg.id)
        if clip is None:
            continue
        front, back = render_fields(seg, clip.name, episode)
        fields = f"{front}{FIELD_SEPARATOR}{back}"
        note_id, card_id, due = ids.allocate()
        note = NoteRow(
            id=note_id,
            guid=note_guid(deck_id, front, back),
            model_id=model_id,
            mod=mod,
            fields=fields,
            sort_field=front,
            checksum=field_checksum(fields),
        )
        card = CardRow(id=card_id, note_id=note_id, deck_id=deck_id, mod=mod, due=due)
        rows.append((note, card))
    return rows


def note_sql(note: NoteRow) -> str:
    return (
        f"INSERT INTO notes VALUES({note.id},'{escape_sql(note.guid)}',"
        f"{note.model_id},{note.mod},-1,'','{escape_sql(note.fields)}',"
        f"'{escape_sql(note.sort_field)}',{note.checksum},0,'');\n"
    )


def card_sql(card: CardRow) -> str:
    # type=0/queue=0: new card; review state fields all zero
    return (
        f"INSERT INTO cards VALUES({card.id},{card.note_id},{card.deck_id},"
        f"0,{card.mod},-1,0,0,{card.due},0,0,0,0,0,0,0,0,'');\n"
    )


def write_collection(
    db_path: Path,
    rows: list[tuple[NoteRow, CardRow]],
    deck_name: str,
    deck_id: int,
    model_id: int,
    mod: int,
) -> Path:
    """Create the collection database at db_path (replacing any old file)."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    if db_path.exists():
        db_path.unlink()

    parts = [collection_sql(deck_name, deck_id, model_id, mod), "BEGIN TRANSACTION;\n"]
    for note, card in rows:
        parts.append(note_sql(note))
        parts.append(card_sql(card))
    parts.append("COMMIT;\n")

    try:
        with closing(sqlite3.connect(db_path)) as conn:
            conn.executescript("".join(parts))
    except sqlite3.Error as e:
        raise PackageIOError(f"Failed to write collection {db_path}: {e}") from e
    logger.debug(f"Wrote {len(rows)} notes to {db_path}")
    return db_path
