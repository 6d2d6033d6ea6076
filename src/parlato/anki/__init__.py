"""Anki deck export: segments + audio clips → a single .apkg file."""

import logging
import time
from pathlib import Path

from parlato.anki.collection import build_rows, find_clips, write_collection
from parlato.anki.package import (
    COLLECTION_NAME,
    assemble_package,
    stage_media,
    staging_dir,
)
from parlato.types import DeckResult, Segment

logger = logging.getLogger(__name__)

DEFAULT_DECK_NAME = "Italian Podcast"


def media_keys(segments: list[Segment], clips: dict[str, Path]) -> dict[str, Path]:
    """Assign "0", "1", ... to clips in segment order."""
    keyed = {}
    for seg in segments:
        if seg.id in clips:
            keyed[str(len(keyed))] = clips[seg.id]
    return keyed


def build_apkg(
    segments: list[Segment],
    clips_dir: str | Path,
    output_path: str | Path,
    deck_name: str = DEFAULT_DECK_NAME,
    episode: str = "",
    epoch_ms: int | None = None,
) -> DeckResult:
    """Build a deck with one card per segment that has a clip in clips_dir.

    Segments without a clip are skipped. epoch_ms seeds the deck, model,
    note and card ids (defaults to the current time).
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if epoch_ms is None:
        epoch_ms = int(time.time() * 1000)
    deck_id = epoch_ms
    model_id = deck_id + 1

    clips = find_clips(segments, Path(clips_dir))
    skipped = [seg.id for seg in segments if seg.id not in clips]
    if skipped:
        logger.info(f"{len(skipped)} segment(s) have no clip and will be skipped")

    rows = build_rows(segments, clips, deck_id, model_id, epoch_ms, episode=episode)

    with staging_dir(output_path) as staging:
        write_collection(
            staging / COLLECTION_NAME, rows, deck_name, deck_id, model_id,
            mod=epoch_ms // 1000,
        )
        manifest = stage_media(staging, media_keys(segments, clips))
        assemble_package(staging, manifest, output_path)

    return DeckResult(
        output_path=output_path,
        deck_id=deck_id,
        model_id=model_id,
        cards=len(rows),
        media=manifest,
        skipped=skipped,
    )
