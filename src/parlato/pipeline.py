"""Pipeline stages: media → 16kHz WAV → words → segments → clips → deck."""

import logging
import shutil
from pathlib import Path

from parlato.anki import DEFAULT_DECK_NAME, build_apkg
from parlato.asr import get_transcriber
from parlato.asr.whisper_cpp import (
    WHISPER_DIR,
    default_model_path,
    download_model,
    resolve_whisper_bin,
)
from parlato.audio import cut_clip, extract_audio
from parlato.errors import ValidationError
from parlato.segment import SegmentOptions, load_segments, save_segments, segment_words
from parlato.types import DeckResult, Segment, Transcript
from parlato.words import DEFAULT_LANGUAGE, load_transcript, normalize, save_transcript

logger = logging.getLogger(__name__)


def preprocess(input_path: Path, output_path: Path, use_cache: bool = False) -> Path:
    """Transcode input media to mono 16kHz WAV."""
    input_path = Path(input_path)
    output_path = Path(output_path)

    input_hash = None
    if use_cache:
        from parlato.cache import file_hash, get_cached_audio
        try:
            input_hash = file_hash(input_path)
        except OSError:
            input_hash = None
        cached = get_cached_audio(input_hash) if input_hash else None
        if cached is not None:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(cached, output_path)
            return output_path

    extract_audio(input_path, output_path)
    if input_hash:
        from parlato.cache import store_audio_cache
        store_audio_cache(input_hash, output_path)
    return output_path


def transcribe(
    audio_path: Path,
    output_path: Path,
    backend: str = "whisper-cpp",
    model: str | None = None,
    language: str = DEFAULT_LANGUAGE,
    use_cache: bool = False,
    **backend_kwargs,
) -> Transcript:
    """Recognize audio_path and write the normalized words JSON to output_path."""
    transcriber = get_transcriber(backend, model=model, language=language, **backend_kwargs)

    audio_hash = None
    raw = None
    if use_cache:
        from parlato.cache import file_hash, get_cached_transcription
        audio_hash = file_hash(Path(audio_path))
        raw = get_cached_transcription(
            audio_hash, transcriber.name, transcriber.cache_key(), language,
        )

    if raw is None:
        raw = transcriber.transcribe(Path(audio_path))
        if audio_hash:
            from parlato.cache import store_transcription_cache
            store_transcription_cache(
                audio_hash, transcriber.name, transcriber.cache_key(), language, raw,
            )

    transcript = normalize(raw, language=language)
    save_transcript(transcript, output_path)
    logger.info(
        f"Transcribed {len(transcript.words)} words "
        f"({transcript.duration:.1f}s, language={transcript.language})"
    )
    return transcript


def segment(
    words_path: Path,
    output_path: Path,
    options: SegmentOptions | None = None,
) -> list[Segment]:
    transcript = load_transcript(words_path)
    segments = segment_words(transcript.words, options)
    save_segments(segments, output_path)
    return segments


def clip(
    input_path: Path,
    segments_path: Path,
    clips_dir: Path,
    reencode: bool = False,
) -> list[Path]:
    """Cut one <segment id>.mp3 per segment, with a .txt of its display text beside it."""
    segments = load_segments(segments_path)
    clips_dir = Path(clips_dir)
    clips_dir.mkdir(parents=True, exist_ok=True)

    outputs = []
    for seg in segments:
        (clips_dir / f"{seg.id}.txt").write_text(seg.display_text + "\n", encoding="utf-8")
        out = clips_dir / f"{seg.id}.mp3"
        cut_clip(input_path, out, seg.start, seg.end, reencode=reencode)
        outputs.append(out)
    logger.info(f"Cut {len(outputs)} clips into {clips_dir}")
    return outputs


def anki(
    segments_path: Path,
    clips_dir: Path,
    output_path: Path,
    deck_name: str = DEFAULT_DECK_NAME,
    episode: str = "",
) -> DeckResult:
    segments = load_segments(segments_path)
    return build_apkg(segments, clips_dir, output_path, deck_name=deck_name, episode=episode)


def _remove_previous_outputs(files: list[Path], clips_dir: Path) -> None:
    for path in files:
        if path.exists():
            path.unlink()
    if clips_dir.exists():
        shutil.rmtree(clips_dir)


def full_default(
    input_path: Path,
    out_dir: Path | None = None,
    deck_name: str = DEFAULT_DECK_NAME,
    episode: str | None = None,
    whisper_dir: Path | None = None,
    options: SegmentOptions | None = None,
    use_cache: bool = True,
) -> DeckResult:
    """Run every stage with whisper.cpp and the base model."""
    input_path = Path(input_path)
    base_name = input_path.stem
    out_dir = Path(out_dir) if out_dir else Path.cwd() / "out" / base_name
    episode = episode if episode is not None else base_name
    whisper_dir = Path(whisper_dir or WHISPER_DIR)

    whisper_bin = resolve_whisper_bin(whisper_dir=whisper_dir)
    model_path = default_model_path(whisper_dir)

    out_dir.mkdir(parents=True, exist_ok=True)
    wav_path = out_dir / f"{base_name}.wav"
    words_path = out_dir / "transcript.words.json"
    segments_path = out_dir / "segments.json"
    clips_dir = out_dir / "clips"
    deck_path = out_dir / "deck.apkg"

    if not whisper_bin.exists():
        raise ValidationError(
            f"whisper.cpp binary not found at {whisper_bin}. Build whisper.cpp first."
        )
    if not model_path.exists():
        logger.info("Model not found, downloading ggml-base...")
        download_model("base", whisper_dir / "models", whisper_dir=whisper_dir)

    _remove_previous_outputs([wav_path, words_path, segments_path, deck_path], clips_dir)

    logger.info("Preprocessing audio...")
    preprocess(input_path, wav_path, use_cache=use_cache)

    logger.info("Transcribing with whisper.cpp...")
    transcribe(
        wav_path, words_path,
        backend="whisper-cpp",
        model=str(model_path),
        language=DEFAULT_LANGUAGE,
        whisper_bin=whisper_bin,
        use_cache=use_cache,
    )

    logger.info("Segmenting transcript...")
    segment(words_path, segments_path, options)

    logger.info("Clipping audio segments...")
    clip(input_path, segments_path, clips_dir, reencode=True)

    logger.info("Building Anki deck...")
    return anki(segments_path, clips_dir, deck_path, deck_name=deck_name, episode=episode)
