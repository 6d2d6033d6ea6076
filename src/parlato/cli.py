"""CLI entrypoint for parlato: subcommand dispatcher."""

import argparse
import logging
import sys
import warnings
from pathlib import Path

from parlato.anki import DEFAULT_DECK_NAME
from parlato.errors import ParlatoError
from parlato.segment import DEFAULT_MAX_DURATION, DEFAULT_MAX_GAP, DEFAULT_MAX_WORDS
from parlato.words import DEFAULT_LANGUAGE

logger = logging.getLogger("parlato")


def _add_verbose(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-v", "--verbose", action="store_true", default=False,
                        help="Debug logging, dependency warnings and tracebacks")


def _add_cache(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--no-cache", action="store_true", default=False,
                        help="Disable file-based caching of extraction and transcription")


def _add_segment_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--max-gap", type=float, default=DEFAULT_MAX_GAP,
                        help=f"Silence (s) that closes a segment (default: {DEFAULT_MAX_GAP})")
    parser.add_argument("--max-words", type=int, default=DEFAULT_MAX_WORDS,
                        help=f"Max words per segment (default: {DEFAULT_MAX_WORDS})")
    parser.add_argument("--max-duration", type=float, default=DEFAULT_MAX_DURATION,
                        help=f"Max segment duration in s (default: {DEFAULT_MAX_DURATION})")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments with subcommands."""
    parser = argparse.ArgumentParser(
        prog="parlato",
        description="Turn spoken-word audio into phrase-level Anki flashcards",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    p = subparsers.add_parser(
        "full-default",
        help="Run every stage with whisper.cpp and the base model",
    )
    p.add_argument("input_audio", type=Path)
    p.add_argument("--out-dir", type=Path, default=None,
                   help="Output directory (default: ./out/<input name>)")
    p.add_argument("--deck-name", default=DEFAULT_DECK_NAME,
                   help=f"Deck name (default: {DEFAULT_DECK_NAME})")
    p.add_argument("--episode", default=None,
                   help="Episode label on card backs (default: input file name)")
    p.add_argument("--whisper-dir", type=Path, default=None,
                   help="whisper.cpp checkout (default: $PARLATO_WHISPER_DIR or ./whisper.cpp)")
    _add_segment_args(p)
    _add_cache(p)
    _add_verbose(p)

    p = subparsers.add_parser("preprocess", help="Transcode media to mono 16kHz WAV")
    p.add_argument("input_media", type=Path)
    p.add_argument("output_wav", type=Path)
    _add_cache(p)
    _add_verbose(p)

    p = subparsers.add_parser("download-model", help="Download a whisper.cpp ggml model")
    p.add_argument("model", help="Model name, e.g. base, small, large-v3")
    p.add_argument("models_dir", type=Path, nargs="?", default=None)
    p.add_argument("--whisper-dir", type=Path, default=None)
    _add_verbose(p)

    p = subparsers.add_parser("transcribe", help="Recognize a WAV into timed words JSON")
    p.add_argument("input_wav", type=Path)
    p.add_argument("output_words_json", type=Path)
    p.add_argument("--backend", default="whisper-cpp", choices=["whisper-cpp", "whisper"],
                   help="Recognition backend (default: whisper-cpp)")
    p.add_argument("--whisper-bin", type=Path, default=None,
                   help="whisper-cli binary (default: found under --whisper-dir)")
    p.add_argument("--whisper-dir", type=Path, default=None)
    p.add_argument("--model", default=None,
                   help="ggml model path (whisper-cpp) or model size (whisper)")
    p.add_argument("--language", default=DEFAULT_LANGUAGE,
                   help=f"Language code (default: {DEFAULT_LANGUAGE})")
    p.add_argument("--extra", default="",
                   help="Extra whisper-cli flags, space separated")
    p.add_argument("--no-defaults", action="store_true", default=False,
                   help="Do not add the default whisper-cli decode flags")
    _add_cache(p)
    _add_verbose(p)

    p = subparsers.add_parser("segment", help="Group timed words into phrase segments")
    p.add_argument("input_words_json", type=Path)
    p.add_argument("output_segments_json", type=Path)
    _add_segment_args(p)
    _add_verbose(p)

    p = subparsers.add_parser("clip", help="Cut one audio clip per segment")
    p.add_argument("input_media", type=Path)
    p.add_argument("segments_json", type=Path)
    p.add_argument("clips_dir", type=Path)
    p.add_argument("--reencode", action="store_true", default=False,
                   help="Re-encode clips to MP3 instead of stream copy")
    _add_verbose(p)

    p = subparsers.add_parser("anki", help="Build an .apkg deck from segments and clips")
    p.add_argument("segments_json", type=Path)
    p.add_argument("clips_dir", type=Path)
    p.add_argument("output_apkg", type=Path)
    p.add_argument("--deck-name", default=DEFAULT_DECK_NAME)
    p.add_argument("--episode", default="")
    _add_verbose(p)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    return args


def _segment_options(args: argparse.Namespace):
    from parlato.segment import SegmentOptions
    return SegmentOptions(
        max_gap=args.max_gap,
        max_words=args.max_words,
        max_duration=args.max_duration,
    )


def _run(args: argparse.Namespace) -> None:
    from parlato import pipeline

    if args.command == "full-default":
        result = pipeline.full_default(
            args.input_audio,
            out_dir=args.out_dir,
            deck_name=args.deck_name,
            episode=args.episode,
            whisper_dir=args.whisper_dir,
            options=_segment_options(args),
            use_cache=not args.no_cache,
        )
        print(f"Deck: {result.output_path} ({result.cards} cards)")
    elif args.command == "preprocess":
        pipeline.preprocess(args.input_media, args.output_wav, use_cache=not args.no_cache)
    elif args.command == "download-model":
        from parlato.asr.whisper_cpp import download_model
        download_model(args.model, args.models_dir, whisper_dir=args.whisper_dir)
    elif args.command == "transcribe":
        backend_kwargs = {}
        if args.backend == "whisper-cpp":
            backend_kwargs = {
                "whisper_bin": args.whisper_bin,
                "whisper_dir": args.whisper_dir,
                "extra": args.extra.split(),
                "use_defaults": not args.no_defaults,
            }
        pipeline.transcribe(
            args.input_wav,
            args.output_words_json,
            backend=args.backend,
            model=args.model,
            language=args.language,
            use_cache=not args.no_cache,
            **backend_kwargs,
        )
    elif args.command == "segment":
        pipeline.segment(args.input_words_json, args.output_segments_json, _segment_options(args))
    elif args.command == "clip":
        pipeline.clip(args.input_media, args.segments_json, args.clips_dir, reencode=args.reencode)
    elif args.command == "anki":
        result = pipeline.anki(
            args.segments_json,
            args.clips_dir,
            args.output_apkg,
            deck_name=args.deck_name,
            episode=args.episode,
        )
        print(f"Deck: {result.output_path} ({result.cards} cards)")


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(name)s %(levelname)s: %(message)s",
    )

    if not args.verbose:
        # Silence noisy third-party warnings
        warnings.filterwarnings("ignore", message="FP16 is not supported on CPU")

    try:
        _run(args)
    except (ParlatoError, OSError) as e:
        if args.verbose:
            logger.exception("Fatal error")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
