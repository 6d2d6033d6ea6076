"""Tests for recognizer output normalization."""

import json

import pytest

from parlato.errors import InputFormatError
from parlato.types import Word
from parlato.words import (
    detect_shape,
    load_transcript,
    normalize,
    save_transcript,
    tokens_to_words,
)


def _token(text, start_ms=None, end_ms=None):
    token = {"text": text}
    if start_ms is not None:
        token["offsets"] = {"from": start_ms, "to": end_ms}
    return token


# --- shape detection ---


def test_detect_flat():
    assert detect_shape({"words": []}) == "words"


def test_detect_nested():
    assert detect_shape({"segments": [{"words": []}]}) == "segments"


def test_detect_tokens():
    assert detect_shape({"transcription": []}) == "transcription"


def test_detect_unknown_shape():
    with pytest.raises(InputFormatError):
        detect_shape({"text": "ciao"})


def test_detect_non_dict():
    with pytest.raises(InputFormatError):
        detect_shape(["ciao"])


# --- flat and nested ---


def test_flat_words_accept_any_text_key():
    raw = {"words": [
        {"w": "Ciao", "start": 0.0, "end": 0.4},
        {"word": " come", "start": 0.5, "end": 0.8},
        {"text": "stai", "start": 0.9, "end": 1.2},
    ]}
    t = normalize(raw)
    assert t.words == [
        Word("Ciao", 0.0, 0.4),
        Word("come", 0.5, 0.8),
        Word("stai", 0.9, 1.2),
    ]
    assert t.duration == 1.2


def test_nested_words_flattened_in_order():
    raw = {"segments": [
        {"words": [{"word": " Ciao", "start": 0.0, "end": 0.4}]},
        {"text": "no words here"},
        {"words": [{"word": " a tutti", "start": 1.0, "end": 1.5}]},
    ]}
    t = normalize(raw)
    assert [w.text for w in t.words] == ["Ciao", "a tutti"]


def test_words_without_text_or_time_dropped():
    raw = {"words": [
        {"w": "  ", "start": 0.0, "end": 0.1},
        {"w": "ciao", "start": None, "end": 0.5},
        {"w": "bene", "start": "x", "end": 0.5},
        {"w": "sì", "start": 1.0, "end": 1.3},
    ]}
    t = normalize(raw)
    assert [w.text for w in t.words] == ["sì"]


def test_words_ordered_by_start():
    t = normalize({"words": [
        {"w": "come", "start": 0.5, "end": 0.8},
        {"w": "Ciao", "start": 0.0, "end": 0.4},
        {"w": "stai", "start": 0.9, "end": 1.2},
    ]})
    assert [w.text for w in t.words] == ["Ciao", "come", "stai"]


def test_end_before_start_clamped():
    t = normalize({"words": [{"w": "ciao", "start": 1.0, "end": 0.5}]})
    assert t.words[0].start == 1.0
    assert t.words[0].end == 1.0


# --- token reassembly ---


def test_tokens_leading_space_starts_new_word():
    words = tokens_to_words([
        _token(" Ciao", 0, 400),
        _token(" fan", 500, 600),
        _token("tastico", 600, 900),
    ])
    assert words == [("Ciao", 0.0, 0.4), ("fantastico", 0.5, 0.9)]


def test_first_token_opens_word_without_space():
    words = tokens_to_words([_token("Allora", 0, 300)])
    assert words == [("Allora", 0.0, 0.3)]


def test_token_start_from_first_timed_piece():
    words = tokens_to_words([
        _token(" pre"),
        _token("sto", 200, 300),
        _token("!", 300, 350),
    ])
    assert words == [("presto!", 0.2, 0.35)]


def test_whitespace_and_special_tokens_skipped():
    words = tokens_to_words([
        _token("[_BEG_]", 0, 0),
        _token(" Ciao", 0, 400),
        _token("   "),
        _token("[_TT_20]", 400, 400),
    ])
    assert words == [("Ciao", 0.0, 0.4)]


def test_token_trailing_whitespace_trimmed():
    words = tokens_to_words([
        _token(" ciao ", 0, 400),
        _token(" a\n", 500, 600),
        _token(" tutti", 700, 900),
    ])
    assert [w[0] for w in words] == ["ciao", "a", "tutti"]


def test_token_document_drops_untimed_words():
    raw = {
        "result": {"language": "it"},
        "transcription": [
            {"tokens": [_token(" Ciao", 0, 400), _token(" mondo")]},
            {"tokens": [_token(" bello", 1000, 1300)]},
        ],
    }
    t = normalize(raw)
    assert [w.text for w in t.words] == ["Ciao", "bello"]
    assert t.words[1].start == 1.0
    assert t.language == "it"
    assert t.duration == 1.3


# --- language and failures ---


def test_declared_language_wins():
    raw = {"language": "en", "words": [{"w": "hi", "start": 0, "end": 1}]}
    assert normalize(raw, language="it").language == "it"
    assert normalize(raw).language == "en"


def test_language_defaults_to_italian():
    assert normalize({"words": [{"w": "ciao", "start": 0, "end": 1}]}).language == "it"


def test_no_timed_words_is_error():
    with pytest.raises(InputFormatError, match="No timed words"):
        normalize({"words": [{"w": "", "start": 0, "end": 1}]})


def test_empty_token_document_is_error():
    with pytest.raises(InputFormatError):
        normalize({"transcription": []})


# --- files ---


def test_save_and_load_transcript(tmp_path):
    t = normalize({"language": "it", "words": [{"w": "ciao", "start": 0.0, "end": 0.4}]})
    path = save_transcript(t, tmp_path / "sub" / "words.json")
    data = json.loads(path.read_text())
    assert data == {"language": "it", "duration_sec": 0.4,
                    "words": [{"w": "ciao", "start": 0.0, "end": 0.4}]}
    assert load_transcript(path).words == t.words


def test_load_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(InputFormatError):
        load_transcript(path)


def test_load_invalid_utf8(tmp_path):
    path = tmp_path / "bad.json"
    path.write_bytes(b'{"words": [{"w": "ciao\xff"}]}')
    with pytest.raises(InputFormatError, match="Invalid JSON"):
        load_transcript(path)
