"""Tests for staging and .apkg archive assembly."""

import json
import zipfile

import pytest

from parlato.anki.package import (
    COLLECTION_NAME,
    MEDIA_NAME,
    assemble_package,
    member_order,
    stage_media,
    staging_dir,
    staging_dir_for,
)


def test_member_order_sorts_keys_numerically():
    manifest = {str(i): f"seg_{i + 1:05d}.mp3" for i in range(12)}
    order = member_order(manifest)
    assert order[:2] == [COLLECTION_NAME, MEDIA_NAME]
    assert order[2:] == [str(i) for i in range(12)]  # "10" after "9"


def test_staging_dir_removed_on_success(tmp_path):
    out = tmp_path / "deck.apkg"
    with staging_dir(out) as staging:
        assert staging == staging_dir_for(out)
        (staging / "x").write_text("x")
    assert not staging.exists()


def test_staging_dir_removed_on_error(tmp_path):
    out = tmp_path / "deck.apkg"
    with pytest.raises(RuntimeError):
        with staging_dir(out) as staging:
            raise RuntimeError("boom")
    assert not staging.exists()


def test_stale_staging_dir_is_wiped(tmp_path):
    out = tmp_path / "deck.apkg"
    stale = staging_dir_for(out)
    stale.mkdir()
    (stale / "leftover").write_text("old")
    with staging_dir(out) as staging:
        assert list(staging.iterdir()) == []


def test_stage_media_copies_and_writes_manifest(tmp_path):
    clips = tmp_path / "clips"
    clips.mkdir()
    (clips / "seg_00001.mp3").write_bytes(b"one")
    (clips / "seg_00003.mp3").write_bytes(b"three")
    staging = tmp_path / "stage"
    staging.mkdir()

    manifest = stage_media(staging, {
        "0": clips / "seg_00001.mp3",
        "1": clips / "seg_00003.mp3",
    })

    assert manifest == {"0": "seg_00001.mp3", "1": "seg_00003.mp3"}
    assert (staging / "0").read_bytes() == b"one"
    assert (staging / "1").read_bytes() == b"three"
    assert json.loads((staging / MEDIA_NAME).read_text()) == manifest


def _staged(tmp_path, manifest):
    staging = tmp_path / "stage"
    staging.mkdir()
    (staging / COLLECTION_NAME).write_bytes(b"SQLite format 3\x00")
    (staging / MEDIA_NAME).write_text(json.dumps(manifest))
    for key in manifest:
        (staging / key).write_bytes(key.encode())
    return staging


def test_assemble_package_member_order(tmp_path):
    manifest = {"0": "seg_00001.mp3", "1": "seg_00002.mp3"}
    staging = _staged(tmp_path, manifest)
    out = assemble_package(staging, manifest, tmp_path / "deck.apkg")

    with zipfile.ZipFile(out) as zf:
        assert zf.namelist() == [COLLECTION_NAME, MEDIA_NAME, "0", "1"]
        assert zf.read("1") == b"1"
        assert json.loads(zf.read(MEDIA_NAME)) == manifest


def test_assemble_package_overwrites_previous(tmp_path):
    out = tmp_path / "deck.apkg"
    out.write_bytes(b"old deck")
    staging = _staged(tmp_path, {})
    assemble_package(staging, {}, out)
    with zipfile.ZipFile(out) as zf:
        assert zf.namelist() == [COLLECTION_NAME, MEDIA_NAME]


def test_assemble_package_is_reproducible(tmp_path):
    manifest = {"0": "seg_00001.mp3"}
    staging = _staged(tmp_path, manifest)
    first = assemble_package(staging, manifest, tmp_path / "a.apkg").read_bytes()
    second = assemble_package(staging, manifest, tmp_path / "b.apkg").read_bytes()
    assert first == second
