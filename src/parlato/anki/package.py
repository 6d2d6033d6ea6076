"""Staging directory handling and .apkg archive assembly."""

import json
import logging
import os
import shutil
import zipfile
from contextlib import contextmanager
from pathlib import Path

from parlato.errors import PackageIOError

logger = logging.getLogger(__name__)

COLLECTION_NAME = "collection.anki2"
MEDIA_NAME = "media"

# Fixed member timestamp so identical inputs give identical archives.
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def staging_dir_for(output_path: Path) -> Path:
    return Path(f"{output_path}.tmp")


@contextmanager
def staging_dir(output_path: Path):
    """Yield a fresh staging directory next to output_path, always removed on exit.

    A stale directory left by a killed build is wiped, not reused.
    """
    path = staging_dir_for(Path(output_path))
    try:
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True)
    except OSError as e:
        raise PackageIOError(f"Cannot create staging directory {path}: {e}") from e
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


def stage_media(staging: Path, media: dict[str, Path]) -> dict[str, str]:
    """Copy clips into staging under their manifest keys and write the manifest.

    Returns the manifest (key → original filename).
    """
    manifest = {}
    for key, src in media.items():
        shutil.copyfile(src, staging / key)
        manifest[key] = Path(src).name
    (staging / MEDIA_NAME).write_text(
        json.dumps(manifest, separators=(",", ":"), ensure_ascii=False),
        encoding="utf-8",
    )
    return manifest


def member_order(manifest: dict[str, str]) -> list[str]:
    """Archive member names: collection, manifest, then media keys ascending."""
    return [COLLECTION_NAME, MEDIA_NAME] + sorted(manifest, key=int)


def _write_zip(staging: Path, members: list[str], zip_path: Path) -> None:
    with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name in members:
            info = zipfile.ZipInfo(name, date_time=_ZIP_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, (staging / name).read_bytes())


def assemble_package(staging: Path, manifest: dict[str, str], output_path: Path) -> Path:
    """Zip staged files into output_path, replacing any previous file there."""
    output_path = Path(output_path)
    members = member_order(manifest)
    partial = staging / "package.apkg.part"
    try:
        _write_zip(staging, members, partial)
        if output_path.exists():
            output_path.unlink()
        os.replace(partial, output_path)
    except OSError as e:
        raise PackageIOError(f"Cannot write package {output_path}: {e}") from e
    logger.info(f"Wrote {output_path} ({len(manifest)} media files)")
    return output_path
