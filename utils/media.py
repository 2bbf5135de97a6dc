"""
Media helpers:
- stash_upload(): save an incoming multipart file to the temp directory
- LocalMediaUploader: moves a stashed file into MEDIA_ROOT and returns its public URL
"""
from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import Protocol

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

REMOTE_PREFIXES = ("http://", "https://")


class MediaUploader(Protocol):
    def upload(self, reference: str | None) -> str | None:
        """Return the remote URL for a local file path, or None on failure."""
        ...

    def remove(self, url: str | None) -> None:
        """Delete a file previously returned by upload(); unknown URLs are ignored."""
        ...


def stash_upload(file: FileStorage | None, tmp_dir: str) -> str | None:
    """Save a multipart file under tmp_dir; returns the local path."""
    if file is None or not file.filename:
        return None
    name = secure_filename(file.filename) or "upload"
    target_dir = Path(tmp_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"{uuid.uuid4().hex}-{name}"
    file.save(str(path))
    return str(path)


def discard(path: str | None) -> None:
    """Remove a stashed file if it is still there."""
    if path and not path.startswith(REMOTE_PREFIXES):
        Path(path).unlink(missing_ok=True)


class LocalMediaUploader:
    """Stores uploads under media_root and serves them from base_url."""

    def __init__(self, media_root: str, base_url: str):
        self.media_root = Path(media_root)
        self.base_url = base_url.rstrip("/")

    def upload(self, reference: str | None) -> str | None:
        if not reference:
            return None
        # Already hosted somewhere
        if reference.startswith(REMOTE_PREFIXES):
            return reference
        source = Path(reference)
        if not source.is_file():
            logger.warning("Upload source missing: %s", source.name)
            return None
        self.media_root.mkdir(parents=True, exist_ok=True)
        name = f"{uuid.uuid4().hex}{source.suffix.lower()}"
        # the local copy is consumed by the upload
        shutil.move(str(source), str(self.media_root / name))
        return f"{self.base_url}/{name}"

    def remove(self, url: str | None) -> None:
        if not url or not url.startswith(self.base_url + "/"):
            return
        name = Path(url[len(self.base_url) + 1:]).name
        (self.media_root / name).unlink(missing_ok=True)
