from __future__ import annotations

import os
import shutil
import uuid
from pathlib import Path
from typing import Iterator

from services.upload.application.interfaces import ChunkStaging

_CHUNK_PREFIX = "chunk-"


class FilesystemChunkStaging(ChunkStaging):
    """Stages chunks as ``<root>/<upload_id>/chunk-<index>``."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def session_dir(self, upload_id: str) -> Path:
        safe_id = Path(upload_id).name
        if not safe_id or safe_id in {".", ".."}:
            raise ValueError("Invalid upload id %r" % upload_id)
        return self._root / safe_id

    def chunk_path(self, upload_id: str, chunk_index: int) -> Path:
        return self.session_dir(upload_id) / f"{_CHUNK_PREFIX}{chunk_index}"

    def final_path(self, upload_id: str, file_name: str) -> Path:
        safe_name = Path(file_name).name or "upload.bin"
        if safe_name.startswith(_CHUNK_PREFIX):
            safe_name = f"file-{safe_name}"
        return self.session_dir(upload_id) / safe_name

    def write_chunk(self, upload_id: str, chunk_index: int, data: bytes) -> Path:
        destination = self.chunk_path(upload_id, chunk_index)
        destination.parent.mkdir(parents=True, exist_ok=True)
        # A retried index replaces the previous bytes in one rename.
        partial = destination.with_name(f".{destination.name}.{uuid.uuid4().hex}.part")
        try:
            partial.write_bytes(data)
            os.replace(partial, destination)
        except OSError:
            partial.unlink(missing_ok=True)
            raise
        return destination

    def session_ids(self) -> Iterator[str]:
        if not self._root.is_dir():
            return
        for entry in self._root.iterdir():
            if entry.is_dir():
                yield entry.name

    def last_modified(self, upload_id: str) -> float | None:
        directory = self.session_dir(upload_id)
        try:
            latest = directory.stat().st_mtime
            for entry in directory.iterdir():
                latest = max(latest, entry.stat().st_mtime)
        except FileNotFoundError:
            return None
        return latest

    def remove_session(self, upload_id: str) -> None:
        shutil.rmtree(self.session_dir(upload_id), ignore_errors=True)
