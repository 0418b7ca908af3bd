from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Protocol

if TYPE_CHECKING:
    from services.upload.domain.upload import (
        ChunkReceipt,
        UploadSession,
        UploadStatus,
    )


class IdProvider(Protocol):
    def generate(self) -> str: ...


class UploadSessionStore(Protocol):
    def create(self, session: "UploadSession") -> "UploadSession": ...

    def get(self, upload_id: str) -> "UploadSession": ...

    def exists(self, upload_id: str) -> bool: ...

    def received_chunks(self, upload_id: str) -> set[int]: ...

    def record_chunk(self, upload_id: str, chunk_index: int) -> "ChunkReceipt": ...

    def record_failure(self, upload_id: str) -> int: ...

    def set_status(self, upload_id: str, status: "UploadStatus") -> None: ...

    def mark_completed(self, upload_id: str, *, artifact_url: str) -> None: ...

    def delete(self, upload_id: str) -> None: ...

    def acquire_assembly_lock(self, upload_id: str) -> str | None: ...

    def release_assembly_lock(self, upload_id: str, token: str) -> None: ...


class ChunkStaging(Protocol):
    def chunk_path(self, upload_id: str, chunk_index: int) -> Path: ...

    def final_path(self, upload_id: str, file_name: str) -> Path: ...

    def write_chunk(self, upload_id: str, chunk_index: int, data: bytes) -> Path: ...

    def session_ids(self) -> Iterator[str]: ...

    def last_modified(self, upload_id: str) -> float | None: ...

    def remove_session(self, upload_id: str) -> None: ...


class ArtifactStorage(Protocol):
    def publish(self, *, key: str, source_path: Path, content_type: str) -> str: ...


class AssemblyScheduler(Protocol):
    def schedule(self, upload_id: str) -> None: ...


class UploadEventReporter(Protocol):
    def report(self, event: str, upload_id: str, **fields: object) -> None: ...
