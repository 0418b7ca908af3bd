from __future__ import annotations

import threading
from dataclasses import replace
from pathlib import Path

import pytest

from services.upload.application.use_cases import (
    AssembleUploadUseCase,
    CancelUploadUseCase,
    GetUploadProgressUseCase,
    InitUploadUseCase,
    SubmitChunkUseCase,
)
from services.upload.domain.errors import SessionNotFound
from services.upload.domain.upload import ChunkReceipt, UploadSession, UploadStatus
from services.upload.infrastructure.staging import FilesystemChunkStaging


class InMemoryUploadSessionStore:
    def __init__(self) -> None:
        self.records: dict[str, UploadSession] = {}
        self.chunks: dict[str, set[int]] = {}
        self.locks: dict[str, str] = {}
        self._lock = threading.Lock()

    def create(self, session: UploadSession) -> UploadSession:
        self.records[session.upload_id] = session
        self.chunks[session.upload_id] = set()
        return session

    def get(self, upload_id: str) -> UploadSession:
        try:
            return self.records[upload_id]
        except KeyError:
            raise SessionNotFound(upload_id) from None

    def exists(self, upload_id: str) -> bool:
        return upload_id in self.records

    def received_chunks(self, upload_id: str) -> set[int]:
        return set(self.chunks.get(upload_id, set()))

    def record_chunk(self, upload_id: str, chunk_index: int) -> ChunkReceipt:
        with self._lock:
            session = self.get(upload_id)
            received = self.chunks.setdefault(upload_id, set())
            added = chunk_index not in received
            received.add(chunk_index)
            if added:
                session = replace(session, received_chunks=session.received_chunks + 1)
                if session.received_chunks == session.total_chunks:
                    session = replace(session, status=UploadStatus.ASSEMBLING)
                self.records[upload_id] = session
            return ChunkReceipt(
                upload_id=upload_id,
                chunk_index=chunk_index,
                newly_received=added,
                received=session.received_chunks,
                total=session.total_chunks,
            )

    def record_failure(self, upload_id: str) -> int:
        with self._lock:
            session = self.get(upload_id)
            session = replace(session, failed_chunks=session.failed_chunks + 1)
            self.records[upload_id] = session
            return session.failed_chunks

    def set_status(self, upload_id: str, status: UploadStatus) -> None:
        self.records[upload_id] = replace(self.get(upload_id), status=status)

    def mark_completed(self, upload_id: str, *, artifact_url: str) -> None:
        self.records[upload_id] = replace(
            self.get(upload_id),
            status=UploadStatus.COMPLETED,
            artifact_url=artifact_url,
        )

    def delete(self, upload_id: str) -> None:
        self.records.pop(upload_id, None)
        self.chunks.pop(upload_id, None)

    def acquire_assembly_lock(self, upload_id: str) -> str | None:
        with self._lock:
            if upload_id in self.locks:
                return None
            token = f"lock-{upload_id}"
            self.locks[upload_id] = token
            return token

    def release_assembly_lock(self, upload_id: str, token: str) -> None:
        with self._lock:
            if self.locks.get(upload_id) == token:
                del self.locks[upload_id]


class CapturingReporter:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, object]]] = []

    def report(self, event: str, upload_id: str, **fields: object) -> None:
        self.events.append((event, upload_id, fields))

    def names(self) -> list[str]:
        return [event for event, _, _ in self.events]


class FakeArtifactStorage:
    def __init__(self) -> None:
        self.published: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}

    def publish(self, *, key: str, source_path: Path, content_type: str) -> str:
        self.published[key] = source_path.read_bytes()
        self.content_types[key] = content_type
        return f"memory://{key}"


class FakeScheduler:
    def __init__(self) -> None:
        self.scheduled: list[str] = []

    def schedule(self, upload_id: str) -> None:
        self.scheduled.append(upload_id)


class SequentialIdProvider:
    def __init__(self) -> None:
        self._counter = 0

    def generate(self) -> str:
        self._counter += 1
        return f"upload_{self._counter}"


@pytest.fixture
def store() -> InMemoryUploadSessionStore:
    return InMemoryUploadSessionStore()


@pytest.fixture
def staging(tmp_path) -> FilesystemChunkStaging:
    return FilesystemChunkStaging(tmp_path / "staging")


@pytest.fixture
def reporter() -> CapturingReporter:
    return CapturingReporter()


@pytest.fixture
def artifact_storage() -> FakeArtifactStorage:
    return FakeArtifactStorage()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def init_upload(store, reporter) -> InitUploadUseCase:
    return InitUploadUseCase(
        id_provider=SequentialIdProvider(),
        store=store,
        reporter=reporter,
        chunk_endpoint="/api/upload/chunk",
        max_file_size_bytes=1024,
        supported_content_types=("text/plain", "text/csv"),
    )


@pytest.fixture
def submit_chunk(store, staging, reporter, scheduler) -> SubmitChunkUseCase:
    return SubmitChunkUseCase(
        store=store, staging=staging, reporter=reporter, scheduler=scheduler
    )


@pytest.fixture
def get_progress(store) -> GetUploadProgressUseCase:
    return GetUploadProgressUseCase(store=store)


@pytest.fixture
def assemble_upload(
    store, staging, artifact_storage, reporter
) -> AssembleUploadUseCase:
    return AssembleUploadUseCase(
        store=store,
        staging=staging,
        artifact_storage=artifact_storage,
        reporter=reporter,
    )


@pytest.fixture
def cancel_upload(store, staging, reporter) -> CancelUploadUseCase:
    return CancelUploadUseCase(store=store, staging=staging, reporter=reporter)
