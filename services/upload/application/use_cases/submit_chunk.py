from __future__ import annotations

import hashlib
import logging

from services.upload.application.dto import SubmitChunkCommand
from services.upload.application.interfaces import (
    AssemblyScheduler,
    ChunkStaging,
    UploadEventReporter,
    UploadSessionStore,
)
from services.upload.domain.errors import (
    ChecksumMismatch,
    IndexOutOfRange,
    UploadClosed,
    WriteFailure,
)
from services.upload.domain.upload import ChunkReceipt

LOGGER = logging.getLogger(__name__)


class SubmitChunkUseCase:
    def __init__(
        self,
        *,
        store: UploadSessionStore,
        staging: ChunkStaging,
        reporter: UploadEventReporter,
        scheduler: AssemblyScheduler | None = None,
    ) -> None:
        self._store = store
        self._staging = staging
        self._reporter = reporter
        self._scheduler = scheduler

    def execute(self, command: SubmitChunkCommand) -> ChunkReceipt:
        session = self._store.get(command.upload_id)
        if session.is_closed:
            raise UploadClosed(session.upload_id)
        if not 0 <= command.chunk_index < session.total_chunks:
            raise IndexOutOfRange(
                session.upload_id, command.chunk_index, session.total_chunks
            )

        if command.chunk_hash:
            computed = hashlib.sha256(command.data).hexdigest()
            if computed != command.chunk_hash.strip().lower():
                self._store.record_failure(session.upload_id)
                self._reporter.report(
                    "chunk_rejected",
                    session.upload_id,
                    chunk_index=command.chunk_index,
                    reason="checksum",
                )
                raise ChecksumMismatch(
                    "Chunk integrity check failed", upload_id=session.upload_id
                )

        try:
            self._staging.write_chunk(
                session.upload_id, command.chunk_index, command.data
            )
        except OSError as exc:
            LOGGER.error(
                "Failed to stage chunk %s of %s: %s",
                command.chunk_index,
                session.upload_id,
                exc,
            )
            self._store.record_failure(session.upload_id)
            self._reporter.report(
                "chunk_rejected",
                session.upload_id,
                chunk_index=command.chunk_index,
                reason="write",
            )
            raise WriteFailure(
                "Failed to process chunk", upload_id=session.upload_id
            ) from exc

        receipt = self._store.record_chunk(session.upload_id, command.chunk_index)
        self._reporter.report(
            "chunk_received",
            session.upload_id,
            chunk_index=command.chunk_index,
            received=receipt.received,
            total=receipt.total,
            duplicate=not receipt.newly_received,
        )
        if receipt.newly_received and receipt.complete and self._scheduler:
            self._scheduler.schedule(session.upload_id)
        return receipt
