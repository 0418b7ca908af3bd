from __future__ import annotations

import logging
from pathlib import Path

from services.upload.application.assembler import FileAssembler
from services.upload.application.content import normalize_artifact
from services.upload.application.interfaces import (
    ArtifactStorage,
    ChunkStaging,
    UploadEventReporter,
    UploadSessionStore,
)
from services.upload.domain.errors import (
    AssemblyFailure,
    AssemblyInProgress,
    UploadClosed,
)
from services.upload.domain.upload import PublishedArtifact, UploadStatus

LOGGER = logging.getLogger(__name__)


class AssembleUploadUseCase:
    def __init__(
        self,
        *,
        store: UploadSessionStore,
        staging: ChunkStaging,
        artifact_storage: ArtifactStorage,
        reporter: UploadEventReporter,
    ) -> None:
        self._store = store
        self._staging = staging
        self._artifact_storage = artifact_storage
        self._reporter = reporter

    def execute(self, upload_id: str) -> PublishedArtifact:
        token = self._store.acquire_assembly_lock(upload_id)
        if token is None:
            raise AssemblyInProgress(upload_id)
        try:
            return self._assemble(upload_id)
        finally:
            self._store.release_assembly_lock(upload_id, token)

    def _assemble(self, upload_id: str) -> PublishedArtifact:
        session = self._store.get(upload_id)
        if session.is_closed:
            raise UploadClosed(upload_id)

        assembler = FileAssembler(self._staging, session)
        received = self._store.received_chunks(upload_id)
        assembler.ensure_complete(received)
        self._store.set_status(upload_id, UploadStatus.ASSEMBLING)

        try:
            # Chunks stay staged until the artifact is safely published.
            artifact = assembler.assemble(received, keep_chunks=True)
            if artifact.size != session.file_size:
                LOGGER.warning(
                    "Assembled size %s differs from declared size %s for %s",
                    artifact.size,
                    session.file_size,
                    upload_id,
                )
            final_path = Path(artifact.path)
            size = normalize_artifact(final_path, session.content_type)
            url = self._artifact_storage.publish(
                key=f"{upload_id}/{final_path.name}",
                source_path=final_path,
                content_type=session.content_type,
            )
        except (OSError, AssemblyFailure) as exc:
            assembler.discard_final()
            self._store.set_status(upload_id, UploadStatus.FAILED)
            self._reporter.report("assembly_failed", upload_id, error=str(exc))
            if isinstance(exc, AssemblyFailure):
                raise
            raise AssemblyFailure(
                "Failed to assemble file: %s" % exc, upload_id=upload_id
            ) from exc

        # Staging is only cleared once the record says completed.
        self._store.mark_completed(upload_id, artifact_url=url)
        assembler.cleanup()
        self._reporter.report(
            "upload_completed",
            upload_id,
            url=url,
            size=size,
            file_name=session.file_name,
        )
        return PublishedArtifact(
            upload_id=upload_id,
            url=url,
            file_name=session.file_name,
            size=size,
            content_type=session.content_type,
        )
