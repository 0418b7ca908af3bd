from __future__ import annotations

from services.upload.application.assembler import FileAssembler
from services.upload.application.interfaces import (
    ChunkStaging,
    UploadEventReporter,
    UploadSessionStore,
)
from services.upload.domain.errors import UploadClosed


class CancelUploadUseCase:
    def __init__(
        self,
        *,
        store: UploadSessionStore,
        staging: ChunkStaging,
        reporter: UploadEventReporter,
    ) -> None:
        self._store = store
        self._staging = staging
        self._reporter = reporter

    def execute(self, upload_id: str) -> None:
        session = self._store.get(upload_id)
        if session.is_closed:
            raise UploadClosed(upload_id)
        FileAssembler(self._staging, session).cleanup()
        self._staging.remove_session(upload_id)
        self._store.delete(upload_id)
        self._reporter.report("upload_cancelled", upload_id)
