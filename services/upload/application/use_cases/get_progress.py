from __future__ import annotations

from services.upload.application.interfaces import UploadSessionStore
from services.upload.domain.upload import UploadProgress


class GetUploadProgressUseCase:
    def __init__(self, *, store: UploadSessionStore) -> None:
        self._store = store

    def execute(self, upload_id: str) -> UploadProgress:
        session = self._store.get(upload_id)
        received = self._store.received_chunks(upload_id)
        return UploadProgress(session=session, received_indices=sorted(received))
