from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from services.upload.application.dto import InitUploadCommand
from services.upload.application.interfaces import (
    IdProvider,
    UploadEventReporter,
    UploadSessionStore,
)
from services.upload.domain.errors import InvalidInput
from services.upload.domain.upload import (
    InitializedUpload,
    UploadSession,
    UploadStatus,
)

LOGGER = logging.getLogger(__name__)


class InitUploadUseCase:
    def __init__(
        self,
        *,
        id_provider: IdProvider,
        store: UploadSessionStore,
        reporter: UploadEventReporter,
        chunk_endpoint: str,
        max_file_size_bytes: int | None = None,
        supported_content_types: Iterable[str] = (),
    ) -> None:
        self._id_provider = id_provider
        self._store = store
        self._reporter = reporter
        self._chunk_endpoint = chunk_endpoint
        self._max_file_size = max_file_size_bytes
        self._supported_types = frozenset(
            content_type.lower() for content_type in supported_content_types
        )

    def execute(self, command: InitUploadCommand) -> InitializedUpload:
        self._validate(command)
        session = UploadSession(
            upload_id=self._id_provider.generate(),
            total_chunks=command.total_chunks,
            received_chunks=0,
            failed_chunks=0,
            status=UploadStatus.UPLOADING,
            file_size=command.file_size,
            file_name=command.file_name,
            content_type=command.content_type,
            created_at=datetime.now(timezone.utc),
        )
        self._store.create(session)
        self._reporter.report(
            "upload_initialized",
            session.upload_id,
            file_name=session.file_name,
            file_size=session.file_size,
            total_chunks=session.total_chunks,
        )
        return InitializedUpload(
            upload_id=session.upload_id, endpoint=self._chunk_endpoint
        )

    def _validate(self, command: InitUploadCommand) -> None:
        if not _is_int(command.total_chunks) or command.total_chunks <= 0:
            raise InvalidInput("totalChunks must be a positive integer")
        if not _is_int(command.file_size) or command.file_size < 0:
            raise InvalidInput("fileSize must be a non-negative integer")
        if not isinstance(command.file_name, str) or not command.file_name.strip():
            raise InvalidInput("fileName is required")
        if (
            not isinstance(command.content_type, str)
            or not command.content_type.strip()
        ):
            raise InvalidInput("contentType is required")
        if self._max_file_size is not None and command.file_size > self._max_file_size:
            raise InvalidInput(
                "File size exceeds maximum limit of %s bytes" % self._max_file_size
            )
        if (
            self._supported_types
            and command.content_type.lower() not in self._supported_types
        ):
            raise InvalidInput("Unsupported file type %s" % command.content_type)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
