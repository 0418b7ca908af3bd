"""Errors raised by the upload pipeline.

Each error carries the HTTP status the API layer answers with, so route
handlers never translate exceptions one by one.
"""

from __future__ import annotations


class UploadError(Exception):
    status_code = 500

    def __init__(self, message: str, *, upload_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.upload_id = upload_id


class InvalidInput(UploadError):
    status_code = 400


class SessionNotFound(UploadError):
    status_code = 404

    def __init__(self, upload_id: str, message: str | None = None) -> None:
        super().__init__(
            message or "Upload session not found or invalid", upload_id=upload_id
        )


class IndexOutOfRange(UploadError):
    status_code = 400

    def __init__(self, upload_id: str, chunk_index: int, total_chunks: int) -> None:
        super().__init__(
            "Chunk index %s out of range [0, %s)" % (chunk_index, total_chunks),
            upload_id=upload_id,
        )
        self.chunk_index = chunk_index
        self.total_chunks = total_chunks


class ChecksumMismatch(UploadError):
    status_code = 400


class IncompleteUpload(UploadError):
    status_code = 400

    def __init__(self, upload_id: str, missing: list[int]) -> None:
        super().__init__("Not all chunks received", upload_id=upload_id)
        self.missing = missing


class UploadClosed(UploadError):
    status_code = 409

    def __init__(self, upload_id: str) -> None:
        super().__init__("Upload session is already completed", upload_id=upload_id)


class WriteFailure(UploadError):
    status_code = 500


class AssemblyFailure(UploadError):
    status_code = 500


class StoreFailure(UploadError):
    status_code = 500


class AssemblyInProgress(UploadError):
    status_code = 409

    def __init__(self, upload_id: str) -> None:
        super().__init__("Upload is already being assembled", upload_id=upload_id)
