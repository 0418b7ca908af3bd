from __future__ import annotations

import logging
import shutil
from pathlib import Path

from services.upload.application.interfaces import ChunkStaging
from services.upload.domain.errors import AssemblyFailure, IncompleteUpload
from services.upload.domain.upload import AssembledArtifact, UploadSession

LOGGER = logging.getLogger(__name__)

_COPY_BUFFER_BYTES = 1024 * 1024


class FileAssembler:
    """Concatenates the staged chunks of one upload into its final file.

    Chunks are always joined in ascending index order, whatever order they
    arrived in. The final file lives next to the chunks under the upload's
    staging directory until it is handed to artifact storage.
    """

    def __init__(self, staging: ChunkStaging, session: UploadSession) -> None:
        self._staging = staging
        self._session = session

    @property
    def final_path(self) -> Path:
        return self._staging.final_path(
            self._session.upload_id, self._session.file_name
        )

    def ensure_complete(self, received: set[int]) -> None:
        expected = self._session.expected_indices()
        if received != expected:
            raise IncompleteUpload(
                self._session.upload_id, missing=sorted(expected - received)
            )

    def assemble(
        self, received: set[int], *, keep_chunks: bool = False
    ) -> AssembledArtifact:
        self.ensure_complete(received)
        final_path = self.final_path
        final_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with final_path.open("wb") as destination:
                for index in range(self._session.total_chunks):
                    chunk_path = self._staging.chunk_path(
                        self._session.upload_id, index
                    )
                    with chunk_path.open("rb") as source:
                        shutil.copyfileobj(source, destination, _COPY_BUFFER_BYTES)
            size = final_path.stat().st_size
        except OSError as exc:
            self._remove(final_path)
            raise AssemblyFailure(
                "Failed to assemble file: %s" % exc,
                upload_id=self._session.upload_id,
            ) from exc

        if not keep_chunks:
            self.discard_chunks()

        return AssembledArtifact(
            upload_id=self._session.upload_id,
            path=final_path.as_posix(),
            size=size,
        )

    def discard_chunks(self) -> None:
        for index in range(self._session.total_chunks):
            self._remove(self._staging.chunk_path(self._session.upload_id, index))

    def discard_final(self) -> None:
        self._remove(self.final_path)

    def cleanup(self) -> None:
        """Best-effort removal of staged chunks and any (partial) final file."""
        self.discard_chunks()
        self.discard_final()
        try:
            self.final_path.parent.rmdir()
        except OSError:
            pass

    def _remove(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.error("Cleanup failed for %s: %s", path, exc)
