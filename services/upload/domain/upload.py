from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class UploadStatus(str, Enum):
    UPLOADING = "uploading"
    ASSEMBLING = "assembling"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadSession:
    upload_id: str
    total_chunks: int
    received_chunks: int
    failed_chunks: int
    status: UploadStatus
    file_size: int
    file_name: str
    content_type: str
    created_at: datetime
    artifact_url: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.status is UploadStatus.COMPLETED

    def expected_indices(self) -> set[int]:
        return set(range(self.total_chunks))


@dataclass(frozen=True)
class InitializedUpload:
    upload_id: str
    endpoint: str


@dataclass(frozen=True)
class ChunkReceipt:
    upload_id: str
    chunk_index: int
    newly_received: bool
    received: int
    total: int

    @property
    def complete(self) -> bool:
        return self.received >= self.total


@dataclass(frozen=True)
class UploadProgress:
    session: UploadSession
    received_indices: List[int] = field(default_factory=list)

    @property
    def percentage(self) -> int:
        return round(self.session.received_chunks / self.session.total_chunks * 100)


@dataclass(frozen=True)
class AssembledArtifact:
    upload_id: str
    path: str
    size: int


@dataclass(frozen=True)
class PublishedArtifact:
    upload_id: str
    url: str
    file_name: str
    size: int
    content_type: str
