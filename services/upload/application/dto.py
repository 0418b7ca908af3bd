from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class InitUploadCommand:
    total_chunks: int
    file_size: int
    file_name: str
    content_type: str


@dataclass(frozen=True)
class SubmitChunkCommand:
    upload_id: str
    chunk_index: int
    data: bytes
    chunk_hash: Optional[str] = None
