from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.concurrency import run_in_threadpool

from services.upload.application.dto import InitUploadCommand, SubmitChunkCommand
from services.upload.application.use_cases import (
    AssembleUploadUseCase,
    CancelUploadUseCase,
    GetUploadProgressUseCase,
    InitUploadUseCase,
    SubmitChunkUseCase,
)
from services.upload.domain.errors import InvalidInput
from services.upload.domain.upload import (
    ChunkReceipt,
    InitializedUpload,
    PublishedArtifact,
    UploadProgress,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InitUploadRequest(CamelModel):
    total_chunks: int
    file_size: int
    file_name: str
    content_type: str


class InitUploadResponse(CamelModel):
    upload_id: str
    endpoint: str

    @classmethod
    def from_domain(cls, initialized: InitializedUpload) -> "InitUploadResponse":
        return cls(upload_id=initialized.upload_id, endpoint=initialized.endpoint)


class ChunkProgress(CamelModel):
    total: int
    received: int


class ChunkUploadResponse(CamelModel):
    success: bool
    progress: ChunkProgress
    complete: bool

    @classmethod
    def from_domain(cls, receipt: ChunkReceipt) -> "ChunkUploadResponse":
        return cls(
            success=True,
            progress=ChunkProgress(total=receipt.total, received=receipt.received),
            complete=receipt.complete,
        )


class UploadProgressResponse(CamelModel):
    upload_id: str
    total_chunks: int
    received_count: int
    failed_chunks: int
    status: str
    file_name: str
    file_size: int
    content_type: str
    created_at: str
    artifact_url: Optional[str] = None
    received_chunks: List[int]
    percentage: int

    @classmethod
    def from_domain(cls, progress: UploadProgress) -> "UploadProgressResponse":
        session = progress.session
        return cls(
            upload_id=session.upload_id,
            total_chunks=session.total_chunks,
            received_count=session.received_chunks,
            failed_chunks=session.failed_chunks,
            status=session.status.value,
            file_name=session.file_name,
            file_size=session.file_size,
            content_type=session.content_type,
            created_at=session.created_at.isoformat().replace("+00:00", "Z"),
            artifact_url=session.artifact_url,
            received_chunks=progress.received_indices,
            percentage=progress.percentage,
        )


class AssembleUploadResponse(CamelModel):
    success: bool
    url: str
    file_name: str
    size: int
    content_type: str

    @classmethod
    def from_domain(cls, published: PublishedArtifact) -> "AssembleUploadResponse":
        return cls(
            success=True,
            url=published.url,
            file_name=published.file_name,
            size=published.size,
            content_type=published.content_type,
        )


class CancelUploadResponse(CamelModel):
    success: bool


def create_router(
    init_upload_use_case: InitUploadUseCase,
    submit_chunk_use_case: SubmitChunkUseCase,
    get_progress_use_case: GetUploadProgressUseCase,
    assemble_upload_use_case: AssembleUploadUseCase,
    cancel_upload_use_case: CancelUploadUseCase,
) -> APIRouter:
    uploads_router = APIRouter(prefix="/api/upload", tags=["uploads"])

    @uploads_router.post("/init", response_model=InitUploadResponse)
    def init_upload_endpoint(payload: InitUploadRequest):
        command = InitUploadCommand(
            total_chunks=payload.total_chunks,
            file_size=payload.file_size,
            file_name=payload.file_name,
            content_type=payload.content_type,
        )
        initialized = init_upload_use_case.execute(command)
        return InitUploadResponse.from_domain(initialized)

    @uploads_router.post("/chunk", response_model=ChunkUploadResponse)
    async def submit_chunk_endpoint(
        request: Request,
        upload_id: Optional[str] = Header(default=None),
        chunk_index: Optional[str] = Header(default=None),
        chunk_hash: Optional[str] = Header(default=None),
    ):
        if not upload_id or chunk_index is None:
            raise InvalidInput("Missing required headers")
        try:
            index = int(chunk_index)
        except ValueError as exc:
            raise InvalidInput("chunk-index must be an integer") from exc

        command = SubmitChunkCommand(
            upload_id=upload_id,
            chunk_index=index,
            data=await request.body(),
            chunk_hash=chunk_hash,
        )
        receipt = await run_in_threadpool(submit_chunk_use_case.execute, command)
        return ChunkUploadResponse.from_domain(receipt)

    @uploads_router.get("/progress/{upload_id}", response_model=UploadProgressResponse)
    def get_progress_endpoint(upload_id: str):
        progress = get_progress_use_case.execute(upload_id)
        return UploadProgressResponse.from_domain(progress)

    @uploads_router.post(
        "/assemble/{upload_id}", response_model=AssembleUploadResponse
    )
    def assemble_upload_endpoint(upload_id: str):
        published = assemble_upload_use_case.execute(upload_id)
        return AssembleUploadResponse.from_domain(published)

    @uploads_router.delete("/{upload_id}", response_model=CancelUploadResponse)
    def cancel_upload_endpoint(upload_id: str):
        cancel_upload_use_case.execute(upload_id)
        return CancelUploadResponse(success=True)

    return uploads_router
