"""Use cases for the upload service."""

from .assemble_upload import AssembleUploadUseCase
from .cancel_upload import CancelUploadUseCase
from .get_progress import GetUploadProgressUseCase
from .init_upload import InitUploadUseCase
from .submit_chunk import SubmitChunkUseCase
from .sweep_orphans import SweepOrphanedUploadsUseCase

__all__ = [
    "AssembleUploadUseCase",
    "CancelUploadUseCase",
    "GetUploadProgressUseCase",
    "InitUploadUseCase",
    "SubmitChunkUseCase",
    "SweepOrphanedUploadsUseCase",
]
