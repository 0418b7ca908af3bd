from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from services.upload.domain.errors import IncompleteUpload, UploadError

LOGGER = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError):
        if exc.status_code >= 500:
            LOGGER.error(
                "%s %s failed for %s: %s",
                request.method,
                request.url.path,
                exc.upload_id,
                exc.message,
            )
        content: dict[str, object] = {"error": exc.message}
        if isinstance(exc, IncompleteUpload):
            content["missing"] = exc.missing
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ):
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request",
                "details": jsonable_encoder(exc.errors()),
            },
        )
