from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from redis import Redis

from services.upload.api.errors import register_error_handlers
from services.upload.api.routes import create_router
from services.upload.application.use_cases import (
    AssembleUploadUseCase,
    CancelUploadUseCase,
    GetUploadProgressUseCase,
    InitUploadUseCase,
    SubmitChunkUseCase,
)
from services.upload.config import UploadConfig, load_config
from services.upload.infrastructure.artifact_storage import create_artifact_storage
from services.upload.infrastructure.events import create_event_reporter
from services.upload.infrastructure.ids import UuidIdProvider
from services.upload.infrastructure.queue import RqAssemblyScheduler, create_queue
from services.upload.infrastructure.session_store import (
    create_redis_connection,
    create_session_store,
)
from services.upload.infrastructure.staging import FilesystemChunkStaging


def build_app(
    config: UploadConfig | None = None, *, redis_client: Redis | None = None
) -> FastAPI:
    """App factory; serve with `uvicorn services.upload.main:build_app --factory`."""
    cfg = config or load_config()
    redis_conn = redis_client or create_redis_connection(cfg)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        redis_conn.close()

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)

    @app.get("/ping")
    async def ping():
        return {"message": "pong"}

    store = create_session_store(cfg, redis_conn)
    staging = FilesystemChunkStaging(cfg.staging_dir)
    reporter = create_event_reporter(cfg.events_channel, redis_conn)
    scheduler = (
        RqAssemblyScheduler(create_queue(cfg, redis_conn))
        if cfg.auto_assemble
        else None
    )

    init_upload_use_case = InitUploadUseCase(
        id_provider=UuidIdProvider(),
        store=store,
        reporter=reporter,
        chunk_endpoint=cfg.chunk_endpoint,
        max_file_size_bytes=cfg.max_file_size_bytes,
        supported_content_types=cfg.supported_content_types,
    )
    submit_chunk_use_case = SubmitChunkUseCase(
        store=store,
        staging=staging,
        reporter=reporter,
        scheduler=scheduler,
    )
    get_progress_use_case = GetUploadProgressUseCase(store=store)
    assemble_upload_use_case = AssembleUploadUseCase(
        store=store,
        staging=staging,
        artifact_storage=create_artifact_storage(cfg),
        reporter=reporter,
    )
    cancel_upload_use_case = CancelUploadUseCase(
        store=store, staging=staging, reporter=reporter
    )

    app.include_router(
        create_router(
            init_upload_use_case,
            submit_chunk_use_case,
            get_progress_use_case,
            assemble_upload_use_case,
            cancel_upload_use_case,
        )
    )

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.upload.main:build_app", factory=True, host="0.0.0.0", port=8000
    )
