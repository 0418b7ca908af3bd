"""Background assembly worker and staging sweeper."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from redis import Redis

from .application.use_cases import AssembleUploadUseCase, SweepOrphanedUploadsUseCase
from .config import UploadConfig, load_config
from .domain.errors import UploadError
from .infrastructure.artifact_storage import create_artifact_storage
from .infrastructure.events import create_event_reporter
from .infrastructure.queue import create_worker as build_worker
from .infrastructure.session_store import (
    create_redis_connection,
    create_session_store,
)
from .infrastructure.staging import FilesystemChunkStaging

LOGGER = logging.getLogger(__name__)


@dataclass
class WorkerRuntime:
    config: UploadConfig
    redis: Redis
    assemble: AssembleUploadUseCase
    sweep: SweepOrphanedUploadsUseCase

    def close(self) -> None:
        self.redis.close()


_RUNTIME: WorkerRuntime | None = None


def build_runtime(
    config: UploadConfig, *, redis_client: Redis | None = None
) -> WorkerRuntime:
    redis_conn = redis_client or create_redis_connection(config)
    store = create_session_store(config, redis_conn)
    staging = FilesystemChunkStaging(config.staging_dir)
    reporter = create_event_reporter(config.events_channel, redis_conn)
    return WorkerRuntime(
        config=config,
        redis=redis_conn,
        assemble=AssembleUploadUseCase(
            store=store,
            staging=staging,
            artifact_storage=create_artifact_storage(config),
            reporter=reporter,
        ),
        sweep=SweepOrphanedUploadsUseCase(
            store=store,
            staging=staging,
            reporter=reporter,
            grace_seconds=config.sweep_grace_seconds,
        ),
    )


def configure(runtime: WorkerRuntime | None) -> None:
    global _RUNTIME
    _RUNTIME = runtime


def get_runtime() -> WorkerRuntime:
    if _RUNTIME is None:
        raise RuntimeError("Worker runtime is not configured; start it with run_worker")
    return _RUNTIME


def assemble_upload(upload_id: str) -> dict[str, Any]:
    """rq job: assemble a completed upload and publish the artifact."""
    runtime = get_runtime()
    try:
        published = runtime.assemble.execute(upload_id)
    except UploadError as exc:
        LOGGER.error("Assembly of %s failed: %s", upload_id, exc.message)
        raise
    LOGGER.info("Assembled %s into %s", upload_id, published.url)
    return {
        "upload_id": published.upload_id,
        "url": published.url,
        "file_name": published.file_name,
        "size": published.size,
        "content_type": published.content_type,
    }


def sweep_staging() -> list[str]:
    return get_runtime().sweep.execute()


def _sweep_periodically(interval_seconds: int, stop_event: threading.Event) -> None:
    while not stop_event.wait(interval_seconds):
        try:
            sweep_staging()
        except UploadError as exc:
            LOGGER.error("Staging sweep failed: %s", exc.message)


def run_worker(config: Optional[UploadConfig] = None) -> None:
    cfg = config or load_config()
    runtime = build_runtime(cfg)
    configure(runtime)

    stop_event = threading.Event()
    sweeper_thread = None
    if cfg.sweep_interval_seconds > 0:
        sweeper_thread = threading.Thread(
            target=_sweep_periodically,
            args=(cfg.sweep_interval_seconds, stop_event),
            daemon=True,
        )
        sweeper_thread.start()
        LOGGER.info("Started staging sweeper every %ss", cfg.sweep_interval_seconds)

    worker = build_worker(cfg, runtime.redis)
    LOGGER.info("Starting worker for queue: %s", cfg.queue_name)
    try:
        worker.work()
    except KeyboardInterrupt:
        LOGGER.info("Shutting down worker...")
    finally:
        stop_event.set()
        if sweeper_thread and sweeper_thread.is_alive():
            sweeper_thread.join(timeout=2)
        configure(None)
        runtime.close()
