from __future__ import annotations

import logging

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue, Worker as RQWorker

from services.upload.application.interfaces import AssemblyScheduler
from services.upload.config import UploadConfig

LOGGER = logging.getLogger(__name__)

# Assembly reads every staged chunk and uploads the result.
_ASSEMBLY_TIMEOUT_SECONDS = 900


def create_queue(config: UploadConfig, connection: Redis) -> Queue:
    return Queue(
        config.queue_name,
        connection=connection,
        default_timeout=_ASSEMBLY_TIMEOUT_SECONDS,
    )


def create_worker(config: UploadConfig, connection: Redis) -> RQWorker:
    queue = Queue(config.queue_name, connection=connection)
    return RQWorker([queue], connection=connection)


class RqAssemblyScheduler(AssemblyScheduler):
    def __init__(self, queue: Queue) -> None:
        self._queue = queue

    def schedule(self, upload_id: str) -> None:
        # Deferred: the worker module imports this one.
        from services.upload.worker import assemble_upload

        try:
            job = self._queue.enqueue(
                assemble_upload, upload_id, job_id=f"assemble-{upload_id}"
            )
        except RedisError as exc:
            LOGGER.error("Failed to enqueue assembly for %s: %s", upload_id, exc)
            return
        LOGGER.info("Enqueued assembly job %s for %s", job.id, upload_id)
