from __future__ import annotations

import json
import logging
import time
from typing import Any

from redis import Redis
from redis.exceptions import RedisError

from services.upload.application.interfaces import UploadEventReporter

LOGGER = logging.getLogger(__name__)


class LoggingUploadEventReporter(UploadEventReporter):
    def report(self, event: str, upload_id: str, **fields: object) -> None:
        LOGGER.info({"event": event, "upload_id": upload_id, **fields})


class RedisUploadEventReporter(UploadEventReporter):
    """Publishes upload events as JSON on a Redis channel."""

    def __init__(self, client: Redis, *, channel: str) -> None:
        self._redis = client
        self._channel = channel

    def report(self, event: str, upload_id: str, **fields: object) -> None:
        payload: dict[str, Any] = {
            "event": event,
            "upload_id": upload_id,
            "timestamp": int(time.time() * 1000),
            **fields,
        }
        try:
            self._redis.publish(self._channel, json.dumps(payload, default=str))
        except RedisError as exc:
            LOGGER.error("Failed to publish %s event for %s: %s", event, upload_id, exc)


def create_event_reporter(channel: str | None, client: Redis) -> UploadEventReporter:
    if channel:
        return RedisUploadEventReporter(client, channel=channel)
    return LoggingUploadEventReporter()
