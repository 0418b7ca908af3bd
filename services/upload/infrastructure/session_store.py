from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from redis import Redis
from redis.exceptions import RedisError

from services.upload.application.interfaces import UploadSessionStore
from services.upload.config import UploadConfig
from services.upload.domain.errors import SessionNotFound, StoreFailure
from services.upload.domain.upload import ChunkReceipt, UploadSession, UploadStatus

LOGGER = logging.getLogger(__name__)

# KEYS[1] session hash, KEYS[2] received set, ARGV[1] chunk index.
# Returns {added, received, total} or -1 when the session is gone.
_RECORD_CHUNK_LUA = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return -1
end
local added = redis.call('SADD', KEYS[2], ARGV[1])
local ttl = redis.call('PTTL', KEYS[1])
if ttl > 0 then
  redis.call('PEXPIRE', KEYS[2], ttl)
end
local received
if added == 1 then
  received = redis.call('HINCRBY', KEYS[1], 'receivedChunks', 1)
else
  received = tonumber(redis.call('HGET', KEYS[1], 'receivedChunks'))
end
local total = tonumber(redis.call('HGET', KEYS[1], 'totalChunks'))
if added == 1 and received == total then
  redis.call('HSET', KEYS[1], 'status', 'assembling')
end
return {added, received, total}
"""

_INCREMENT_FAILED_LUA = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return -1
end
return redis.call('HINCRBY', KEYS[1], 'failedChunks', 1)
"""

# ARGV is a flat list of field/value pairs.
_UPDATE_FIELDS_LUA = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return 0
end
redis.call('HSET', KEYS[1], unpack(ARGV))
return 1
"""

_RELEASE_LOCK_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""


class UploadSessionRecord(BaseModel):
    """Shape of the session hash as stored in Redis (all values are strings)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    total_chunks: int = Field(alias="totalChunks", gt=0)
    received_chunks: int = Field(alias="receivedChunks", ge=0)
    failed_chunks: int = Field(alias="failedChunks", ge=0)
    status: UploadStatus
    file_size: int = Field(alias="fileSize", ge=0)
    file_name: str = Field(alias="fileName", min_length=1)
    content_type: str = Field(alias="contentType", min_length=1)
    created_at: int = Field(alias="createdAt", ge=0)
    artifact_url: Optional[str] = Field(default=None, alias="artifactUrl")

    def to_domain(self, upload_id: str) -> UploadSession:
        return UploadSession(
            upload_id=upload_id,
            total_chunks=self.total_chunks,
            received_chunks=self.received_chunks,
            failed_chunks=self.failed_chunks,
            status=self.status,
            file_size=self.file_size,
            file_name=self.file_name,
            content_type=self.content_type,
            created_at=datetime.fromtimestamp(self.created_at / 1000, tz=timezone.utc),
            artifact_url=self.artifact_url,
        )

    @classmethod
    def from_domain(cls, session: UploadSession) -> "UploadSessionRecord":
        return cls(
            total_chunks=session.total_chunks,
            received_chunks=session.received_chunks,
            failed_chunks=session.failed_chunks,
            status=session.status,
            file_size=session.file_size,
            file_name=session.file_name,
            content_type=session.content_type,
            created_at=int(session.created_at.timestamp() * 1000),
            artifact_url=session.artifact_url,
        )

    def to_redis(self) -> dict[str, str]:
        raw = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        return {key: str(value) for key, value in raw.items()}


@contextmanager
def _store_errors(upload_id: str) -> Iterator[None]:
    try:
        yield
    except RedisError as exc:
        LOGGER.error("Session store error for %s: %s", upload_id, exc)
        raise StoreFailure(
            "Upload session store unavailable", upload_id=upload_id
        ) from exc


class RedisUploadSessionStore(UploadSessionStore):
    def __init__(
        self,
        client: Redis,
        *,
        ttl_seconds: int = 86400,
        key_prefix: str = "upload:",
        lock_ttl_seconds: int = 900,
    ) -> None:
        self._client = client
        self._ttl = ttl_seconds
        self._lock_ttl = lock_ttl_seconds
        self._prefix = key_prefix
        self._record_chunk = client.register_script(_RECORD_CHUNK_LUA)
        self._increment_failed = client.register_script(_INCREMENT_FAILED_LUA)
        self._update_fields = client.register_script(_UPDATE_FIELDS_LUA)
        self._release_lock = client.register_script(_RELEASE_LOCK_LUA)

    def _key(self, upload_id: str) -> str:
        return f"{self._prefix}{upload_id}"

    def _chunks_key(self, upload_id: str) -> str:
        return f"{self._key(upload_id)}:chunks_received"

    def _lock_key(self, upload_id: str) -> str:
        return f"{self._key(upload_id)}:assembly_lock"

    def create(self, session: UploadSession) -> UploadSession:
        key = self._key(session.upload_id)
        mapping = UploadSessionRecord.from_domain(session).to_redis()
        with _store_errors(session.upload_id):
            pipe = self._client.pipeline(transaction=True)
            pipe.hset(key, mapping=mapping)
            pipe.expire(key, self._ttl)
            pipe.execute()
        return session

    def get(self, upload_id: str) -> UploadSession:
        with _store_errors(upload_id):
            raw = self._client.hgetall(self._key(upload_id))
        if not raw:
            raise SessionNotFound(upload_id)
        try:
            record = UploadSessionRecord.model_validate(raw)
        except ValidationError as exc:
            LOGGER.warning("Malformed session record %s: %s", upload_id, exc)
            raise SessionNotFound(upload_id) from exc
        return record.to_domain(upload_id)

    def exists(self, upload_id: str) -> bool:
        with _store_errors(upload_id):
            return bool(self._client.exists(self._key(upload_id)))

    def received_chunks(self, upload_id: str) -> set[int]:
        with _store_errors(upload_id):
            members = self._client.smembers(self._chunks_key(upload_id))
        indices: set[int] = set()
        for member in members:
            try:
                indices.add(int(member))
            except (TypeError, ValueError):
                LOGGER.warning(
                    "Ignoring malformed chunk index %r for %s", member, upload_id
                )
        return indices

    def record_chunk(self, upload_id: str, chunk_index: int) -> ChunkReceipt:
        with _store_errors(upload_id):
            result = self._record_chunk(
                keys=[self._key(upload_id), self._chunks_key(upload_id)],
                args=[chunk_index],
            )
        if result == -1 or len(result) != 3:
            raise SessionNotFound(upload_id)
        added, received, total = (int(value) for value in result)
        return ChunkReceipt(
            upload_id=upload_id,
            chunk_index=chunk_index,
            newly_received=added == 1,
            received=received,
            total=total,
        )

    def record_failure(self, upload_id: str) -> int:
        with _store_errors(upload_id):
            result = self._increment_failed(keys=[self._key(upload_id)])
        if result == -1:
            raise SessionNotFound(upload_id)
        return int(result)

    def set_status(self, upload_id: str, status: UploadStatus) -> None:
        self._set_fields(upload_id, {"status": status.value})

    def mark_completed(self, upload_id: str, *, artifact_url: str) -> None:
        self._set_fields(
            upload_id,
            {"status": UploadStatus.COMPLETED.value, "artifactUrl": artifact_url},
        )

    def delete(self, upload_id: str) -> None:
        with _store_errors(upload_id):
            self._client.delete(self._key(upload_id), self._chunks_key(upload_id))

    def acquire_assembly_lock(self, upload_id: str) -> Optional[str]:
        token = uuid.uuid4().hex
        with _store_errors(upload_id):
            acquired = self._client.set(
                self._lock_key(upload_id), token, nx=True, ex=self._lock_ttl
            )
        return token if acquired else None

    def release_assembly_lock(self, upload_id: str, token: str) -> None:
        with _store_errors(upload_id):
            self._release_lock(keys=[self._lock_key(upload_id)], args=[token])

    def _set_fields(self, upload_id: str, fields: dict[str, str]) -> None:
        args: list[str] = []
        for name, value in fields.items():
            args.extend([name, value])
        with _store_errors(upload_id):
            updated = self._update_fields(keys=[self._key(upload_id)], args=args)
        if not updated:
            raise SessionNotFound(upload_id)


def create_redis_connection(config: UploadConfig) -> Redis:
    return Redis(
        host=config.redis_host,
        port=config.redis_port,
        db=config.redis_db,
        decode_responses=True,
    )


def create_session_store(
    config: UploadConfig, client: Redis
) -> RedisUploadSessionStore:
    return RedisUploadSessionStore(
        client,
        ttl_seconds=config.session_ttl_seconds,
        lock_ttl_seconds=config.assembly_lock_seconds,
    )
