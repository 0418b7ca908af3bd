"""Session store against an in-process Redis that executes the Lua scripts."""

from datetime import datetime, timezone

import fakeredis
import pytest

from services.upload.domain.errors import SessionNotFound
from services.upload.domain.upload import UploadSession, UploadStatus
from services.upload.infrastructure.session_store import RedisUploadSessionStore


@pytest.fixture
def client():
    redis_client = fakeredis.FakeRedis(decode_responses=True)
    yield redis_client
    redis_client.flushall()


@pytest.fixture
def redis_store(client):
    return RedisUploadSessionStore(client, ttl_seconds=60, lock_ttl_seconds=30)


def _create(store, upload_id="upload_1", total_chunks=3):
    return store.create(
        UploadSession(
            upload_id=upload_id,
            total_chunks=total_chunks,
            received_chunks=0,
            failed_chunks=0,
            status=UploadStatus.UPLOADING,
            file_size=6,
            file_name="f.txt",
            content_type="text/plain",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    )


def test_record_chunk_counts_each_index_once(redis_store):
    _create(redis_store)

    receipts = [redis_store.record_chunk("upload_1", i) for i in [2, 0, 0, 1, 1]]

    assert [r.newly_received for r in receipts] == [True, True, False, True, False]
    assert [r.received for r in receipts] == [1, 2, 2, 3, 3]
    assert [r.complete for r in receipts] == [False, False, False, True, True]
    session = redis_store.get("upload_1")
    assert session.received_chunks == 3
    assert session.status is UploadStatus.ASSEMBLING
    assert redis_store.received_chunks("upload_1") == {0, 1, 2}


def test_status_flips_only_on_the_last_new_chunk(redis_store):
    _create(redis_store)

    redis_store.record_chunk("upload_1", 0)
    redis_store.record_chunk("upload_1", 1)
    assert redis_store.get("upload_1").status is UploadStatus.UPLOADING

    redis_store.set_status("upload_1", UploadStatus.FAILED)
    redis_store.record_chunk("upload_1", 1)
    assert redis_store.get("upload_1").status is UploadStatus.FAILED

    redis_store.record_chunk("upload_1", 2)
    assert redis_store.get("upload_1").status is UploadStatus.ASSEMBLING


def test_received_set_follows_session_ttl(redis_store, client):
    _create(redis_store)

    redis_store.record_chunk("upload_1", 0)

    assert 0 < client.pttl("upload:upload_1:chunks_received") <= 60_000


def test_record_chunk_without_session_is_not_found(redis_store, client):
    with pytest.raises(SessionNotFound):
        redis_store.record_chunk("upload_missing", 0)

    assert not client.exists("upload:upload_missing:chunks_received")


def test_record_failure_increments_counter(redis_store):
    _create(redis_store)

    assert redis_store.record_failure("upload_1") == 1
    assert redis_store.record_failure("upload_1") == 2
    assert redis_store.get("upload_1").failed_chunks == 2


def test_record_failure_without_session_is_not_found(redis_store):
    with pytest.raises(SessionNotFound):
        redis_store.record_failure("upload_missing")


def test_mark_completed_writes_status_and_url(redis_store):
    _create(redis_store)

    redis_store.mark_completed("upload_1", artifact_url="s3://bucket/upload_1/f.txt")

    session = redis_store.get("upload_1")
    assert session.status is UploadStatus.COMPLETED
    assert session.artifact_url == "s3://bucket/upload_1/f.txt"
    assert session.is_closed


def test_update_without_session_does_not_create_it(redis_store, client):
    with pytest.raises(SessionNotFound):
        redis_store.set_status("upload_missing", UploadStatus.FAILED)

    assert not client.exists("upload:upload_missing")


def test_assembly_lock_is_exclusive_until_released(redis_store, client):
    token = redis_store.acquire_assembly_lock("upload_1")

    assert token is not None
    assert redis_store.acquire_assembly_lock("upload_1") is None
    assert 0 < client.ttl("upload:upload_1:assembly_lock") <= 30

    redis_store.release_assembly_lock("upload_1", "someone-else")
    assert redis_store.acquire_assembly_lock("upload_1") is None

    redis_store.release_assembly_lock("upload_1", token)
    assert redis_store.acquire_assembly_lock("upload_1") is not None


def test_delete_removes_record_and_received_set(redis_store, client):
    _create(redis_store)
    redis_store.record_chunk("upload_1", 0)

    redis_store.delete("upload_1")

    assert not redis_store.exists("upload_1")
    assert not client.exists("upload:upload_1:chunks_received")
