import pytest

from services.upload.config import DEFAULT_SUPPORTED_CONTENT_TYPES, load_config


def test_defaults(monkeypatch):
    for name in [
        "UPLOAD_SESSION_TTL_SECONDS",
        "UPLOAD_CHUNK_ENDPOINT",
        "UPLOAD_STORAGE_BUCKET",
        "UPLOAD_SUPPORTED_CONTENT_TYPES",
        "UPLOAD_AUTO_ASSEMBLE",
        "UPLOAD_ASSEMBLY_LOCK_SECONDS",
    ]:
        monkeypatch.delenv(name, raising=False)

    cfg = load_config()

    assert cfg.session_ttl_seconds == 86400
    assert cfg.chunk_endpoint == "/api/upload/chunk"
    assert cfg.supported_content_types == DEFAULT_SUPPORTED_CONTENT_TYPES
    assert cfg.auto_assemble is False
    assert cfg.assembly_lock_seconds == 900
    assert cfg.uses_object_storage is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("UPLOAD_SESSION_TTL_SECONDS", "120")
    monkeypatch.setenv("UPLOAD_STORAGE_BUCKET", "documents")
    monkeypatch.setenv("UPLOAD_SUPPORTED_CONTENT_TYPES", "text/plain, text/csv")
    monkeypatch.setenv("UPLOAD_AUTO_ASSEMBLE", "yes")

    cfg = load_config()

    assert cfg.session_ttl_seconds == 120
    assert cfg.uses_object_storage is True
    assert cfg.supported_content_types == ("text/plain", "text/csv")
    assert cfg.auto_assemble is True


def test_invalid_integer_names_variable(monkeypatch):
    monkeypatch.setenv("UPLOAD_REDIS_PORT", "six-three-seven-nine")

    with pytest.raises(ValueError, match="UPLOAD_REDIS_PORT"):
        load_config()
