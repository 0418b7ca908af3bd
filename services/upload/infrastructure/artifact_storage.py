from __future__ import annotations

import shutil
from pathlib import Path

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from services.upload.application.interfaces import ArtifactStorage
from services.upload.config import UploadConfig
from services.upload.domain.errors import AssemblyFailure


def create_s3_client(config: UploadConfig):
    return boto3.client(
        "s3",
        endpoint_url=config.storage_endpoint_url,
        region_name=config.storage_region,
        aws_access_key_id=config.storage_access_key,
        aws_secret_access_key=config.storage_secret_key,
        config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


class S3ArtifactStorage(ArtifactStorage):
    def __init__(self, client, *, bucket_name: str, object_prefix: str = "") -> None:
        self._client = client
        self._bucket = bucket_name
        self._prefix = object_prefix.strip("/")

    def publish(self, *, key: str, source_path: Path, content_type: str) -> str:
        object_key = "/".join(
            segment for segment in [self._prefix, key.strip("/")] if segment
        )
        try:
            self._client.upload_file(
                source_path.as_posix(),
                self._bucket,
                object_key,
                ExtraArgs={"ContentType": content_type},
            )
        except (BotoCoreError, ClientError, S3UploadFailedError) as exc:
            raise AssemblyFailure(
                "Failed to store %s in bucket %s: %s" % (object_key, self._bucket, exc)
            ) from exc
        return f"s3://{self._bucket}/{object_key}"


class LocalArtifactStorage(ArtifactStorage):
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def publish(self, *, key: str, source_path: Path, content_type: str) -> str:
        destination = self._root / key.strip("/")
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_path, destination)
        return destination.resolve().as_uri()


def create_artifact_storage(config: UploadConfig) -> ArtifactStorage:
    if config.uses_object_storage:
        return S3ArtifactStorage(
            create_s3_client(config),
            bucket_name=config.storage_bucket,
            object_prefix=config.storage_object_prefix,
        )
    return LocalArtifactStorage(config.artifact_dir)
