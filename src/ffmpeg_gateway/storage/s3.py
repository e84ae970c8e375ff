"""S3-compatible storage backend (AWS S3, MinIO, Supabase storage)."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ffmpeg_gateway.storage.base import StorageBackendError

logger = logging.getLogger(__name__)


def build_s3_client(
    *,
    endpoint_url: str | None,
    region: str,
    access_key: str | None,
    secret_key: str | None,
) -> Any:
    """Path-style SigV4 client, which every S3-compatible server accepts."""

    session = boto3.session.Session(
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=region,
    )
    return session.client(
        "s3",
        endpoint_url=endpoint_url,
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        ),
    )


class S3Storage:
    """Uploads with a conditional write so an existing key is never replaced."""

    name = "s3"

    def __init__(
        self,
        *,
        client: Any,
        bucket: str | None,
        public_endpoint: str,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.public_endpoint = public_endpoint.rstrip("/")

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        if not self.bucket:
            raise StorageBackendError("Storage bucket is not configured")
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                IfNoneMatch="*",
            )
        except ClientError as error:
            code = error.response.get("Error", {}).get("Code", "")
            if code in {"PreconditionFailed", "ConditionalRequestConflict"}:
                raise StorageBackendError(f"Object already exists: {key}") from error
            raise StorageBackendError(str(error)) from error
        except BotoCoreError as error:
            raise StorageBackendError(str(error)) from error
        logger.debug("Uploaded s3://%s/%s (%d bytes)", self.bucket, key, len(data))

    def public_url(self, key: str) -> str:
        return f"{self.public_endpoint}/{self.bucket}/{quote(key)}"
