"""
Object Storage

Thin async wrapper over an S3 bucket used for uploaded audio and the
transcript JSON files written by AWS Transcribe.

boto3 is synchronous; every call is pushed to a worker thread with
``asyncio.to_thread`` so the event loop never blocks on S3.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import boto3
from botocore.config import Config

from brainer.core.config import settings

logger = logging.getLogger(__name__)


def create_aws_client(service: str) -> Any:
    """Build a boto3 client for ``service`` from application settings."""
    return boto3.client(
        service,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_REGION,
        config=Config(retries={"max_attempts": 3, "mode": "standard"}),
    )


def audio_key(user_id: str, filename: str, now_ms: int | None = None) -> str:
    """Storage key for an uploaded recording: ``audio/{user}/{epoch_ms}-{name}``."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"audio/{user_id}/{stamp}-{filename}"


class ObjectStorage:
    """
    Async facade over one S3 bucket.

    Args:
        client: Optional pre-built boto3 S3 client (tests inject a stub).
        bucket: Bucket name, defaults to settings.AWS_S3_BUCKET_NAME.
    """

    def __init__(self, client: Any | None = None, bucket: str | None = None) -> None:
        self._client = client
        self.bucket = bucket or settings.AWS_S3_BUCKET_NAME

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_aws_client("s3")
        return self._client

    async def put_object(self, key: str, body: bytes, content_type: str) -> None:
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
        )
        logger.debug("Stored s3://%s/%s (%d bytes)", self.bucket, key, len(body))

    async def get_text(self, key: str) -> str:
        """Download an object and decode it as UTF-8."""

        def _read() -> str:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read().decode("utf-8")

        return await asyncio.to_thread(_read)

    async def delete_object(self, key: str) -> None:
        await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        logger.debug("Deleted s3://%s/%s", self.bucket, key)

    async def list_keys(self, prefix: str, suffix: str | None = None) -> list[str]:
        """Keys starting with ``prefix`` (and ending with ``suffix`` if given)."""

        def _list() -> list[str]:
            keys: list[str] = []
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key.startswith(prefix) and (suffix is None or key.endswith(suffix)):
                        keys.append(key)
            return keys

        return await asyncio.to_thread(_list)
