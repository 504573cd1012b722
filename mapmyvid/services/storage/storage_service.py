"""
Map My Vid object storage: S3 (or any S3-compatible endpoint) through boto3.

boto3 is blocking; every call is pushed to a worker thread with
``asyncio.to_thread`` so uploads never stall the event loop.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from mapmyvid.core.config import Settings, get_settings
from mapmyvid.core.exceptions import (
    ConfigurationError, ExternalServiceError, NotFoundError, ValidationError,
)

logger = logging.getLogger(__name__)


def user_prefix(user_id: str) -> str:
    return f"videos/{user_id}/"


def video_key(user_id: str, filename: str) -> str:
    """Key of one of the user's objects; ``filename`` may not leave the user's prefix."""
    if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
        raise ValidationError("Invalid object key")
    return f"{user_prefix(user_id)}{filename}"


class StorageService:
    """put/get/delete/exists/list over a single bucket."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        self.settings = settings or get_settings()
        if not self.settings.s3_bucket_name:
            raise ConfigurationError("S3 bucket name is not set")
        self.bucket = self.settings.s3_bucket_name
        self.client = client or boto3.client(
            "s3",
            region_name=self.settings.s3_region,
            endpoint_url=self.settings.s3_endpoint_url,
            aws_access_key_id=self.settings.s3_access_key_id,
            aws_secret_access_key=self.settings.s3_secret_access_key,
            config=Config(signature_version="s3v4"),
        )

    def object_url(self, key: str) -> str:
        if self.settings.s3_endpoint_url:
            return f"{self.settings.s3_endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.settings.s3_region}.amazonaws.com/{key}"

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        await self._call("put_object", Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        logger.info(f"Stored s3://{self.bucket}/{key} ({len(data)} bytes)")
        return self.object_url(key)

    async def get(self, key: str) -> bytes:
        try:
            response = await self._call("get_object", Bucket=self.bucket, Key=key)
        except ExternalServiceError as e:
            if _is_missing(e.__cause__):
                raise NotFoundError(f"Object not found: {key}") from e
            raise
        return await asyncio.to_thread(response["Body"].read)

    async def delete(self, key: str) -> None:
        await self._call("delete_object", Bucket=self.bucket, Key=key)
        logger.info(f"Deleted s3://{self.bucket}/{key}")

    async def exists(self, key: str) -> bool:
        try:
            await self._call("head_object", Bucket=self.bucket, Key=key)
        except ExternalServiceError as e:
            if _is_missing(e.__cause__):
                return False
            raise
        return True

    async def metadata(self, key: str) -> Dict:
        try:
            response = await self._call("head_object", Bucket=self.bucket, Key=key)
        except ExternalServiceError as e:
            if _is_missing(e.__cause__):
                raise NotFoundError(f"Object not found: {key}") from e
            raise
        return {
            "key": key,
            "size": response.get("ContentLength", 0),
            "content_type": response.get("ContentType"),
            "last_modified": response.get("LastModified"),
            "etag": (response.get("ETag") or "").strip('"'),
            "url": self.object_url(key),
        }

    async def health(self) -> Dict:
        """Whether the bucket is reachable with the configured credentials."""
        try:
            await self._call("head_bucket", Bucket=self.bucket)
        except ExternalServiceError as e:
            logger.error(f"Storage health check failed for bucket {self.bucket}: {e}")
            return {"status": "unhealthy", "bucket": self.bucket}
        return {"status": "healthy", "bucket": self.bucket}

    async def list(self, prefix: Optional[str] = None, max_keys: int = 1000) -> List[Dict]:
        params = {"Bucket": self.bucket, "MaxKeys": max_keys}
        if prefix:
            params["Prefix"] = prefix
        response = await self._call("list_objects_v2", **params)
        return [
            {
                "key": obj["Key"],
                "size": obj.get("Size", 0),
                "last_modified": obj.get("LastModified"),
                "etag": (obj.get("ETag") or "").strip('"'),
                "url": self.object_url(obj["Key"]),
            }
            for obj in response.get("Contents", [])
        ]

    async def _call(self, operation: str, **params) -> Dict:
        try:
            return await asyncio.to_thread(getattr(self.client, operation), **params)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"S3 {operation} failed for {params.get('Key', params.get('Prefix', ''))}: {e}")
            raise ExternalServiceError(f"Storage {operation} failed") from e


def _is_missing(error: Optional[BaseException]) -> bool:
    if not isinstance(error, ClientError):
        return False
    code = str(error.response.get("Error", {}).get("Code", ""))
    return code in ("404", "NoSuchKey", "NotFound")
