"""Tests for the S3 storage wrapper against a stubbed boto3 client."""
from __future__ import annotations

import io
from datetime import datetime, timezone

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from mapmyvid.core.config import Settings
from mapmyvid.core.exceptions import (
    ConfigurationError, ExternalServiceError, NotFoundError, ValidationError,
)
from mapmyvid.services.storage.storage_service import StorageService, user_prefix, video_key

USER = "6f1c9a52-0d4e-4e0b-9d8a-2b7f3c1e5a90"


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="ap-southeast-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(s3_client):
    with Stubber(s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def storage(settings, s3_client):
    return StorageService(settings=settings, client=s3_client)


def test_video_key_layout():
    assert video_key(USER, "video-1-ab.mp4") == f"videos/{USER}/video-1-ab.mp4"
    assert user_prefix(USER) == f"videos/{USER}/"


@pytest.mark.parametrize("name", ["", ".", "..", "../other.mp4", "a/b.mp4", "a\\b.mp4"])
def test_video_key_stays_under_user_prefix(name):
    with pytest.raises(ValidationError, match="Invalid object key"):
        video_key(USER, name)


def test_object_url(settings, s3_client):
    storage = StorageService(settings=settings, client=s3_client)
    assert storage.object_url("videos/a.mp4") == (
        "https://test-bucket.s3.ap-southeast-1.amazonaws.com/videos/a.mp4"
    )

    custom = settings.model_copy(update={"s3_endpoint_url": "http://minio:9000/"})
    assert StorageService(settings=custom, client=s3_client).object_url("videos/a.mp4") == (
        "http://minio:9000/test-bucket/videos/a.mp4"
    )


def test_missing_bucket_is_a_configuration_error(s3_client):
    with pytest.raises(ConfigurationError):
        StorageService(settings=Settings(s3_bucket_name=""), client=s3_client)


async def test_put(storage, stubber):
    key = video_key(USER, "video-1-ab.mp4")
    stubber.add_response(
        "put_object",
        {"ETag": '"abc123"'},
        {"Bucket": "test-bucket", "Key": key, "Body": b"mp4", "ContentType": "video/mp4"},
    )

    url = await storage.put(key, b"mp4", "video/mp4")

    assert url.endswith(f"/{key}")


async def test_put_failure_is_an_external_service_error(storage, stubber):
    stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)

    with pytest.raises(ExternalServiceError, match="put_object"):
        await storage.put("videos/x.mp4", b"mp4", "video/mp4")


async def test_get(storage, stubber):
    stubber.add_response(
        "get_object",
        {"Body": StreamingBody(io.BytesIO(b"payload"), len(b"payload"))},
        {"Bucket": "test-bucket", "Key": "videos/x.mp4"},
    )

    assert await storage.get("videos/x.mp4") == b"payload"


async def test_get_missing_object(storage, stubber):
    stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)

    with pytest.raises(NotFoundError):
        await storage.get("videos/missing.mp4")


async def test_delete(storage, stubber):
    stubber.add_response(
        "delete_object", {}, {"Bucket": "test-bucket", "Key": "videos/x.mp4"},
    )
    await storage.delete("videos/x.mp4")


async def test_exists(storage, stubber):
    stubber.add_response("head_object", {"ContentLength": 3}, {"Bucket": "test-bucket", "Key": "a"})
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
    stubber.add_client_error("head_object", service_error_code="InternalError", http_status_code=500)

    assert await storage.exists("a") is True
    assert await storage.exists("b") is False
    with pytest.raises(ExternalServiceError):
        await storage.exists("c")


async def test_list(storage, stubber):
    modified = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)
    stubber.add_response(
        "list_objects_v2",
        {"Contents": [{"Key": f"videos/{USER}/v.mp4", "Size": 42, "ETag": '"e1"', "LastModified": modified}]},
        {"Bucket": "test-bucket", "MaxKeys": 1000, "Prefix": f"videos/{USER}/"},
    )

    [obj] = await storage.list(prefix=f"videos/{USER}/")

    assert obj["key"] == f"videos/{USER}/v.mp4"
    assert obj["size"] == 42
    assert obj["etag"] == "e1"
    assert obj["last_modified"] == modified
    assert obj["url"].endswith(f"/videos/{USER}/v.mp4")


async def test_metadata(storage, stubber):
    modified = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)
    stubber.add_response(
        "head_object",
        {"ContentLength": 42, "ContentType": "video/mp4", "ETag": '"e1"', "LastModified": modified},
        {"Bucket": "test-bucket", "Key": "videos/x.mp4"},
    )

    meta = await storage.metadata("videos/x.mp4")

    assert meta["size"] == 42
    assert meta["content_type"] == "video/mp4"
    assert meta["etag"] == "e1"
    assert meta["last_modified"] == modified
    assert meta["url"].endswith("/videos/x.mp4")


async def test_metadata_missing_object(storage, stubber):
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

    with pytest.raises(NotFoundError):
        await storage.metadata("videos/missing.mp4")


async def test_health(storage, stubber):
    stubber.add_response("head_bucket", {}, {"Bucket": "test-bucket"})
    stubber.add_client_error("head_bucket", service_error_code="AccessDenied", http_status_code=403)

    assert await storage.health() == {"status": "healthy", "bucket": "test-bucket"}
    assert await storage.health() == {"status": "unhealthy", "bucket": "test-bucket"}
