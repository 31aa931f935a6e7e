import pytest

from media_api.adapters.storage import S3StorageBackend, synthesize_public_url
from media_api.config.settings import Settings
from media_api.models import DecodedFile, StorageMetadata
from tests.consts import (
    TEST_BUCKET_NAME,
    TEST_IMAGE_CONTENT,
    TEST_IMAGE_CONTENT_TYPE,
    TEST_IMAGE_NAME,
    TEST_PUBLIC_BASE_URL,
)

IMAGE = DecodedFile(buffer=TEST_IMAGE_CONTENT, mime_type=TEST_IMAGE_CONTENT_TYPE, file_name=TEST_IMAGE_NAME)
METADATA = StorageMetadata(owner_id="u1", owner_role="user", asset_kind="post-image")


@pytest.fixture
def storage(mocked_aws):
    return S3StorageBackend(
        bucket_name=TEST_BUCKET_NAME,
        public_base_url=TEST_PUBLIC_BASE_URL + "/",
        s3_client=mocked_aws,
    )


def test_public_url_encodes_key_as_one_segment():
    assert (
        synthesize_public_url("https://cdn.test.local/", "posts/u1/1-a b.jpg")
        == "https://cdn.test.local/f/posts%2Fu1%2F1-a%20b.jpg"
    )


async def test_upload_files_stores_body_and_metadata(storage, mocked_aws):
    key = "posts/u1/1-test-image.jpg"

    (result,) = await storage.upload_files([(key, IMAGE)], METADATA)

    assert result.key == key
    assert result.error is None
    assert result.url == f"{TEST_PUBLIC_BASE_URL}/f/posts%2Fu1%2F1-test-image.jpg"

    response = mocked_aws.get_object(Bucket=TEST_BUCKET_NAME, Key=key)
    assert response["Body"].read() == TEST_IMAGE_CONTENT
    assert response["ContentType"] == TEST_IMAGE_CONTENT_TYPE
    assert response["Metadata"] == {"owner-id": "u1", "owner-role": "user", "asset-kind": "post-image"}


async def test_upload_to_missing_bucket_is_reported_per_file(mocked_aws):
    storage = S3StorageBackend(
        bucket_name="no-such-bucket",
        public_base_url=TEST_PUBLIC_BASE_URL,
        s3_client=mocked_aws,
    )

    (result,) = await storage.upload_files([("posts/u1/1-x.jpg", IMAGE)], METADATA)

    assert result.url is None
    assert "NoSuchBucket" in result.error


async def test_presigned_url_round_trip(storage, mocked_aws):
    key = "profiles/u1/1-avatar.png"

    url = await storage.generate_presigned_url(key)
    assert url is not None
    assert TEST_BUCKET_NAME in url

    response = await storage.transfer(url, b"png-bytes", "image/png")
    assert response.ok

    stored = mocked_aws.get_object(Bucket=TEST_BUCKET_NAME, Key=key)
    assert stored["Body"].read() == b"png-bytes"


async def test_get_file_urls_skips_missing_keys(storage, mocked_aws):
    mocked_aws.put_object(Bucket=TEST_BUCKET_NAME, Key="gifs/u1/1-a.gif", Body=b"gif")

    resolved = await storage.get_file_urls(["gifs/u1/1-a.gif", "gifs/u1/missing.gif"])

    assert [item.key for item in resolved] == ["gifs/u1/1-a.gif"]
    assert resolved[0].url == storage.public_url("gifs/u1/1-a.gif")


async def test_delete_files(storage, mocked_aws):
    for key in ["posts/u1/1-a.jpg", "posts/u1/2-b.jpg"]:
        mocked_aws.put_object(Bucket=TEST_BUCKET_NAME, Key=key, Body=b"x")

    await storage.delete_files(["posts/u1/1-a.jpg"])

    remaining = mocked_aws.list_objects_v2(Bucket=TEST_BUCKET_NAME)["Contents"]
    assert [item["Key"] for item in remaining] == ["posts/u1/2-b.jpg"]


async def test_delete_nothing_is_a_no_op(storage):
    await storage.delete_files([])


async def test_list_files(storage, mocked_aws):
    mocked_aws.put_object(Bucket=TEST_BUCKET_NAME, Key="posts/u1/1-a.jpg", Body=b"abc")
    mocked_aws.put_object(Bucket=TEST_BUCKET_NAME, Key="top-level.png", Body=b"abcdef")

    files = sorted(await storage.list_files(), key=lambda file: file.key)

    assert [(file.name, file.key, file.size) for file in files] == [
        ("1-a.jpg", "posts/u1/1-a.jpg", 3),
        ("top-level.png", "top-level.png", 6),
    ]
    assert all(file.uploaded_at > 0 for file in files)
    assert all(file.custom_id is None for file in files)


async def test_list_files_in_empty_bucket(storage):
    assert await storage.list_files() == []


def test_from_settings_skips_endpoint_outside_local_modes(mocked_aws):
    settings = Settings(
        deployment_mode="aws-prod",
        s3_bucket_name=TEST_BUCKET_NAME,
        public_base_url=TEST_PUBLIC_BASE_URL + "/",
        aws_endpoint_url="http://localhost:5000",
    )

    storage = S3StorageBackend.from_settings(settings)

    assert storage.bucket_name == TEST_BUCKET_NAME
    assert storage.public_base_url == TEST_PUBLIC_BASE_URL
    assert storage.s3_client.meta.endpoint_url != "http://localhost:5000"


def test_from_settings_uses_endpoint_in_local_modes(mocked_aws):
    settings = Settings(deployment_mode="local-dev", s3_bucket_name=TEST_BUCKET_NAME)

    storage = S3StorageBackend.from_settings(settings)

    assert storage.s3_client.meta.endpoint_url == "http://localhost:5000"
