
import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from media_api.config.settings import Settings
from media_api.main import create_app
from media_api.services.auth import JwtService
from tests.consts import (
    TEST_BUCKET_NAME,
    TEST_JWT_SECRET,
    TEST_PROTECTED_URL,
    TEST_PUBLIC_BASE_URL,
)

pytest_plugins = [
    "tests.fixtures.storage_fixtures",
]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        deployment_mode="local-dev",
        s3_bucket_name=TEST_BUCKET_NAME,
        public_base_url=TEST_PUBLIC_BASE_URL,
        jwt_secret=TEST_JWT_SECRET,
        protected_asset_urls=[TEST_PROTECTED_URL],
    )


@pytest.fixture
def jwt_service() -> JwtService:
    return JwtService(secret=TEST_JWT_SECRET)


@pytest.fixture
def auth_headers(jwt_service):
    """Build an Authorization header for the given claims."""
    def _headers(email="user@example.com", role="user", user_id="u1"):
        return {"Authorization": f"Bearer {jwt_service.issue(email, role=role, user_id=user_id)}"}
    return _headers


@pytest.fixture
def client(settings, fake_storage):
    app = create_app(settings=settings, storage=fake_storage)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def mocked_aws(monkeypatch):
    """Moto-backed AWS with the test bucket already created."""
    for name in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SECURITY_TOKEN", "AWS_SESSION_TOKEN"):
        monkeypatch.setenv(name, "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)

    with mock_aws():
        s3_client = boto3.client("s3", region_name="us-east-1")
        s3_client.create_bucket(Bucket=TEST_BUCKET_NAME)
        yield s3_client
