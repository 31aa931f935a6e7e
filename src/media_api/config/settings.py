# src/media_api/config/settings.py
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

# Default avatar handed out to every new account; never deleted on replacement.
DEFAULT_PROTECTED_ASSET_URLS = [
    "https://media-uploads.s3.amazonaws.com/f/defaults%2Favatar.png",
]

DEPLOYMENT_MODES = ("local-dev", "aws-mock", "aws-prod")
DEPLOYMENT_MODE_ALIASES = {"local-mock": "local-dev", "cloud": "aws-prod"}
LOCAL_MODES = ("local-dev", "aws-mock")
LOCAL_ENDPOINT_URL = "http://localhost:5000"


class Settings(BaseSettings):
    """
    Runtime configuration for the upload API, the CLI and the tests.

    Values come from keyword arguments, then environment variables, then a
    `.env` file, then the defaults below. Field names map to upper-case
    environment variables (`S3_BUCKET_NAME`, `MAX_UPLOAD_BYTES`, ...); the
    AWS fields use the standard AWS variable names instead.

    In the local modes the S3 client is pointed at a moto server on
    `LOCAL_ENDPOINT_URL` with throwaway credentials unless those are set.
    """

    app_name: str = Field(default="media-uploads-api")
    deployment_mode: str = Field(
        default="local-dev",
        description="One of local-dev, aws-mock, aws-prod"
    )
    log_level: str = Field(default="INFO")

    # --- AWS ---
    aws_region: str = Field(default="us-east-1", alias="AWS_DEFAULT_REGION")
    aws_access_key_id: Optional[str] = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")
    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL",
        description="Only honoured in local modes"
    )

    # --- Storage ---
    s3_bucket_name: str = Field(default="media-uploads")
    public_base_url: str = Field(
        default="https://media-uploads.s3.amazonaws.com",
        description="Base URL that public asset links are built from"
    )
    presigned_url_expiry_seconds: int = Field(default=3600, gt=0)
    transfer_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for the raw PUT to a presigned URL"
    )
    protected_asset_urls: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PROTECTED_ASSET_URLS),
        description="Asset URLs that are never deleted when replaced"
    )

    # --- Upload limits ---
    max_upload_bytes: int = Field(default=4 * 1024 * 1024, gt=0)
    upload_field_name: str = Field(default="file")

    # --- Authentication ---
    jwt_secret: str = Field(
        default="media-dev-secret",
        description="Shared secret used to verify bearer tokens"
    )
    jwt_algorithm: str = Field(default="HS256")
    auth_scheme: str = Field(default="Bearer")
    admin_role: str = Field(
        default="admin",
        description="Role claim value that maps to the admin role"
    )

    @field_validator('deployment_mode', mode='before')
    @classmethod
    def resolve_deployment_mode(cls, v):
        """Accept the legacy mode names and reject anything unknown."""
        mode = DEPLOYMENT_MODE_ALIASES.get(v, v)
        if mode not in DEPLOYMENT_MODES:
            raise ValueError(f"Invalid deployment_mode: {v}. Must be one of {list(DEPLOYMENT_MODES)}")
        return mode

    @field_validator('public_base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @model_validator(mode='after')
    def fill_local_mode_defaults(self) -> Self:
        if self.is_local_mode:
            self.aws_endpoint_url = self.aws_endpoint_url or LOCAL_ENDPOINT_URL
            self.aws_access_key_id = self.aws_access_key_id or "mock"
            self.aws_secret_access_key = self.aws_secret_access_key or "mock"
        return self

    @property
    def is_local_mode(self) -> bool:
        return self.deployment_mode in LOCAL_MODES

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
