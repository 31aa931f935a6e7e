####################################
# --- Request/response schemas --- #
####################################

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from media_api.models import UploadMethod

UPLOAD_SUCCESS_MESSAGE = "Image uploaded successfully"
PRESIGNED_SUFFIX = " (using presigned URL)"
LIST_SUCCESS_MESSAGE = "Files retrieved successfully"


class UploadResponse(BaseModel):
    """Response model for `POST /v1/uploads`."""
    message: str = Field(description="A message about the operation.")
    file_url: str = Field(
        description="Public URL of the stored file.",
        json_schema_extra={"example": "https://media-uploads.s3.amazonaws.com/f/posts%2Fu1%2F1700000000000-cat.jpg"},
    )
    method: UploadMethod = Field(description="Upload strategy that produced the URL.")


class AssetRecordModel(BaseModel):
    """A stored asset in a listing."""
    name: str
    key: str
    size_bytes: int = Field(description="The size of the file in bytes.")
    uploaded_at: str = Field(description="ISO-8601 upload timestamp.")
    custom_id: Optional[str] = None
    url: str


class ListFilesResponse(BaseModel):
    """Response model for `GET /v1/uploads`."""
    message: str
    file_count: int
    files: List[AssetRecordModel]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": LIST_SUCCESS_MESSAGE,
                "file_count": 1,
                "files": [
                    {
                        "name": "1700000000000-cat.jpg",
                        "key": "posts/u1/1700000000000-cat.jpg",
                        "size_bytes": 1024,
                        "uploaded_at": "2023-11-14T22:13:20.000Z",
                        "custom_id": None,
                        "url": "https://media-uploads.s3.amazonaws.com/f/posts%2Fu1%2F1700000000000-cat.jpg",
                    }
                ],
            }
        }
    )


class ErrorResponse(BaseModel):
    """Body of every error response."""
    message: str
    code: str
    details: List[str] = Field(default_factory=list)
