from pydantic import BaseModel, Field


class AttachmentsConfig(BaseModel):
    StorageDir: str = Field(default="attachments", description="Directory where uploaded files are written")
    PublicBaseUrl: str = Field(
        default="http://localhost:8000/attachments",
        description="Base URL the storage directory is served from",
    )
    MaxBytes: int = Field(default=25 * 1024 * 1024, description="Upload size ceiling (25 MiB)")
