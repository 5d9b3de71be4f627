"""
Ingestion Schemas

Pydantic schemas for the training payload posted by the backend, the
external source links attached to documents, and the processing result
stored on a processed file.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ExternalSourceType = Literal[
    "download", "view", "edit", "onedrive", "googledrive", "dropbox", "url"
]


def detect_source_type(url: str) -> ExternalSourceType:
    """Classify a link by its host.

    Args:
        url: Link URL.

    Returns:
        "onedrive", "googledrive", "dropbox" or the generic "url".
    """
    if "onedrive" in url or "sharepoint" in url:
        return "onedrive"
    if "drive.google.com" in url:
        return "googledrive"
    if "dropbox.com" in url:
        return "dropbox"
    return "url"


class ExternalSource(BaseModel):
    """A link to the source document hosted outside the system.

    Attributes:
        id: Client-side identifier.
        name: Display name.
        url: Link target.
        description: Optional free text.
        type: Link kind. Detected from ``url`` when missing or "view".
        added_at / updated_at / last_validated: ISO timestamps.
        validation_status: Last HTTP status seen when validating the link.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    name: str = ""
    url: str = ""
    description: str | None = None
    type: ExternalSourceType | None = None
    added_at: str | None = Field(default=None, alias="addedAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")
    last_validated: str | None = Field(default=None, alias="lastValidated")
    validation_status: int | None = Field(default=None, alias="validationStatus")

    @model_validator(mode="after")
    def _fill_type(self) -> "ExternalSource":
        if (self.type is None or self.type == "view") and self.url:
            self.type = detect_source_type(self.url)
        return self

    def to_wire(self) -> dict[str, Any]:
        """camelCase dict without unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TrainingRequest(BaseModel):
    """Payload describing the file being trained on.

    ``metadata`` becomes the base metadata of every chunk and ``filename``
    the source name used in chunk titles.
    """

    filename: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    file_id: int | None = None
    file_operation: str = "upload"
    file_path: str | None = None
    sftp_path: str | None = None
    uploaded_at: datetime | None = None


class ProcessingResult(BaseModel):
    """Summary recorded once a file has been chunked."""

    word_count: int
    line_count: int
    character_count: int
    file_type: str = ""
    chunk_count: int
    processed_by: str = "chunker"
    processed_at: str
