"""Data models for the converter."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from .errors import ConversionError


class ConversionRequest(BaseModel):
    """A batch of URLs sharing one content selector."""
    model_config = ConfigDict(frozen=True)

    urls: list[str] = Field(min_length=1)
    selector: str = Field(min_length=1)


class ConversionResult(BaseModel):
    """Outcome of converting a single URL."""
    model_config = ConfigDict(frozen=True)

    url: str
    filename: Optional[str] = None
    content: Optional[bytes] = Field(default=None, exclude=True, repr=False)
    is_success: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def success(cls, url: str, filename: str, content: bytes) -> "ConversionResult":
        return cls(url=url, filename=filename, content=content, is_success=True)

    @classmethod
    def failure(cls, url: str, error: ConversionError) -> "ConversionResult":
        return cls(url=url, is_success=False, error=str(error), error_kind=error.kind)


class ConversionSummary(BaseModel):
    """Aggregate outcome of a whole run."""
    model_config = ConfigDict(frozen=True)

    total_urls: int
    successful: int
    failed: int
    failed_urls: list[str] = []
    processing_time: str
    download_id: Optional[str] = None


class ConversionJob(BaseModel):
    """Payload of a queued conversion job."""
    urls: list[str]
    selector: str
    download_id: str


class JobCreate(BaseModel):
    """Request to create a new conversion job."""
    urls: list[HttpUrl] = Field(min_length=1)
    selector: str = Field(min_length=1)


class JobStats(BaseModel):
    """Job queue statistics."""
    total: int
    pending: int
    processing: int
    completed: int
    failed: int
