"""
Request and record schemas for the file analysis functions.

Complete schemas for request validation and for the analytical table row.
"""

from typing import List, Optional

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnalysisRequest(BaseModel):
    """Body posted by the workflow to every analysis function."""

    bucket_name: str = Field(..., min_length=1, description="Bucket holding the uploaded file")
    file_path: str = Field(..., min_length=1, description="Object name within the bucket")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "bucket_name": "uploads",
                "file_path": "reports/2024/summary.txt",
            }
        }
    )


class WordCountItem(BaseModel):
    """One entry of the ranked word list."""

    word: str = Field(..., min_length=1)
    count: int = Field(..., ge=1)


class WordCountResponse(BaseModel):
    total_words: int = Field(..., ge=0)


class TopWordsResponse(BaseModel):
    top_10_words: List[WordCountItem] = Field(default_factory=list)


class TextAnalysisResponse(BaseModel):
    total_words: int = Field(..., ge=0)
    top_10_words: List[WordCountItem] = Field(default_factory=list)


class FileAnalysisRecord(BaseModel):
    """Row written to the analytical table for every processed file."""

    filename: str = Field(..., min_length=1, description="Object name of the processed file")
    bucket: str = Field(..., min_length=1, description="Bucket holding the file")
    size_bytes: int = Field(..., ge=0, description="Object size in bytes")
    upload_date: Optional[str] = Field(None, description="Object update time, ISO-8601")
    total_words: int = Field(..., ge=0)
    top_10_words: List[WordCountItem] = Field(default_factory=list)

    @field_validator("upload_date", mode="before")
    @classmethod
    def normalize_upload_date(cls, value):
        """Accept any timestamp format the storage API emits and store it as ISO-8601."""
        if value is None or value == "":
            return None
        if hasattr(value, "isoformat"):
            return value.isoformat()
        if not isinstance(value, str):
            raise ValueError(f"upload_date must be a timestamp string, got {type(value).__name__}")
        try:
            return date_parser.isoparse(value).isoformat()
        except ValueError:
            return date_parser.parse(value).isoformat()

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "filename": "reports/2024/summary.txt",
                "bucket": "uploads",
                "size_bytes": 5120,
                "upload_date": "2024-05-01T12:30:00+00:00",
                "total_words": 812,
                "top_10_words": [{"word": "the", "count": 57}],
            }
        }
    )
