"""
Audio and transcript models.

The transcript is the only thing downstream components see of the audio.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from voiceledger.config import get_settings


class AudioUpload(BaseModel):
    """Represents an uploaded audio clip before transcription."""

    upload_id: UUID = Field(
        default_factory=uuid4,
        description="Unique upload identifier"
    )
    uploaded_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    original_filename: str
    file_size_bytes: int = Field(gt=0)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow configured audio types."""
        allowed = get_settings().app.supported_formats_list
        if v.lower() not in allowed:
            raise ValueError(f"Unsupported audio type: {v}. Allowed: {', '.join(allowed)}")
        return v.lower()

    @field_validator('file_size_bytes')
    @classmethod
    def validate_size(cls, v: int) -> int:
        limit = get_settings().app.max_upload_size_bytes
        if v > limit:
            raise ValueError(f"Audio is larger than {limit} bytes")
        return v


class TranscriptSegment(BaseModel):
    text: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class Transcript(BaseModel):
    """Speech-to-text result."""

    upload_id: Optional[UUID] = None
    text: str = ""
    segments: list[TranscriptSegment] = Field(default_factory=list)
    language: str = "it"

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()
