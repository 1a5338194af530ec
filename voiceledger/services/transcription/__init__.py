"""Transcription services package."""

from voiceledger.services.transcription.gemini_service import (
    GeminiTranscriptionService,
    InvalidAudioError,
    TranscriptionError,
    TranscriptionService,
    TranscriptionServiceError,
    build_upload,
)

__all__ = [
    "GeminiTranscriptionService",
    "InvalidAudioError",
    "TranscriptionError",
    "TranscriptionService",
    "TranscriptionServiceError",
    "build_upload",
]
