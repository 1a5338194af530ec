"""
Transcription Service using Gemini

DESIGN DECISION: Audio goes to Gemini inline, in the same SDK the
extraction step uses, so one API key covers both calls.

This service handles:
1. Rejecting empty or unsupported audio before any call is made
2. Sending the audio for transcription
3. Retrying transient service failures

It does NOT interpret the transcript. That is the extraction step's job.
"""

from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from voiceledger.config import GeminiSettings, ProcessingPolicy, get_settings
from voiceledger.models.transcription import AudioUpload, Transcript, TranscriptSegment


logger = structlog.get_logger(__name__)

TRANSCRIPTION_PROMPT = (
    "Trascrivi fedelmente questo audio in italiano. "
    "Restituisci solo il testo parlato, una frase per riga, senza commenti."
)


class TranscriptionError(Exception):
    """Base exception for transcription errors."""
    pass


class InvalidAudioError(TranscriptionError):
    """Audio is empty, too large or of an unsupported type."""
    pass


class TranscriptionServiceError(TranscriptionError):
    """The speech-to-text service failed; safe to retry."""
    pass


def build_upload(filename: str, mime_type: Optional[str], audio: bytes) -> AudioUpload:
    """
    Validate an incoming clip and describe it.

    Raises:
        InvalidAudioError: If the clip is empty, too large or not audio
    """
    if not audio:
        raise InvalidAudioError("Audio file is missing or empty")
    if not mime_type:
        raise InvalidAudioError("Audio file has no content type")
    try:
        return AudioUpload(
            original_filename=filename or "audio",
            file_size_bytes=len(audio),
            mime_type=mime_type,
        )
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise InvalidAudioError(messages) from e


class TranscriptionService(ABC):
    """Speech-to-text collaborator."""

    @abstractmethod
    async def transcribe(self, upload: AudioUpload, audio: bytes) -> Transcript:
        """
        Transcribe one clip.

        Raises:
            TranscriptionServiceError: If the service fails (retryable)
        """
        pass


class GeminiTranscriptionService(TranscriptionService):
    """
    Transcription with google-generativeai, audio sent inline.

    Service errors are retried with exponential backoff per the
    processing policy, then re-raised.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        policy: Optional[ProcessingPolicy] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._policy = policy or get_settings().policy
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.transcription_model_name,
            generation_config={
                "temperature": 0.0,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def _call(self, upload: AudioUpload, audio: bytes) -> str:
        try:
            response = await self._model.generate_content_async([
                TRANSCRIPTION_PROMPT,
                {"mime_type": upload.mime_type, "data": audio},
            ])
        except Exception as e:
            raise TranscriptionServiceError(f"Transcription failed: {e}") from e
        try:
            return response.text.strip()
        except ValueError:
            # Blocked or empty candidates: nothing was heard.
            return ""

    async def transcribe(self, upload: AudioUpload, audio: bytes) -> Transcript:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(TranscriptionServiceError),
            stop=stop_after_attempt(self._policy.transient_retry_attempts),
            wait=wait_exponential(multiplier=self._policy.retry_wait_multiplier, max=10),
            reraise=True,
        ):
            with attempt:
                text = await self._call(upload, audio)

        segments = [
            TranscriptSegment(text=line.strip())
            for line in text.splitlines()
            if line.strip()
        ]
        logger.info(
            "transcript_received",
            upload_id=str(upload.upload_id),
            characters=len(text),
            segments=len(segments),
        )
        return Transcript(
            upload_id=upload.upload_id,
            text=" ".join(segment.text for segment in segments),
            segments=segments,
            language="it",
        )
