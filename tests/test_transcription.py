"""Tests for audio intake and the Gemini-backed collaborators, with the model faked."""

import pytest

from voiceledger.agents import SYSTEM_PROMPT, ExtractionServiceError, GeminiExtractionClient
from voiceledger.config import GeminiSettings
from voiceledger.services.transcription import (
    GeminiTranscriptionService,
    InvalidAudioError,
    TranscriptionServiceError,
    build_upload,
)


class FakeResponse:

    def __init__(self, text=None):
        self._text = text

    @property
    def text(self):
        if self._text is None:
            raise ValueError("No candidates returned")
        return self._text


class FakeModel:
    """Stands in for genai.GenerativeModel; replays responses or raises."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    async def generate_content_async(self, contents):
        self.requests.append(contents)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def gemini_settings():
    return GeminiSettings(api_key="test-key")


class TestBuildUpload:
    """Tests for audio intake checks."""

    def test_valid_clip(self):
        upload = build_upload("nota.ogg", "Audio/OGG", b"1234")
        assert upload.file_size_bytes == 4
        assert upload.mime_type == "audio/ogg"

    def test_missing_filename_gets_default(self):
        assert build_upload("", "audio/mpeg", b"1").original_filename == "audio"

    @pytest.mark.parametrize("mime_type, audio", [
        ("audio/ogg", b""),
        (None, b"1234"),
        ("video/mp4", b"1234"),
    ])
    def test_rejected(self, mime_type, audio):
        with pytest.raises(InvalidAudioError):
            build_upload("nota", mime_type, audio)


class TestGeminiTranscriptionService:
    """Tests for GeminiTranscriptionService."""

    @pytest.mark.asyncio
    async def test_transcript_segments(self, gemini_settings, policy):
        service = GeminiTranscriptionService(gemini_settings, policy)
        service._model = FakeModel(FakeResponse("ho pagato 20 euro\n\n al bar  \n"))
        upload = build_upload("nota.ogg", "audio/ogg", b"1234")

        transcript = await service.transcribe(upload, b"1234")

        assert transcript.text == "ho pagato 20 euro al bar"
        assert [s.text for s in transcript.segments] == ["ho pagato 20 euro", "al bar"]
        assert transcript.upload_id == upload.upload_id
        assert service._model.requests[0][1] == {"mime_type": "audio/ogg", "data": b"1234"}

    @pytest.mark.asyncio
    async def test_blocked_response_is_empty_transcript(self, gemini_settings, policy):
        service = GeminiTranscriptionService(gemini_settings, policy)
        service._model = FakeModel(FakeResponse(None))
        transcript = await service.transcribe(build_upload("a.ogg", "audio/ogg", b"1"), b"1")
        assert transcript.is_empty

    @pytest.mark.asyncio
    async def test_service_errors_are_retried(self, gemini_settings, policy):
        service = GeminiTranscriptionService(gemini_settings, policy)
        service._model = FakeModel(RuntimeError("503"), FakeResponse("ok"))
        transcript = await service.transcribe(build_upload("a.ogg", "audio/ogg", b"1"), b"1")
        assert transcript.text == "ok"

    @pytest.mark.asyncio
    async def test_persistent_errors_raise(self, gemini_settings, policy):
        service = GeminiTranscriptionService(gemini_settings, policy)
        service._model = FakeModel(*[RuntimeError("503")] * policy.transient_retry_attempts)
        with pytest.raises(TranscriptionServiceError):
            await service.transcribe(build_upload("a.ogg", "audio/ogg", b"1"), b"1")


class TestGeminiExtractionClient:
    """Tests for GeminiExtractionClient."""

    @pytest.mark.asyncio
    async def test_complete(self, gemini_settings):
        client = GeminiExtractionClient(gemini_settings)
        client._models[SYSTEM_PROMPT] = FakeModel(FakeResponse('  {"importo": "5"}  '))
        assert await client.complete(SYSTEM_PROMPT, "prompt") == '{"importo": "5"}'

    @pytest.mark.asyncio
    async def test_no_candidates_is_empty_reply(self, gemini_settings):
        client = GeminiExtractionClient(gemini_settings)
        client._models[SYSTEM_PROMPT] = FakeModel(FakeResponse(None))
        assert await client.complete(SYSTEM_PROMPT, "prompt") == ""

    @pytest.mark.asyncio
    async def test_service_error(self, gemini_settings):
        client = GeminiExtractionClient(gemini_settings)
        client._models[SYSTEM_PROMPT] = FakeModel(RuntimeError("quota"))
        with pytest.raises(ExtractionServiceError):
            await client.complete(SYSTEM_PROMPT, "prompt")
