"""AI agents package."""

from voiceledger.agents.extraction import (
    SYSTEM_PROMPT,
    ExtractionClient,
    ExtractionError,
    ExtractionOrchestrator,
    ExtractionResult,
    ExtractionServiceError,
    GeminiExtractionClient,
    parse_llm_json,
)

__all__ = [
    "SYSTEM_PROMPT",
    "ExtractionClient",
    "ExtractionError",
    "ExtractionOrchestrator",
    "ExtractionResult",
    "ExtractionServiceError",
    "GeminiExtractionClient",
    "parse_llm_json",
]
