"""Classification and validation package."""

from voiceledger.validation.classifier import RecordClassifier
from voiceledger.validation.validator import RecordValidator, synthesize_document_ref

__all__ = [
    "RecordClassifier",
    "RecordValidator",
    "synthesize_document_ref",
]
