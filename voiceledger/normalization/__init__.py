"""
Field normalization package.

The engine lives in voiceledger.normalization.engine; it is not imported
here because it depends on the validation package, which in turn uses
the tables and helpers below.
"""

from voiceledger.normalization.dates import is_strict_date, resolve_date
from voiceledger.normalization.normalizer import (
    FieldNormalizer,
    NormalizationError,
    canonicalize,
    normalize_document_type,
    normalize_kind,
    normalize_payment_method,
    normalize_payment_terms,
    parse_amount,
)

__all__ = [
    "FieldNormalizer",
    "NormalizationError",
    "canonicalize",
    "is_strict_date",
    "normalize_document_type",
    "normalize_kind",
    "normalize_payment_method",
    "normalize_payment_terms",
    "parse_amount",
    "resolve_date",
]
