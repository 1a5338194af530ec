"""
Field Normalizer

Canonicalizes a raw fields dict coming from the extraction collaborator
or a structured request.

DESIGN DECISION: The extractor is an untrusted, occasionally malformed
oracle. Normalization is therefore:
1. TOTAL - it never fails the pipeline, whatever it is given
2. IDEMPOTENT - normalizing a normalized dict changes nothing
3. PRESERVING - unknown vocabulary is passed through, never dropped

Decisions about whether the result is acceptable belong to the validator.
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

import structlog

from voiceledger.config import DateFallback, ProcessingPolicy, get_settings
from voiceledger.models.record import NOT_AVAILABLE, RecordKind
from voiceledger.normalization import tables
from voiceledger.normalization.dates import is_strict_date, resolve_date


logger = structlog.get_logger(__name__)

_AMOUNT_CHARS_RE = re.compile(r"[^\d,.\-]")
_CENTS = Decimal("0.01")


class NormalizationError(Exception):
    """Raised only for logically impossible states; normalize() never raises it."""
    pass


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_not_available(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() == NOT_AVAILABLE


def canonicalize(value: Any, table: Mapping[str, str]) -> Any:
    """Look a value up in a table; unmatched values pass through unchanged."""
    if not isinstance(value, str):
        return value
    return table.get(value.strip().lower(), value)


def normalize_payment_method(value: Any) -> Any:
    return canonicalize(value, tables.PAYMENT_METHOD_TABLE)


def normalize_document_type(value: Any) -> Any:
    return canonicalize(value, tables.DOCUMENT_TYPE_TABLE)


def normalize_payment_terms(value: Any) -> Any:
    return canonicalize(value, tables.PAYMENT_TERMS_TABLE)


def normalize_kind(value: Any) -> Any:
    return canonicalize(value, tables.KIND_TABLE)


def parse_amount(value: Any) -> Decimal:
    """
    Parse a spoken or typed amount into a non-negative Decimal.

    "12,50 euro" -> 12.50, "-7" -> 7, "abc" -> 0. When both separators
    appear ("1.234,56") the last one is the decimal separator.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0.00")
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        text = _AMOUNT_CHARS_RE.sub("", str(value))

    if "," in text and "." in text:
        decimal_sep = "," if text.rfind(",") > text.rfind(".") else "."
        thousands_sep = "." if decimal_sep == "," else ","
        text = text.replace(thousands_sep, "")
    text = text.replace(",", ".")

    try:
        amount = abs(Decimal(text))
        if not amount.is_finite():
            return Decimal("0.00")
        return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return Decimal("0.00")


class FieldNormalizer:
    """
    Applies the canonicalization tables, the date resolver and the amount
    parser across a raw fields dict.

    The input dict is never mutated; a new dict is returned.
    """

    def __init__(self, policy: Optional[ProcessingPolicy] = None):
        self._policy = policy or get_settings().policy

    @property
    def policy(self) -> ProcessingPolicy:
        return self._policy

    def date_field_for(self, fields: Mapping[str, Any]) -> str:
        """Income uses the income date; expense and unknown use the invoice date."""
        if fields.get(tables.KIND) == RecordKind.INCOME.value:
            return tables.INCOME_DATE
        return tables.EXPENSE_DATE

    def _canonicalize_vocabulary(self, fields: dict[str, Any]) -> None:
        if tables.KIND in fields:
            fields[tables.KIND] = normalize_kind(fields[tables.KIND])
        if tables.PAYMENT_METHOD in fields:
            fields[tables.PAYMENT_METHOD] = normalize_payment_method(fields[tables.PAYMENT_METHOD])
        if tables.PAYMENT_TERMS in fields:
            fields[tables.PAYMENT_TERMS] = normalize_payment_terms(fields[tables.PAYMENT_TERMS])
        if tables.DOCUMENT_TYPE in fields:
            fields[tables.DOCUMENT_TYPE] = normalize_document_type(fields[tables.DOCUMENT_TYPE])

    def _repair_payment_fields(self, fields: dict[str, Any]) -> None:
        """
        Undo the extractor's habit of mixing up payment method and payment
        timing vocabularies.

        When each field holds the other's vocabulary the two are swapped.
        Otherwise a misplaced value moves to the right field when that
        field is empty, and the wrong field is blanked either way.
        """
        terms = fields.get(tables.PAYMENT_TERMS)
        method = fields.get(tables.PAYMENT_METHOD)

        as_method = normalize_payment_method(terms)
        if not (isinstance(as_method, str) and as_method in tables.PAYMENT_METHOD_TABLE.values()):
            as_method = None
        as_terms = normalize_payment_terms(method)
        if not (isinstance(as_terms, str) and as_terms in tables.PAYMENT_TERMS_TABLE.values()):
            as_terms = None

        if as_method is not None and as_terms is not None:
            fields[tables.PAYMENT_METHOD] = as_method
            fields[tables.PAYMENT_TERMS] = as_terms
            logger.debug("payment_fields_swapped", method=as_method, terms=as_terms)
        elif as_method is not None:
            if _is_blank(method):
                fields[tables.PAYMENT_METHOD] = as_method
            fields[tables.PAYMENT_TERMS] = ""
            logger.debug("payment_field_repaired", moved=as_method, to=tables.PAYMENT_METHOD)
        elif as_terms is not None:
            if _is_blank(terms):
                fields[tables.PAYMENT_TERMS] = as_terms
            fields[tables.PAYMENT_METHOD] = ""
            logger.debug("payment_field_repaired", moved=as_terms, to=tables.PAYMENT_TERMS)

    def _normalize_currency(self, fields: dict[str, Any]) -> None:
        currency = fields.get(tables.CURRENCY)
        if _is_blank(currency):
            fields[tables.CURRENCY] = self._policy.default_currency
            return
        if isinstance(currency, str):
            key = currency.strip().lower()
            fields[tables.CURRENCY] = tables.CURRENCY_TABLE.get(key, currency.strip().upper())

    def _normalize_dates(self, fields: dict[str, Any], now: Union[datetime, date]) -> None:
        anchor = now.date() if isinstance(now, datetime) else now

        primary = self.date_field_for(fields)
        if _is_blank(fields.get(primary)):
            if primary == tables.INCOME_DATE and not _is_blank(fields.get(tables.EXPENSE_DATE)):
                primary = tables.EXPENSE_DATE
            else:
                fields[primary] = "today"

        for name in tables.DATE_FIELDS:
            if name not in fields:
                continue
            value = fields[name]
            if _is_blank(value):
                continue
            if _is_not_available(value):
                fields[name] = NOT_AVAILABLE
                continue
            if isinstance(value, datetime):
                value = value.date()
            if isinstance(value, date):
                fields[name] = value.isoformat()
                continue

            resolved = resolve_date(value, now, self._policy.keyword_matching)
            if is_strict_date(resolved):
                fields[name] = resolved
            elif self._policy.date_fallback == DateFallback.LENIENT:
                logger.debug("date_repaired", field=name, value=str(value), anchor=anchor.isoformat())
                fields[name] = anchor.isoformat()
            else:
                fields[name] = resolved

    def _normalize_amounts(self, fields: dict[str, Any]) -> None:
        fields[tables.AMOUNT] = parse_amount(fields.get(tables.AMOUNT))
        if tables.VAT_AMOUNT in fields and not _is_blank(fields[tables.VAT_AMOUNT]):
            fields[tables.VAT_AMOUNT] = parse_amount(fields[tables.VAT_AMOUNT])

    def normalize(
        self,
        raw: Optional[Mapping[str, Any]],
        now: Union[datetime, date],
    ) -> dict[str, Any]:
        """
        Normalize a raw fields dict against the anchor instant `now`.

        Non-mapping input is treated as an empty record.
        """
        fields: dict[str, Any] = dict(raw) if isinstance(raw, Mapping) else {}

        self._canonicalize_vocabulary(fields)
        self._repair_payment_fields(fields)
        self._normalize_currency(fields)
        self._normalize_dates(fields, now)
        self._normalize_amounts(fields)

        return fields
