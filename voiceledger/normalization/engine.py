"""
Normalization & Classification Engine

normalize -> classify -> validate -> build.

One engine, one policy. Every caller (voice capture, structured
requests, record replacement) goes through here, so there is exactly one
definition of what a canonical record is.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from voiceledger.config import ProcessingPolicy, get_settings
from voiceledger.models.record import (
    CanonicalRecord,
    NormalizationOutcome,
    RecordKind,
    ValidationIssue,
    ValidityReport,
)
from voiceledger.normalization import tables
from voiceledger.normalization.normalizer import FieldNormalizer
from voiceledger.validation.classifier import RecordClassifier
from voiceledger.validation.validator import RecordValidator, occurred_on_value


logger = structlog.get_logger(__name__)


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class NormalizationEngine:
    """Turns raw fields plus an optional transcript into a canonical record."""

    def __init__(
        self,
        policy: Optional[ProcessingPolicy] = None,
        normalizer: Optional[FieldNormalizer] = None,
        classifier: Optional[RecordClassifier] = None,
        validator: Optional[RecordValidator] = None,
    ):
        self._policy = policy or get_settings().policy
        self._normalizer = normalizer or FieldNormalizer(self._policy)
        self._classifier = classifier or RecordClassifier(self._policy)
        self._validator = validator or RecordValidator()

    @property
    def policy(self) -> ProcessingPolicy:
        return self._policy

    @property
    def classifier(self) -> RecordClassifier:
        return self._classifier

    @property
    def validator(self) -> RecordValidator:
        return self._validator

    def normalize_fields(
        self,
        raw: Optional[Mapping[str, Any]],
        now: Union[datetime, date],
    ) -> dict[str, Any]:
        return self._normalizer.normalize(raw, now)

    def classify(self, fields: Optional[Mapping[str, Any]], transcript: Any = "") -> RecordKind:
        return self._classifier.classify(fields, transcript)

    def _build_record(
        self,
        fields: Mapping[str, Any],
        kind: RecordKind,
        now: datetime,
        owner_id: str,
        tenant_id: str,
        transcript: Optional[str],
    ) -> CanonicalRecord:
        vat = fields.get(tables.VAT_AMOUNT)
        expense = kind == RecordKind.EXPENSE
        return CanonicalRecord(
            kind=kind,
            amount=fields[tables.AMOUNT],
            currency=fields[tables.CURRENCY],
            vat_amount=vat if isinstance(vat, Decimal) else None,
            occurred_on=date.fromisoformat(occurred_on_value(fields, kind)),
            recorded_at=now,
            counterparty=_text_or_none(fields.get(tables.COUNTERPARTY)) if expense else None,
            document_ref=_text_or_none(fields.get(tables.DOCUMENT_REF)) if expense else None,
            document_type=_text_or_none(fields.get(tables.DOCUMENT_TYPE)) if expense else None,
            payment_method=_text_or_none(fields.get(tables.PAYMENT_METHOD)),
            payment_terms=_text_or_none(fields.get(tables.PAYMENT_TERMS)),
            bank=_text_or_none(fields.get(tables.BANK)),
            status=_text_or_none(fields.get(tables.STATUS)),
            description=_text_or_none(fields.get(tables.DESCRIPTION)),
            owner_id=owner_id,
            tenant_id=tenant_id,
            transcript=transcript or None,
            policy_version=self._policy.policy_version,
        )

    def process(
        self,
        raw: Optional[Mapping[str, Any]],
        now: Union[datetime, date],
        owner_id: str,
        tenant_id: str,
        transcript: Optional[str] = None,
    ) -> NormalizationOutcome:
        """
        Run the whole pipeline. Never raises for bad input: problems come
        back in the outcome's report, and `record` is set only when valid.
        """
        if not isinstance(now, datetime):
            now = datetime.combine(now, datetime.min.time())

        fields = self.normalize_fields(raw, now)
        kind = self.classify(fields, transcript or "")
        fields[tables.KIND] = kind.value
        fields, report = self._validator.validate(fields, kind, now)

        record = None
        if report.valid:
            try:
                record = self._build_record(fields, kind, now, owner_id, tenant_id, transcript)
            except ValidationError as e:
                issues = list(report.issues)
                for error in e.errors():
                    location = ".".join(str(part) for part in error["loc"]) or "record"
                    issues.append(ValidationIssue(
                        field=location,
                        issue_type="invalid_value",
                        message=error["msg"],
                        severity="error",
                    ))
                report = ValidityReport.from_issues(issues)
                logger.info("record_build_rejected", errors=report.errors)

        return NormalizationOutcome(
            normalized_fields=fields,
            kind=kind,
            report=report,
            record=record,
        )


def normalize(
    raw_fields: Optional[Mapping[str, Any]],
    now: Union[datetime, date],
    *,
    owner_id: str,
    tenant_id: str,
    transcript: Optional[str] = None,
    engine: Optional[NormalizationEngine] = None,
) -> Union[CanonicalRecord, ValidityReport]:
    """Canonical record when the input is valid, otherwise the report explaining why not."""
    outcome = (engine or NormalizationEngine()).process(
        raw_fields, now, owner_id=owner_id, tenant_id=tenant_id, transcript=transcript
    )
    return outcome.record if outcome.record is not None else outcome.report


def classify(
    raw_fields: Optional[Mapping[str, Any]],
    transcript: Any = "",
    *,
    engine: Optional[NormalizationEngine] = None,
) -> RecordKind:
    """Expense or income for a raw fields dict; never raises."""
    return (engine or NormalizationEngine()).classify(raw_fields, transcript)
