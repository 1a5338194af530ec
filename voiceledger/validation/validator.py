"""
Record Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - REQUIRED FIELDS:
- Amount present and greater than zero
- Occurred-on date resolved to a strict calendar date
- Currency is an ISO code
These are errors: the record is not persisted.

STAGE 2 - COMPLETION AND SANITY:
- Expense document reference synthesized when missing
- Expense counterparty marked "not available" when missing
- Expense-only fields dropped from income records
- Unusually large or far-future records flagged
These are warnings or info: the record can still be persisted.

Stage 2 only runs when stage 1 passes.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from voiceledger.config import AppSettings, get_settings
from voiceledger.models.record import NOT_AVAILABLE, RecordKind, ValidationIssue, ValidityReport
from voiceledger.normalization import tables
from voiceledger.normalization.dates import is_strict_date


FUTURE_DATE_TOLERANCE_DAYS = 7
EXPENSE_ONLY_KEYS = (tables.COUNTERPARTY, tables.DOCUMENT_REF, tables.DOCUMENT_TYPE)


def synthesize_document_ref(now: datetime) -> str:
    """Timestamp-based placeholder used when an expense has no reference."""
    return f"AUTO-{now.strftime('%Y%m%d%H%M%S%f')}"


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip() or value.strip().lower() == NOT_AVAILABLE
    return False


def occurred_on_value(fields: Mapping[str, Any], kind: RecordKind) -> Any:
    """The date that becomes occurred_on; income falls back to the invoice date."""
    if kind == RecordKind.INCOME:
        value = fields.get(tables.INCOME_DATE)
        if value in (None, ""):
            value = fields.get(tables.EXPENSE_DATE)
        return value
    return fields.get(tables.EXPENSE_DATE)


class RecordValidator:
    """
    Validates a normalized, classified fields dict.

    Returns a completed copy of the fields together with the report;
    the input dict is not modified.
    """

    def __init__(self, app_settings: Optional[AppSettings] = None):
        self._settings = app_settings or get_settings().app

    def _validate_required(
        self,
        fields: Mapping[str, Any],
        kind: RecordKind,
    ) -> list[ValidationIssue]:
        issues = []

        amount = fields.get(tables.AMOUNT)
        if not isinstance(amount, Decimal):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required but was not provided",
                severity="error",
                suggested_fix="Say or type the amount, e.g. '37,43 euro'",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Check that the amount was heard correctly",
            ))

        occurred = occurred_on_value(fields, kind)
        if not is_strict_date(occurred):
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="invalid_format",
                message=f"Date could not be resolved to YYYY-MM-DD (got {occurred!r})",
                severity="error",
                suggested_fix="Give the date explicitly, e.g. '7 luglio' or '2024-07-07'",
            ))

        currency = fields.get(tables.CURRENCY)
        if not (isinstance(currency, str) and len(currency) == 3 and currency.isalpha() and currency.isupper()):
            issues.append(ValidationIssue(
                field="currency",
                issue_type="invalid_value",
                message=f"Currency {currency!r} is not an ISO code",
                severity="error",
                suggested_fix="Use a three-letter code such as EUR",
            ))

        return issues

    def _complete(
        self,
        fields: dict[str, Any],
        kind: RecordKind,
        now: datetime,
    ) -> list[ValidationIssue]:
        issues = []

        if kind == RecordKind.EXPENSE:
            if _is_missing(fields.get(tables.DOCUMENT_REF)):
                fields[tables.DOCUMENT_REF] = synthesize_document_ref(now)
                issues.append(ValidationIssue(
                    field="document_ref",
                    issue_type="synthesized",
                    message=f"No invoice number given; using {fields[tables.DOCUMENT_REF]}",
                    severity="info",
                ))
            if _is_missing(fields.get(tables.COUNTERPARTY)):
                fields[tables.COUNTERPARTY] = NOT_AVAILABLE
                issues.append(ValidationIssue(
                    field="counterparty",
                    issue_type="missing",
                    message="Supplier name was not provided",
                    severity="warning",
                    suggested_fix="Add the supplier name when reviewing the expense",
                ))
        else:
            dropped = [key for key in EXPENSE_ONLY_KEYS if not _is_missing(fields.get(key))]
            for key in EXPENSE_ONLY_KEYS:
                fields.pop(key, None)
            if dropped:
                issues.append(ValidationIssue(
                    field="income",
                    issue_type="ignored",
                    message=f"Expense-only fields ignored for income: {', '.join(dropped)}",
                    severity="info",
                ))

        return issues

    def _check_sanity(
        self,
        fields: Mapping[str, Any],
        kind: RecordKind,
        now: datetime,
    ) -> list[ValidationIssue]:
        issues = []

        amount = fields.get(tables.AMOUNT)
        max_amount = Decimal(str(self._settings.max_record_amount))
        if isinstance(amount, Decimal) and amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        occurred = date.fromisoformat(occurred_on_value(fields, kind))
        if occurred > now.date() + timedelta(days=FUTURE_DATE_TOLERANCE_DAYS):
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="future_date",
                message=f"Date ({occurred}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return issues

    def validate(
        self,
        fields: Mapping[str, Any],
        kind: RecordKind,
        now: Union[datetime, date],
    ) -> tuple[dict[str, Any], ValidityReport]:
        """Run both stages and return (completed_fields, report)."""
        if not isinstance(now, datetime):
            now = datetime.combine(now, datetime.min.time())

        completed = dict(fields)
        issues = self._validate_required(completed, kind)

        if not issues:
            issues.extend(self._complete(completed, kind, now))
            issues.extend(self._check_sanity(completed, kind, now))

        return completed, ValidityReport.from_issues(issues)

    def get_user_friendly_summary(self, report: ValidityReport) -> str:
        """Short text for the person who dictated the record."""
        if report.valid and not report.warnings:
            return "✅ Record looks complete."

        lines = []
        if report.errors:
            lines.append("❌ The record could not be saved:")
            for issue in report.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if report.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in report.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
