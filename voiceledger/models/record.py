"""
Core Data Models for Voice Ledger

These models define the strict schemas for records leaving the
normalization engine. They are designed to:
1. Enforce the ledger invariants at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

DESIGN DECISION: Raw extracted fields stay a plain dict until the engine
has normalized and classified them. Only a CanonicalRecord is ever handed
to storage.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# Sentinel meaning "intentionally unknown"; distinct from an empty value.
NOT_AVAILABLE = "not available"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RecordKind(str, Enum):
    """
    Ledger record category.

    Fixed once classified: a record never changes kind after the
    classifier has decided it.
    """
    EXPENSE = "expense"
    INCOME = "income"


class PaymentMethod(str, Enum):
    """Canonical payment methods."""
    CASH = "Cash"
    POS = "POS"
    CREDIT_CARD = "CreditCard"
    DEBIT_CARD = "DebitCard"
    BANK_TRANSFER = "BankTransfer"
    CHECK = "Check"
    PAYPAL = "PayPal"
    DIRECT_DEBIT = "DirectDebit"


class DocumentType(str, Enum):
    """Canonical expense document types."""
    INVOICE = "Invoice"
    RECEIPT = "Receipt"
    DELIVERY_NOTE = "DeliveryNote"
    CREDIT_NOTE = "CreditNote"
    QUOTE = "Quote"


class PaymentTerms(str, Enum):
    """When a document is (or was) settled."""
    IMMEDIATE = "Immediate"
    NET_30 = "Net30"
    NET_60 = "Net60"
    NET_90 = "Net90"
    END_OF_MONTH = "EndOfMonth"
    INSTALLMENTS = "Installments"
    DEFERRED = "Deferred"


# =============================================================================
# CANONICAL RECORD
# =============================================================================

EXPENSE_ONLY_FIELDS = ("counterparty", "document_ref", "document_type")


class CanonicalRecord(BaseModel):
    """
    A fully normalized, typed ledger entry ready for persistence.

    owner_id and tenant_id always come from the caller's authenticated
    context, never from the transcript.

    Payment and document vocabulary is stored as plain strings: canonical
    values compare equal to their enum members, and vocabulary the tables
    do not know is preserved instead of dropped.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique record ID"
    )
    kind: RecordKind = Field(
        ...,
        frozen=True,
        description="Expense or income"
    )

    # Amounts
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Positive amount in `currency`"
    )
    currency: str = Field(
        default="EUR",
        pattern="^[A-Z]{3}$",
        description="ISO 4217 currency code"
    )
    vat_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        decimal_places=2,
    )

    # Dates
    occurred_on: date = Field(
        ...,
        description="Invoice date for expenses, income date for income"
    )
    recorded_at: datetime = Field(
        ...,
        description="Ingestion timestamp (system-assigned)"
    )

    # Expense-only fields
    counterparty: Optional[str] = Field(default=None, max_length=200)
    document_ref: Optional[str] = Field(default=None, max_length=100)
    document_type: Optional[str] = Field(default=None, max_length=50)

    # Shared optional fields
    payment_method: Optional[str] = Field(default=None, max_length=50)
    payment_terms: Optional[str] = Field(default=None, max_length=50)
    bank: Optional[str] = Field(default=None, max_length=100)
    status: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)

    # Ownership (injected, never inferred)
    owner_id: str = Field(..., min_length=1)
    tenant_id: str = Field(..., min_length=1)

    # Traceability
    transcript: Optional[str] = Field(
        default=None,
        description="Transcript the record was extracted from, if any"
    )
    policy_version: Optional[str] = None

    @model_validator(mode='after')
    def validate_kind_requirements(self) -> 'CanonicalRecord':
        """Expense needs a reference and counterparty; income carries neither."""
        if self.kind == RecordKind.EXPENSE:
            if not self.document_ref:
                raise ValueError("Expense records require a document reference")
            if not self.counterparty:
                raise ValueError("Expense records require a counterparty")
        else:
            present = [name for name in EXPENSE_ONLY_FIELDS if getattr(self, name)]
            if present:
                raise ValueError(
                    f"Income records cannot carry expense-only fields: {', '.join(present)}"
                )
        return self

    def with_replacement(self, replacement: 'CanonicalRecord') -> 'CanonicalRecord':
        """
        Full-record replace keeping identity and ownership.

        The replacement must have the same kind; records are never
        reclassified in place.
        """
        if replacement.kind != self.kind:
            raise ValueError(
                f"Cannot replace a {self.kind.value} record with a {replacement.kind.value} record"
            )
        return replacement.model_copy(
            update={
                "id": self.id,
                "owner_id": self.owner_id,
                "tenant_id": self.tenant_id,
            }
        )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'synthesized')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidityReport(BaseModel):
    """
    Result of validating a normalized, classified field set.

    Errors block persistence; warnings are shown but do not.
    """

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> 'ValidityReport':
        errors = [i.message for i in issues if i.severity == "error"]
        warnings = [i.message for i in issues if i.severity == "warning"]
        return cls(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            issues=issues,
        )

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return len(self.errors)


class NormalizationOutcome(BaseModel):
    """Everything the engine produced for one input."""

    normalized_fields: dict[str, Any]
    kind: RecordKind
    report: ValidityReport
    record: Optional[CanonicalRecord] = None

    @property
    def is_valid(self) -> bool:
        return self.report.valid and self.record is not None
