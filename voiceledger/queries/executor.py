"""
Ledger Statistics

DESIGN DECISION: Statistics are computed DETERMINISTICALLY from the
records a caller is allowed to see. The executor never reads storage on
its own; it is handed the already scope-filtered records.
"""

from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from pydantic import BaseModel, Field

from voiceledger.models.record import NOT_AVAILABLE, CanonicalRecord, RecordKind


_CENTS = Decimal("0.01")
NO_COUNTERPARTY = "N/A"


class LedgerStats(BaseModel):
    """Summary of a set of records."""

    total: Decimal = Field(default=Decimal("0.00"), description="Sum of all amounts")
    count: int = 0
    average_per_day: Decimal = Field(
        default=Decimal("0.00"),
        description="Total divided by the number of distinct days with records"
    )
    top_counterparty: str = NO_COUNTERPARTY
    expense_total: Decimal = Decimal("0.00")
    income_total: Decimal = Decimal("0.00")
    net: Decimal = Field(default=Decimal("0.00"), description="Income minus expenses")


class LedgerStatsExecutor:

    def summarize(self, records: Iterable[CanonicalRecord]) -> LedgerStats:
        records = list(records)
        if not records:
            return LedgerStats()

        expense_total = sum(
            (r.amount for r in records if r.kind == RecordKind.EXPENSE), Decimal("0")
        )
        income_total = sum(
            (r.amount for r in records if r.kind == RecordKind.INCOME), Decimal("0")
        )
        total = expense_total + income_total
        days = {r.occurred_on for r in records}

        counterparties = Counter(
            r.counterparty for r in records
            if r.counterparty and r.counterparty.lower() != NOT_AVAILABLE
        )
        top = counterparties.most_common(1)

        return LedgerStats(
            total=total.quantize(_CENTS),
            count=len(records),
            average_per_day=(total / len(days)).quantize(_CENTS, rounding=ROUND_HALF_UP),
            top_counterparty=top[0][0] if top else NO_COUNTERPARTY,
            expense_total=expense_total.quantize(_CENTS),
            income_total=income_total.quantize(_CENTS),
            net=(income_total - expense_total).quantize(_CENTS),
        )
