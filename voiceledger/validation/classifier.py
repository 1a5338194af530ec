"""
Record Classifier

Decides whether a record is an expense or an income.

A valid kind already present in the fields is trusted. Otherwise the
transcript is scored against two keyword sets. Ties go to EXPENSE, the
category that asks the user for more detail, so a wrong guess surfaces
as a missing field rather than a silently thin record.
"""

from typing import Any, Mapping, Optional

from voiceledger.config import ProcessingPolicy, get_settings
from voiceledger.models.record import RecordKind
from voiceledger.normalization import tables
from voiceledger.normalization.normalizer import normalize_kind
from voiceledger.normalization.text import count_keywords, normalize_text


class RecordClassifier:
    """Keyword-based expense/income classifier. Never raises."""

    def __init__(self, policy: Optional[ProcessingPolicy] = None):
        self._policy = policy or get_settings().policy

    def score(self, text: Any) -> tuple[int, int]:
        """
        Return (income_hits, expense_hits) for a piece of free text.

        Income phrases are counted first and consumed, so "mi hanno
        pagato" is not also counted as the expense word "pagato".
        """
        normalized = normalize_text(text)
        if not normalized:
            return 0, 0
        income, remaining = count_keywords(
            normalized, tables.INCOME_KEYWORDS, self._policy.keyword_matching
        )
        expense, _ = count_keywords(
            remaining, tables.EXPENSE_KEYWORDS, self._policy.keyword_matching
        )
        return income, expense

    def infer_from_text(self, text: Any) -> RecordKind:
        income, expense = self.score(text)
        return RecordKind.INCOME if income > expense else RecordKind.EXPENSE

    def classify(
        self,
        fields: Optional[Mapping[str, Any]],
        transcript: Any = "",
    ) -> RecordKind:
        """
        Classify a (normalized or raw) fields dict.

        The transcript is the tie-breaker; the free-text description is
        scored along with it.
        """
        if isinstance(fields, Mapping):
            declared = normalize_kind(fields.get(tables.KIND))
            if declared in (RecordKind.EXPENSE.value, RecordKind.INCOME.value):
                return RecordKind(declared)
            description = fields.get(tables.DESCRIPTION)
        else:
            description = None

        text = " ".join(
            part for part in (normalize_text(transcript), normalize_text(description)) if part
        )
        return self.infer_from_text(text)
