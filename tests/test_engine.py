"""Tests for the normalize -> classify -> validate -> build pipeline."""

import pytest
from datetime import date
from decimal import Decimal

from voiceledger import classify, normalize
from voiceledger.models import NOT_AVAILABLE, CanonicalRecord, RecordKind, ValidityReport


class TestNormalizationEngine:
    """Tests for NormalizationEngine.process."""

    def test_spoken_expense_end_to_end(self, engine, now):
        """A sparse extraction plus a transcript yields a complete expense."""
        outcome = engine.process(
            {"tipo": "", "importo": "37,43", "data_fattura": ""},
            now,
            owner_id="bob",
            tenant_id="acme",
            transcript="ho pagato trentasette e quarantatre oggi",
        )

        assert outcome.is_valid
        record = outcome.record
        assert record.kind == RecordKind.EXPENSE
        assert record.amount == Decimal("37.43")
        assert record.currency == "EUR"
        assert record.occurred_on == date(2024, 7, 10)
        assert record.document_ref == "AUTO-20240710093015123456"
        assert record.counterparty == NOT_AVAILABLE
        assert record.owner_id == "bob"
        assert record.tenant_id == "acme"
        assert record.recorded_at == now
        assert record.policy_version == engine.policy.policy_version
        assert record.transcript == "ho pagato trentasette e quarantatre oggi"

    def test_kind_written_back_to_fields(self, engine, now):
        outcome = engine.process(
            {"importo": "10"}, now, owner_id="bob", tenant_id="acme", transcript="ho incassato"
        )
        assert outcome.kind == RecordKind.INCOME
        assert outcome.normalized_fields["tipo"] == "income"

    def test_income_record(self, engine, now):
        outcome = engine.process(
            {
                "tipo": "entrata",
                "importo": "1.250,00",
                "data_entrata": "ieri",
                "azienda": "Cliente Srl",
                "metodo_pagamento": "bonifico",
            },
            now,
            owner_id="alice",
            tenant_id="acme",
        )

        record = outcome.record
        assert record.kind == RecordKind.INCOME
        assert record.amount == Decimal("1250.00")
        assert record.occurred_on == date(2024, 7, 9)
        assert record.counterparty is None
        assert record.document_ref is None
        assert record.payment_method == "BankTransfer"

    def test_income_date_falls_back_to_invoice_date(self, engine, now):
        outcome = engine.process(
            {"tipo": "income", "importo": "80", "data_fattura": "2024-07-01"},
            now,
            owner_id="alice",
            tenant_id="acme",
        )
        assert outcome.record.occurred_on == date(2024, 7, 1)

    def test_zero_amount_is_rejected(self, engine, now):
        outcome = engine.process(
            {"tipo": "spesa", "importo": "zero"}, now, owner_id="bob", tenant_id="acme"
        )
        assert not outcome.is_valid
        assert outcome.record is None
        assert outcome.report.errors

    def test_record_model_errors_become_report_errors(self, engine, now):
        outcome = engine.process(
            {"tipo": "spesa", "importo": "5", "azienda": "x" * 300, "numero_fattura": "1"},
            now,
            owner_id="bob",
            tenant_id="acme",
        )
        assert outcome.record is None
        assert not outcome.report.valid
        assert any(issue.field == "counterparty" for issue in outcome.report.issues)

    @pytest.mark.parametrize("raw", [None, {}, [], "garbage", {"importo": "boh"}])
    def test_never_raises(self, engine, now, raw):
        outcome = engine.process(raw, now, owner_id="bob", tenant_id="acme")
        assert outcome.kind == RecordKind.EXPENSE
        assert not outcome.is_valid

    def test_accepts_a_plain_date_anchor(self, engine):
        outcome = engine.process(
            {"importo": "3", "data_fattura": "oggi"},
            date(2024, 7, 10),
            owner_id="bob",
            tenant_id="acme",
        )
        assert outcome.record.occurred_on == date(2024, 7, 10)


class TestModuleFunctions:
    """Tests for the normalize() and classify() shortcuts."""

    def test_normalize_returns_record(self, engine, now):
        result = normalize(
            {"importo": "12,50", "data_fattura": "2024-07-05", "azienda": "Bar"},
            now,
            owner_id="bob",
            tenant_id="acme",
            engine=engine,
        )
        assert isinstance(result, CanonicalRecord)
        assert result.amount == Decimal("12.50")

    def test_normalize_returns_report_when_invalid(self, engine, now):
        result = normalize({"importo": ""}, now, owner_id="bob", tenant_id="acme", engine=engine)
        assert isinstance(result, ValidityReport)
        assert not result.valid

    def test_classify_shortcut(self, engine):
        assert classify({"tipo": ""}, "ho venduto due quadri", engine=engine) == RecordKind.INCOME
        assert classify(None, engine=engine) == RecordKind.EXPENSE
