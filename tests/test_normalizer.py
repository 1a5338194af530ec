"""Tests for the field normalizer."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from voiceledger.config import DateFallback, ProcessingPolicy
from voiceledger.models import NOT_AVAILABLE
from voiceledger.normalization import (
    FieldNormalizer,
    normalize_document_type,
    normalize_kind,
    normalize_payment_method,
    normalize_payment_terms,
    parse_amount,
)


NOW = datetime(2024, 7, 10, 9, 30)


@pytest.fixture
def normalizer(policy) -> FieldNormalizer:
    return FieldNormalizer(policy)


class TestParseAmount:
    """Spoken and typed amounts become non-negative cents."""

    @pytest.mark.parametrize("value, expected", [
        ("12,50 euro", Decimal("12.50")),
        ("€ 7", Decimal("7.00")),
        ("-7", Decimal("7.00")),
        ("abc", Decimal("0.00")),
        ("1.234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("37,43", Decimal("37.43")),
        ("0,005", Decimal("0.01")),
        (19.9, Decimal("19.90")),
        (3, Decimal("3.00")),
        (Decimal("4.5"), Decimal("4.50")),
        (None, Decimal("0.00")),
        (True, Decimal("0.00")),
        ("", Decimal("0.00")),
        ("nan", Decimal("0.00")),
        (float("inf"), Decimal("0.00")),
    ])
    def test_examples(self, value, expected):
        assert parse_amount(value) == expected


class TestCanonicalization:
    """Vocabulary tables map aliases to canonical values."""

    @pytest.mark.parametrize("value, expected", [
        ("bancomat", "POS"),
        ("  Contanti ", "Cash"),
        ("carta", "CreditCard"),
        ("bonifico", "BankTransfer"),
        ("POS", "POS"),
        ("Cash", "Cash"),
        ("satispay", "satispay"),
    ])
    def test_payment_method(self, value, expected):
        assert normalize_payment_method(value) == expected

    def test_document_type(self):
        assert normalize_document_type("scontrino") == "Receipt"
        assert normalize_document_type("Invoice") == "Invoice"

    def test_payment_terms(self):
        assert normalize_payment_terms("30 giorni") == "Net30"
        assert normalize_payment_terms("fine mese") == "EndOfMonth"

    def test_kind(self):
        assert normalize_kind("spesa") == "expense"
        assert normalize_kind("Entrata") == "income"
        assert normalize_kind("expense") == "expense"

    def test_non_strings_pass_through(self):
        assert normalize_payment_method(None) is None
        assert normalize_payment_method(42) == 42


class TestFieldNormalizer:
    """Tests for whole-dict normalization."""

    def test_does_not_mutate_input(self, normalizer):
        raw = {"importo": "12,50", "metodo_pagamento": "bancomat"}
        normalizer.normalize(raw, NOW)
        assert raw == {"importo": "12,50", "metodo_pagamento": "bancomat"}

    def test_defaults(self, normalizer):
        """Empty input gets today's date, default currency and zero amount."""
        fields = normalizer.normalize({}, NOW)
        assert fields["data_fattura"] == "2024-07-10"
        assert fields["valuta"] == "EUR"
        assert fields["importo"] == Decimal("0.00")

    def test_income_defaults_income_date(self, normalizer):
        fields = normalizer.normalize({"tipo": "entrata"}, NOW)
        assert fields["data_entrata"] == "2024-07-10"
        assert "data_fattura" not in fields

    def test_income_keeps_invoice_date_as_fallback(self, normalizer):
        fields = normalizer.normalize({"tipo": "entrata", "data_fattura": "ieri"}, NOW)
        assert fields["data_fattura"] == "2024-07-09"
        assert "data_entrata" not in fields

    def test_currency(self, normalizer):
        assert normalizer.normalize({"valuta": "euro"}, NOW)["valuta"] == "EUR"
        assert normalizer.normalize({"valuta": "usd"}, NOW)["valuta"] == "USD"
        assert normalizer.normalize({"valuta": " chf "}, NOW)["valuta"] == "CHF"

    def test_vat_parsed_when_present(self, normalizer):
        fields = normalizer.normalize({"importo": "122", "iva": "22,00"}, NOW)
        assert fields["iva"] == Decimal("22.00")
        assert "iva" not in normalizer.normalize({"importo": "1"}, NOW)

    def test_dates_resolved(self, normalizer):
        fields = normalizer.normalize({"data_fattura": "7 luglio"}, NOW)
        assert fields["data_fattura"] == "2024-07-07"

    def test_date_objects_accepted(self, normalizer):
        fields = normalizer.normalize({"data_fattura": date(2024, 1, 2)}, NOW)
        assert fields["data_fattura"] == "2024-01-02"

    def test_lenient_date_repair(self, normalizer):
        fields = normalizer.normalize({"data_fattura": "boh"}, NOW)
        assert fields["data_fattura"] == "2024-07-10"

    def test_strict_date_policy_keeps_token(self):
        normalizer = FieldNormalizer(ProcessingPolicy(date_fallback=DateFallback.STRICT))
        fields = normalizer.normalize({"data_fattura": "boh"}, NOW)
        assert fields["data_fattura"] == "boh"

    def test_not_available_date_bypasses_resolution(self, normalizer):
        fields = normalizer.normalize({"data_fattura": "Not Available"}, NOW)
        assert fields["data_fattura"] == NOT_AVAILABLE

    def test_unknown_fields_preserved(self, normalizer):
        fields = normalizer.normalize({"importo": "1", "note": "tavolo 4"}, NOW)
        assert fields["note"] == "tavolo 4"

    @pytest.mark.parametrize("raw", [None, "garbage", 42, ["a", "b"]])
    def test_total_on_non_mapping(self, normalizer, raw):
        fields = normalizer.normalize(raw, NOW)
        assert fields["importo"] == Decimal("0.00")


class TestPaymentFieldRepair:
    """Method vocabulary in the terms field (and vice versa) is moved back."""

    def test_method_moved_out_of_terms(self, normalizer):
        fields = normalizer.normalize({"tipo_pagamento": "bancomat"}, NOW)
        assert fields["metodo_pagamento"] == "POS"
        assert fields["tipo_pagamento"] == ""

    def test_method_in_terms_blanked_when_method_present(self, normalizer):
        fields = normalizer.normalize(
            {"tipo_pagamento": "contanti", "metodo_pagamento": "carta"}, NOW
        )
        assert fields["metodo_pagamento"] == "CreditCard"
        assert fields["tipo_pagamento"] == ""

    def test_terms_moved_out_of_method(self, normalizer):
        fields = normalizer.normalize({"metodo_pagamento": "30 giorni"}, NOW)
        assert fields["tipo_pagamento"] == "Net30"
        assert fields["metodo_pagamento"] == ""

    def test_fully_swapped_fields_exchanged(self, normalizer):
        fields = normalizer.normalize(
            {"tipo_pagamento": "carta", "metodo_pagamento": "30 giorni", "importo": "5"}, NOW
        )
        assert fields["metodo_pagamento"] == "CreditCard"
        assert fields["tipo_pagamento"] == "Net30"

    def test_swap_is_stable(self, normalizer):
        once = normalizer.normalize(
            {"tipo_pagamento": "bonifico", "metodo_pagamento": "fine mese"}, NOW
        )
        assert normalizer.normalize(once, NOW) == once

    def test_correct_fields_untouched(self, normalizer):
        fields = normalizer.normalize(
            {"metodo_pagamento": "bonifico", "tipo_pagamento": "fine mese"}, NOW
        )
        assert fields["metodo_pagamento"] == "BankTransfer"
        assert fields["tipo_pagamento"] == "EndOfMonth"


class TestIdempotence:
    """normalize(normalize(x)) == normalize(x)."""

    @pytest.mark.parametrize("raw", [
        {},
        {"tipo": "", "importo": "37,43", "data_fattura": ""},
        {"tipo": "entrata", "importo": "1.234,56", "data_entrata": "ieri", "valuta": "euro"},
        {"importo": "-7", "tipo_pagamento": "bancomat", "tipo_documento": "scontrino"},
        {"importo": "12", "metodo_pagamento": "a rate", "data_fattura": "31 febbraio"},
        {"importo": "abc", "azienda": NOT_AVAILABLE, "data_fattura": NOT_AVAILABLE},
        {"importo": 5, "iva": "1,1", "valuta": "$", "metodo_pagamento": "satispay"},
    ])
    def test_idempotent(self, normalizer, raw):
        once = normalizer.normalize(raw, NOW)
        twice = normalizer.normalize(once, NOW)
        assert twice == once

    def test_idempotent_under_strict_dates(self):
        normalizer = FieldNormalizer(ProcessingPolicy(date_fallback=DateFallback.STRICT))
        once = normalizer.normalize({"data_fattura": "boh", "importo": "3"}, NOW)
        assert normalizer.normalize(once, NOW) == once
