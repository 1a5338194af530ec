"""
Canonicalization Tables

Static lookup data: free-text synonyms (mostly Italian, as spoken by
users, plus the English the extractor sometimes answers in) mapped to
canonical values. Keys are lowercase and trimmed.

Every table also maps each canonical value onto itself, so looking up an
already-canonical value is a no-op.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from voiceledger.models.record import (
    DocumentType,
    PaymentMethod,
    PaymentTerms,
    RecordKind,
)


# =============================================================================
# RAW FIELD KEYS (as returned by the extraction collaborator)
# =============================================================================

KIND = "tipo"
AMOUNT = "importo"
VAT_AMOUNT = "iva"
CURRENCY = "valuta"
EXPENSE_DATE = "data_fattura"
INCOME_DATE = "data_entrata"
COUNTERPARTY = "azienda"
PAYMENT_METHOD = "metodo_pagamento"
PAYMENT_TERMS = "tipo_pagamento"
DOCUMENT_REF = "numero_fattura"
DOCUMENT_TYPE = "tipo_documento"
BANK = "banca"
STATUS = "stato"
DESCRIPTION = "descrizione"

DATE_FIELDS = (EXPENSE_DATE, INCOME_DATE)
AMOUNT_FIELDS = (AMOUNT, VAT_AMOUNT)
OPTIONAL_TEXT_FIELDS = (
    COUNTERPARTY,
    PAYMENT_METHOD,
    PAYMENT_TERMS,
    DOCUMENT_REF,
    DOCUMENT_TYPE,
    BANK,
    STATUS,
)


def _freeze(aliases: dict[str, Enum], enum_cls: type[Enum]) -> Mapping[str, str]:
    table = {alias: member.value for alias, member in aliases.items()}
    for member in enum_cls:
        table[member.value.lower()] = member.value
    return MappingProxyType(table)


# =============================================================================
# TABLES
# =============================================================================

KIND_TABLE = _freeze({
    "spesa": RecordKind.EXPENSE,
    "spese": RecordKind.EXPENSE,
    "uscita": RecordKind.EXPENSE,
    "costo": RecordKind.EXPENSE,
    "acquisto": RecordKind.EXPENSE,
    "pagamento": RecordKind.EXPENSE,
    "entrata": RecordKind.INCOME,
    "entrate": RecordKind.INCOME,
    "incasso": RecordKind.INCOME,
    "ricavo": RecordKind.INCOME,
    "guadagno": RecordKind.INCOME,
    "vendita": RecordKind.INCOME,
}, RecordKind)

PAYMENT_METHOD_TABLE = _freeze({
    "contanti": PaymentMethod.CASH,
    "contante": PaymentMethod.CASH,
    "in contanti": PaymentMethod.CASH,
    "cash": PaymentMethod.CASH,
    "bancomat": PaymentMethod.POS,
    "pos": PaymentMethod.POS,
    "carta": PaymentMethod.CREDIT_CARD,
    "carta di credito": PaymentMethod.CREDIT_CARD,
    "credit card": PaymentMethod.CREDIT_CARD,
    "visa": PaymentMethod.CREDIT_CARD,
    "mastercard": PaymentMethod.CREDIT_CARD,
    "american express": PaymentMethod.CREDIT_CARD,
    "amex": PaymentMethod.CREDIT_CARD,
    "carta di debito": PaymentMethod.DEBIT_CARD,
    "debit card": PaymentMethod.DEBIT_CARD,
    "prepagata": PaymentMethod.DEBIT_CARD,
    "carta prepagata": PaymentMethod.DEBIT_CARD,
    "bonifico": PaymentMethod.BANK_TRANSFER,
    "bonifico bancario": PaymentMethod.BANK_TRANSFER,
    "bonifico istantaneo": PaymentMethod.BANK_TRANSFER,
    "bank transfer": PaymentMethod.BANK_TRANSFER,
    "sepa": PaymentMethod.BANK_TRANSFER,
    "assegno": PaymentMethod.CHECK,
    "assegno bancario": PaymentMethod.CHECK,
    "assegno circolare": PaymentMethod.CHECK,
    "cheque": PaymentMethod.CHECK,
    "paypal": PaymentMethod.PAYPAL,
    "addebito diretto": PaymentMethod.DIRECT_DEBIT,
    "domiciliazione": PaymentMethod.DIRECT_DEBIT,
    "rid": PaymentMethod.DIRECT_DEBIT,
    "sdd": PaymentMethod.DIRECT_DEBIT,
    "direct debit": PaymentMethod.DIRECT_DEBIT,
}, PaymentMethod)

DOCUMENT_TYPE_TABLE = _freeze({
    "fattura": DocumentType.INVOICE,
    "fattura elettronica": DocumentType.INVOICE,
    "fattura accompagnatoria": DocumentType.INVOICE,
    "ricevuta": DocumentType.RECEIPT,
    "ricevuta fiscale": DocumentType.RECEIPT,
    "scontrino": DocumentType.RECEIPT,
    "scontrino fiscale": DocumentType.RECEIPT,
    "ddt": DocumentType.DELIVERY_NOTE,
    "documento di trasporto": DocumentType.DELIVERY_NOTE,
    "bolla": DocumentType.DELIVERY_NOTE,
    "bolla di consegna": DocumentType.DELIVERY_NOTE,
    "delivery note": DocumentType.DELIVERY_NOTE,
    "nota di credito": DocumentType.CREDIT_NOTE,
    "credit note": DocumentType.CREDIT_NOTE,
    "preventivo": DocumentType.QUOTE,
    "offerta": DocumentType.QUOTE,
}, DocumentType)

PAYMENT_TERMS_TABLE = _freeze({
    "immediato": PaymentTerms.IMMEDIATE,
    "immediata": PaymentTerms.IMMEDIATE,
    "subito": PaymentTerms.IMMEDIATE,
    "a vista": PaymentTerms.IMMEDIATE,
    "alla consegna": PaymentTerms.IMMEDIATE,
    "30 giorni": PaymentTerms.NET_30,
    "a 30 giorni": PaymentTerms.NET_30,
    "30 gg": PaymentTerms.NET_30,
    "net 30": PaymentTerms.NET_30,
    "60 giorni": PaymentTerms.NET_60,
    "a 60 giorni": PaymentTerms.NET_60,
    "60 gg": PaymentTerms.NET_60,
    "net 60": PaymentTerms.NET_60,
    "90 giorni": PaymentTerms.NET_90,
    "a 90 giorni": PaymentTerms.NET_90,
    "90 gg": PaymentTerms.NET_90,
    "net 90": PaymentTerms.NET_90,
    "fine mese": PaymentTerms.END_OF_MONTH,
    "fine mese data fattura": PaymentTerms.END_OF_MONTH,
    "end of month": PaymentTerms.END_OF_MONTH,
    "a rate": PaymentTerms.INSTALLMENTS,
    "rate": PaymentTerms.INSTALLMENTS,
    "rateale": PaymentTerms.INSTALLMENTS,
    "differito": PaymentTerms.DEFERRED,
    "posticipato": PaymentTerms.DEFERRED,
}, PaymentTerms)

CURRENCY_TABLE = MappingProxyType({
    "eur": "EUR",
    "euro": "EUR",
    "euros": "EUR",
    "€": "EUR",
    "usd": "USD",
    "dollaro": "USD",
    "dollari": "USD",
    "dollar": "USD",
    "dollars": "USD",
    "$": "USD",
    "gbp": "GBP",
    "sterlina": "GBP",
    "sterline": "GBP",
    "£": "GBP",
    "chf": "CHF",
    "franco svizzero": "CHF",
    "franchi svizzeri": "CHF",
})


# =============================================================================
# LEXICONS (dates and classification)
# =============================================================================

# Day offsets relative to the anchor date.
RELATIVE_DAY_OFFSETS = MappingProxyType({
    "today": 0,
    "oggi": 0,
    "yesterday": -1,
    "ieri": -1,
    "tomorrow": 1,
    "domani": 1,
    "day before yesterday": -2,
    "l'altro ieri": -2,
    "l'altroieri": -2,
    "altroieri": -2,
    "ieri l'altro": -2,
    "day after tomorrow": 2,
    "dopodomani": 2,
})

MONTH_NAMES = MappingProxyType({
    "january": 1, "gennaio": 1, "jan": 1, "gen": 1,
    "february": 2, "febbraio": 2, "feb": 2,
    "march": 3, "marzo": 3, "mar": 3,
    "april": 4, "aprile": 4, "apr": 4,
    "may": 5, "maggio": 5, "mag": 5,
    "june": 6, "giugno": 6, "jun": 6, "giu": 6,
    "july": 7, "luglio": 7, "jul": 7, "lug": 7,
    "august": 8, "agosto": 8, "aug": 8, "ago": 8,
    "september": 9, "settembre": 9, "sep": 9, "sept": 9, "set": 9,
    "october": 10, "ottobre": 10, "oct": 10, "ott": 10,
    "november": 11, "novembre": 11, "nov": 11,
    "december": 12, "dicembre": 12, "dec": 12, "dic": 12,
})

INCOME_KEYWORDS = (
    "incassato", "incassata", "incasso", "incassi",
    "ricevuto", "ricevuta da", "ricevuti",
    "entrata", "entrate",
    "ricavo", "ricavi",
    "venduto", "venduta", "vendita",
    "guadagnato", "guadagno",
    "accredito", "accreditato",
    "mi hanno pagato", "pagato da",
    "received", "income", "earned", "sold",
)

EXPENSE_KEYWORDS = (
    "pagato", "pagata", "pagamento",
    "speso", "spesa", "spese",
    "comprato", "comprata", "acquistato", "acquisto",
    "fattura", "scontrino",
    "uscita", "costo", "costato",
    "addebito", "addebitato",
    "paid", "spent", "bought", "purchase", "invoice", "expense",
)
