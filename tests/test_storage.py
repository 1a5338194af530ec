"""Tests for the in-memory and Google Sheets storage implementations."""

import json
import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import gspread

from voiceledger.config import GoogleSheetsSettings
from voiceledger.models import (
    AuditEventBuilder,
    AuditEventType,
    CanonicalRecord,
    RecordKind,
    RecordScopeFilter,
)
from voiceledger.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsMembershipStorage,
    GoogleSheetsRecordStorage,
    NotFoundError,
    StorageError,
)
from voiceledger.services.storage.google_sheets import AUDIT_COLUMNS, MEMBERSHIP_COLUMNS, RECORD_COLUMNS


def make_record(owner_id="bob", tenant_id="acme", occurred_on=date(2024, 7, 1), **overrides):
    fields = dict(
        kind=RecordKind.EXPENSE,
        amount=Decimal("12.50"),
        vat_amount=Decimal("2.25"),
        occurred_on=occurred_on,
        recorded_at=datetime(2024, 7, 10, 9, 30),
        counterparty="Bar Roma",
        document_ref="F-1",
        payment_method="Cash",
        owner_id=owner_id,
        tenant_id=tenant_id,
        transcript="ho pagato",
        policy_version="2024.1",
    )
    fields.update(overrides)
    return CanonicalRecord(**fields)


class FakeWorksheet:
    """The slice of gspread.Worksheet the storages use."""

    def __init__(self, header):
        self.rows = [list(header)]
        self.fail = False

    def _check(self):
        if self.fail:
            raise gspread.exceptions.GSpreadException("quota exceeded")

    def get_all_values(self):
        self._check()
        return [list(row) for row in self.rows]

    def col_values(self, col):
        self._check()
        return [row[col - 1] if len(row) >= col else "" for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self._check()
        self.rows.append([str(v) for v in values])

    def update(self, range_name=None, values=None, value_input_option=None):
        self._check()
        row_number = int(range_name.split(":")[0][1:])
        self.rows[row_number - 1] = [str(v) for v in values[0]]

    def delete_rows(self, index):
        self._check()
        del self.rows[index - 1]


class FakeSheetsClient:

    def __init__(self):
        self.records = FakeWorksheet(RECORD_COLUMNS)
        self.memberships = FakeWorksheet(MEMBERSHIP_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_records_sheet(self):
        return self.records

    def get_memberships_sheet(self):
        return self.memberships

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def sheets():
    return FakeSheetsClient()


class TestInMemoryRecordStorage:
    """Tests for InMemoryRecordStorage."""

    @pytest.mark.asyncio
    async def test_insert_and_get(self, record_storage):
        record = make_record()
        assert await record_storage.insert(record)
        assert await record_storage.get(record.id, "acme") == record
        assert await record_storage.get(record.id, "globex") is None

    @pytest.mark.asyncio
    async def test_duplicate_insert(self, record_storage):
        record = make_record()
        await record_storage.insert(record)
        with pytest.raises(DuplicateError):
            await record_storage.insert(record)

    @pytest.mark.asyncio
    async def test_update_and_delete_check_tenant(self, record_storage):
        record = make_record()
        await record_storage.insert(record)
        with pytest.raises(NotFoundError):
            await record_storage.update(record.id, "globex", record)
        with pytest.raises(NotFoundError):
            await record_storage.delete(record.id, "globex")
        assert await record_storage.delete(record.id, "acme")
        assert record_storage.records == {}

    @pytest.mark.asyncio
    async def test_list_applies_filter_newest_first(self, record_storage):
        older = make_record(occurred_on=date(2024, 6, 1))
        newer = make_record(occurred_on=date(2024, 7, 1))
        other = make_record(owner_id="carol")
        foreign = make_record(tenant_id="globex")
        for record in (older, newer, other, foreign):
            await record_storage.insert(record)

        own = await record_storage.list_by_tenant("acme", RecordScopeFilter(tenant_id="acme", owner_id="bob"))
        assert [r.id for r in own] == [newer.id, older.id]

        company = await record_storage.list_by_tenant("acme", RecordScopeFilter(tenant_id="acme"))
        assert len(company) == 3

        everything = await record_storage.list_by_tenant(
            "acme", RecordScopeFilter(tenant_id="acme", all_tenants=True)
        )
        assert len(everything) == 4


class TestGoogleSheetsRecordStorage:
    """Tests for GoogleSheetsRecordStorage against a fake worksheet."""

    @pytest.mark.asyncio
    async def test_row_round_trip(self, sheets):
        storage = GoogleSheetsRecordStorage(sheets)
        record = make_record()
        await storage.insert(record)

        row = sheets.records.rows[1]
        assert len(row) == len(RECORD_COLUMNS)
        assert row[1] == "acme"
        assert row[4] == "12.50"

        loaded = await storage.get(record.id, "acme")
        assert loaded == record

    @pytest.mark.asyncio
    async def test_income_row_round_trip(self, sheets):
        storage = GoogleSheetsRecordStorage(sheets)
        record = make_record(
            kind=RecordKind.INCOME, counterparty=None, document_ref=None, vat_amount=None
        )
        await storage.insert(record)
        loaded = await storage.get(record.id, "acme")
        assert loaded.kind == RecordKind.INCOME
        assert loaded.counterparty is None
        assert loaded.vat_amount is None

    @pytest.mark.asyncio
    async def test_duplicate_insert(self, sheets):
        storage = GoogleSheetsRecordStorage(sheets)
        record = make_record()
        await storage.insert(record)
        with pytest.raises(DuplicateError):
            await storage.insert(record)
        assert len(sheets.records.rows) == 2

    @pytest.mark.asyncio
    async def test_get_is_tenant_scoped(self, sheets):
        storage = GoogleSheetsRecordStorage(sheets)
        record = make_record()
        await storage.insert(record)
        assert await storage.get(record.id, "globex") is None

    @pytest.mark.asyncio
    async def test_update_rewrites_row(self, sheets):
        storage = GoogleSheetsRecordStorage(sheets)
        record = make_record()
        await storage.insert(record)

        replacement = record.model_copy(update={"amount": Decimal("99.00")})
        await storage.update(record.id, "acme", replacement)

        assert len(sheets.records.rows) == 2
        assert (await storage.get(record.id, "acme")).amount == Decimal("99.00")

    @pytest.mark.asyncio
    async def test_update_and_delete_missing(self, sheets):
        storage = GoogleSheetsRecordStorage(sheets)
        record = make_record()
        await storage.insert(record)
        with pytest.raises(NotFoundError):
            await storage.update(record.id, "globex", record)
        with pytest.raises(NotFoundError):
            await storage.delete(uuid4(), "acme")

    @pytest.mark.asyncio
    async def test_delete(self, sheets):
        storage = GoogleSheetsRecordStorage(sheets)
        first, second = make_record(), make_record()
        await storage.insert(first)
        await storage.insert(second)
        await storage.delete(first.id, "acme")
        assert [row[0] for row in sheets.records.rows[1:]] == [str(second.id)]

    @pytest.mark.asyncio
    async def test_list_skips_malformed_rows(self, sheets):
        storage = GoogleSheetsRecordStorage(sheets)
        record = make_record()
        await storage.insert(record)
        sheets.records.rows.append(["not-a-uuid", "acme", "bob", "expense", "abc"])
        sheets.records.rows.append([])

        records = await storage.list_by_tenant("acme", RecordScopeFilter(tenant_id="acme"))
        assert [r.id for r in records] == [record.id]

    @pytest.mark.asyncio
    async def test_read_failure_is_storage_error(self, sheets):
        storage = GoogleSheetsRecordStorage(sheets)
        sheets.records.fail = True
        with pytest.raises(StorageError):
            await storage.get(uuid4(), "acme")
        with pytest.raises(StorageError):
            await storage.list_by_tenant("acme", RecordScopeFilter(tenant_id="acme"))


class TestGoogleSheetsMembershipStorage:
    """Tests for membership rows."""

    @pytest.mark.asyncio
    async def test_binding_from_row(self, sheets):
        permissions = {"records": {"read": True, "create": True, "scope": "own"}}
        sheets.memberships.rows.append(["bob", "acme", "dipendente", json.dumps(permissions)])
        storage = GoogleSheetsMembershipStorage(sheets)

        binding = await storage.get_role_binding("bob", "acme")
        assert binding.role.role_name == "dipendente"
        assert binding.role.for_resource("records").allows("create")
        assert await storage.get_role_binding("bob", "globex") is None

    @pytest.mark.asyncio
    async def test_row_without_permissions(self, sheets):
        sheets.memberships.rows.append(["bob", "acme", "guest"])
        binding = await GoogleSheetsMembershipStorage(sheets).get_role_binding("bob", "acme")
        assert binding.role.permissions == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("cell", [
        json.dumps({"records": {"read": True, "scope": "team"}}),
        "{not json",
        json.dumps(["records"]),
    ])
    async def test_malformed_permissions_raise_storage_error(self, sheets, cell):
        sheets.memberships.rows.append(["bob", "acme", "dipendente", cell])
        with pytest.raises(StorageError):
            await GoogleSheetsMembershipStorage(sheets).get_role_binding("bob", "acme")


class TestGoogleSheetsAuditStorage:
    """Tests for audit rows."""

    @pytest.mark.asyncio
    async def test_append_and_query(self, sheets):
        storage = GoogleSheetsAuditStorage(sheets)
        correlation_id = uuid4()
        await storage.append_event(AuditEventBuilder.record_deleted(
            record_id=uuid4(), tenant_id="acme", actor_id="bob", correlation_id=correlation_id
        ))
        await storage.append_event(AuditEventBuilder.record_deleted(
            record_id=uuid4(), tenant_id="acme", actor_id="bob", correlation_id=uuid4()
        ))

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.RECORD_DELETED
        assert events[0].tenant_id == "acme"

        recent = await storage.get_recent_events(limit=1)
        assert len(recent) == 1

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, sheets):
        sheets.audit.rows.append(["garbage", "yesterday"])
        assert await GoogleSheetsAuditStorage(sheets).get_recent_events() == []


class FakeSpreadsheet:

    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        if title not in self.sheets:
            raise gspread.WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title, rows, cols):
        self.sheets[title] = FakeWorksheet([])
        self.sheets[title].rows = []
        return self.sheets[title]


class TestGoogleSheetsClient:
    """Tests for worksheet creation."""

    def test_missing_worksheet_is_created_with_header(self, tmp_path):
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        client = GoogleSheetsClient(GoogleSheetsSettings(
            credentials_path=str(credentials), spreadsheet_id="sheet-id"
        ))
        spreadsheet = FakeSpreadsheet()
        client._spreadsheet = spreadsheet

        sheet = client.get_records_sheet()
        assert sheet.rows == [RECORD_COLUMNS]
        assert client.get_records_sheet() is sheet
        assert client.get_audit_sheet().rows == [AUDIT_COLUMNS]
