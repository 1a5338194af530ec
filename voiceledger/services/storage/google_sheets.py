"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the production storage backend because:
1. Bookkeepers can read and correct the ledger directly in Sheets
2. No database setup required
3. Built-in backup and sharing

TRADEOFFS:
- Not suitable for high-volume data (small-business ledgers are fine)
- No transactions (one row per record keeps writes atomic enough)
- Limited query capabilities (we filter in Python)

Every record row carries its tenant; every read and write checks it.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from voiceledger.config import GoogleSheetsSettings, get_settings
from voiceledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from voiceledger.models.authorization import RecordScopeFilter, RoleBinding, RolePermissionSet
from voiceledger.models.record import CanonicalRecord, RecordKind
from voiceledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    MembershipStorageInterface,
    NotFoundError,
    RecordStorageInterface,
    StorageConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)


RECORD_COLUMNS = [
    "id",
    "tenant_id",
    "owner_id",
    "kind",
    "amount",
    "currency",
    "vat_amount",
    "occurred_on",
    "recorded_at",
    "counterparty",
    "document_ref",
    "document_type",
    "payment_method",
    "payment_terms",
    "bank",
    "status",
    "description",
    "transcript",
    "policy_version",
]

MEMBERSHIP_COLUMNS = [
    "actor_id",
    "tenant_id",
    "role_name",
    "permissions_json",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "tenant_id",
    "actor_id",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
    "is_user_action",
]

_RECORD_TENANT_COL = RECORD_COLUMNS.index("tenant_id")
_AUDIT_CORRELATION_COL = AUDIT_COLUMNS.index("correlation_id")


def _cell_getter(row: list):
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError as e:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound as e:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
            logger.info("worksheet_created", title=title)
            return sheet

    def get_records_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.records_sheet_name, RECORD_COLUMNS, 1000)

    def get_memberships_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.memberships_sheet_name, MEMBERSHIP_COLUMNS, 200)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000)


class GoogleSheetsRecordStorage(RecordStorageInterface):
    """
    Google Sheets implementation of record storage.

    One record per row. Replace rewrites the row in place.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, record: CanonicalRecord) -> list:
        return [
            str(record.id),
            record.tenant_id,
            record.owner_id,
            record.kind.value,
            str(record.amount),
            record.currency,
            str(record.vat_amount) if record.vat_amount is not None else "",
            record.occurred_on.isoformat(),
            record.recorded_at.isoformat(),
            record.counterparty or "",
            record.document_ref or "",
            record.document_type or "",
            record.payment_method or "",
            record.payment_terms or "",
            record.bank or "",
            record.status or "",
            record.description or "",
            record.transcript or "",
            record.policy_version or "",
        ]

    def _row_to_record(self, row: list) -> CanonicalRecord:
        safe_get = _cell_getter(row)
        return CanonicalRecord(
            id=UUID(safe_get(0)),
            tenant_id=safe_get(1),
            owner_id=safe_get(2),
            kind=RecordKind(safe_get(3)),
            amount=Decimal(safe_get(4)),
            currency=safe_get(5, "EUR"),
            vat_amount=Decimal(safe_get(6)) if safe_get(6) else None,
            occurred_on=date.fromisoformat(safe_get(7)),
            recorded_at=datetime.fromisoformat(safe_get(8)),
            counterparty=safe_get(9) or None,
            document_ref=safe_get(10) or None,
            document_type=safe_get(11) or None,
            payment_method=safe_get(12) or None,
            payment_terms=safe_get(13) or None,
            bank=safe_get(14) or None,
            status=safe_get(15) or None,
            description=safe_get(16) or None,
            transcript=safe_get(17) or None,
            policy_version=safe_get(18) or None,
        )

    def _find_row(self, rows: list[list], record_id: UUID, tenant_id: str) -> Optional[int]:
        """1-based sheet row index of the record, or None."""
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == str(record_id) and len(row) > _RECORD_TENANT_COL \
                    and row[_RECORD_TENANT_COL] == tenant_id:
                return idx
        return None

    @retry(
        retry=retry_if_not_exception_type(DuplicateError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def insert(self, record: CanonicalRecord) -> bool:
        """Append a record row."""
        try:
            sheet = self._client.get_records_sheet()
            if str(record.id) in sheet.col_values(1)[1:]:
                raise DuplicateError(f"Record already exists: {record.id}")
            sheet.append_row(self._record_to_row(record), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save record: {e}") from e

    async def update(self, record_id: UUID, tenant_id: str, record: CanonicalRecord) -> bool:
        """Rewrite a record row in place."""
        try:
            sheet = self._client.get_records_sheet()
            idx = self._find_row(sheet.get_all_values(), record_id, tenant_id)
            if idx is None:
                raise NotFoundError(f"Record not found: {record_id}")

            new_row = self._record_to_row(record)
            end_cell = rowcol_to_a1(idx, len(new_row))
            sheet.update(range_name=f"A{idx}:{end_cell}", values=[new_row], value_input_option="RAW")
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update record: {e}") from e

    async def delete(self, record_id: UUID, tenant_id: str) -> bool:
        """Delete a record row."""
        try:
            sheet = self._client.get_records_sheet()
            idx = self._find_row(sheet.get_all_values(), record_id, tenant_id)
            if idx is None:
                raise NotFoundError(f"Record not found: {record_id}")
            sheet.delete_rows(idx)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete record: {e}") from e

    async def get(self, record_id: UUID, tenant_id: str) -> Optional[CanonicalRecord]:
        """Retrieve one record of a tenant."""
        try:
            rows = self._client.get_records_sheet().get_all_values()
            idx = self._find_row(rows, record_id, tenant_id)
            return self._row_to_record(rows[idx - 1]) if idx is not None else None
        except Exception as e:
            raise StorageError(f"Failed to get record: {e}") from e

    async def list_by_tenant(
        self,
        tenant_id: str,
        scope_filter: RecordScopeFilter,
    ) -> list[CanonicalRecord]:
        """List records visible under the filter, newest occurrence first."""
        try:
            all_rows = self._client.get_records_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list records: {e}") from e

        records = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                record = self._row_to_record(row)
            except (ValueError, ArithmeticError) as e:
                logger.warning("malformed_record_row", record_id=row[0], error=str(e))
                continue
            if scope_filter.matches(record):
                records.append(record)

        records.sort(key=lambda r: (r.occurred_on, r.recorded_at), reverse=True)
        return records


class GoogleSheetsMembershipStorage(MembershipStorageInterface):
    """
    Memberships live in their own sheet: actor, tenant, role name and the
    role's permission table as JSON.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def get_role_binding(self, actor_id: str, tenant_id: str) -> Optional[RoleBinding]:
        try:
            all_rows = self._client.get_memberships_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to read memberships: {e}") from e

        for row in all_rows:
            safe_get = _cell_getter(row)
            if safe_get(0) != actor_id or safe_get(1) != tenant_id:
                continue
            try:
                permissions = json.loads(safe_get(3)) if safe_get(3) else {}
                if not isinstance(permissions, dict):
                    raise ValueError("permissions must be a JSON object")
                role = RolePermissionSet.from_json(safe_get(2, "member"), permissions)
            except (ValueError, TypeError, AttributeError) as e:
                logger.error(
                    "malformed_membership_row",
                    actor_id=actor_id,
                    tenant_id=tenant_id,
                    error=str(e),
                )
                raise StorageError(f"Malformed membership for {actor_id} in {tenant_id}: {e}") from e
            return RoleBinding(actor_id=actor_id, tenant_id=tenant_id, role=role)
        return None


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        safe_get = _cell_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            tenant_id=safe_get(6) or None,
            actor_id=safe_get(7) or None,
            correlation_id=UUID(safe_get(8)) if safe_get(8) else None,
            description=safe_get(9),
            details=json.loads(safe_get(10)) if safe_get(10) else {},
            error_code=safe_get(11) or None,
            error_message=safe_get(12) or None,
            is_user_action=safe_get(13).lower() == "true",
        )

    def _load_events(self, keep) -> list[AuditEvent]:
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e

        events = []
        for row in all_rows:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError as e:
                logger.warning("malformed_audit_row", event_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}") from e

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = self._load_events(
            lambda row: len(row) > _AUDIT_CORRELATION_COL
            and row[_AUDIT_CORRELATION_COL] == str(correlation_id)
        )
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._load_events(lambda row: True)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
