"""Domain models for wayleave records."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from uuid import uuid4


class WayleaveStatus(StrEnum):
    """Lifecycle phases of a wayleave, in order."""

    PENDING = "Pending TSS action"
    SENT_TO_MOW = "Sent to M.O.W"
    RECEIVED_FROM_MOW = "Received from M.O.W"
    SENT_TO_AREA_ENGINEER = "Sent to Area Engineer"


INITIAL_STATUS = WayleaveStatus.PENDING

# Phase-entry timestamp attribute for each lifecycle phase.
PHASE_TIMESTAMP_FIELDS: dict[WayleaveStatus, str] = {
    WayleaveStatus.PENDING: "to_edd_date",
    WayleaveStatus.SENT_TO_MOW: "to_mow_date",
    WayleaveStatus.RECEIVED_FROM_MOW: "from_mow_date",
    WayleaveStatus.SENT_TO_AREA_ENGINEER: "to_area_engineer_date",
}


@dataclass(frozen=True)
class WayleaveRecord:
    """A wayleave permit being tracked through its approval phases."""

    id: str
    wayleave_number: str
    status: WayleaveStatus
    created_at: datetime | None = None
    owner_id: str | None = None
    usp_number: str = ""
    rcc_number: str = ""
    msp_number: str = ""
    to_edd_date: datetime | None = None
    to_mow_date: datetime | None = None
    from_mow_date: datetime | None = None
    to_area_engineer_date: datetime | None = None
    attachments: tuple[str, ...] = ()
    remarks: str = ""
    last_updated_by: str | None = None

    def phase_entered_at(self, status: WayleaveStatus) -> datetime | None:
        """Return when the record first entered ``status``."""
        return getattr(self, PHASE_TIMESTAMP_FIELDS[status])


@dataclass(frozen=True)
class WayleaveDraft:
    """Caller input for a new record.

    ``id`` may be generated ahead of the first save so attachments can be
    uploaded under a stable storage path.
    """

    wayleave_number: str
    usp_number: str = ""
    rcc_number: str = ""
    msp_number: str = ""
    remarks: str = ""
    attachments: tuple[str, ...] = ()
    id: str | None = None


@dataclass(frozen=True)
class _Column:
    attribute: str
    column: str
    kind: str = "text"


# Single source of truth for attribute <-> column translation.
WAYLEAVE_COLUMNS: tuple[_Column, ...] = (
    _Column("id", "id"),
    _Column("created_at", "created_at", "datetime"),
    _Column("owner_id", "user_id"),
    _Column("wayleave_number", "wayleaveNumber"),
    _Column("status", "status", "status"),
    _Column("to_edd_date", "toEddDate", "datetime"),
    _Column("to_mow_date", "toMowDate", "datetime"),
    _Column("from_mow_date", "fromMowDate", "datetime"),
    _Column("to_area_engineer_date", "toAreaEngineerDate", "datetime"),
    _Column("usp_number", "uspNumber"),
    _Column("rcc_number", "rccNumber"),
    _Column("msp_number", "mspNumber"),
    _Column("attachments", "attachments", "list"),
    _Column("remarks", "remarks"),
    _Column("last_updated_by", "last_updated_by"),
)

# Columns the backend assigns itself and that are never sent on writes.
SERVER_ASSIGNED_COLUMNS = frozenset({"created_at"})


def record_to_row(record: WayleaveRecord) -> dict[str, object]:
    """Translate a record into a backend row payload."""
    row: dict[str, object] = {}
    for mapping in WAYLEAVE_COLUMNS:
        if mapping.column in SERVER_ASSIGNED_COLUMNS:
            continue
        value = getattr(record, mapping.attribute)
        row[mapping.column] = _to_column(value, mapping.kind)
    return row


def row_to_record(row: dict[str, object]) -> WayleaveRecord:
    """Translate a backend row into a record."""
    values: dict[str, object] = {}
    for mapping in WAYLEAVE_COLUMNS:
        if mapping.column not in row:
            continue
        values[mapping.attribute] = _from_column(row[mapping.column], mapping.kind)
    values.setdefault("wayleave_number", "")
    values.setdefault("status", INITIAL_STATUS)
    for text_attribute in ("usp_number", "rcc_number", "msp_number", "remarks"):
        if values.get(text_attribute) is None:
            values[text_attribute] = ""
    return WayleaveRecord(**values)


def new_record(draft: WayleaveDraft, now: datetime) -> WayleaveRecord:
    """Create a record for a draft in the initial lifecycle phase."""
    record = WayleaveRecord(
        id=draft.id or str(uuid4()),
        wayleave_number=draft.wayleave_number,
        status=INITIAL_STATUS,
        usp_number=draft.usp_number,
        rcc_number=draft.rcc_number,
        msp_number=draft.msp_number,
        attachments=tuple(draft.attachments),
        remarks=draft.remarks,
    )
    return replace(record, **{PHASE_TIMESTAMP_FIELDS[INITIAL_STATUS]: now})


def stamp_phase_entry(
    record: WayleaveRecord, original: WayleaveRecord, now: datetime
) -> WayleaveRecord:
    """Take phase timestamps from ``original`` and stamp the phase being entered.

    Timestamps on ``record`` itself are ignored. The only timestamp that may be
    newly set is the one for ``record.status``, and only when the status
    differs from ``original.status`` and ``original`` has none for it.
    """
    timestamps = {
        attribute: getattr(original, attribute)
        for attribute in PHASE_TIMESTAMP_FIELDS.values()
    }
    if record.status != original.status:
        attribute = PHASE_TIMESTAMP_FIELDS[record.status]
        if timestamps[attribute] is None:
            timestamps[attribute] = now
    return replace(record, **timestamps)


def _to_column(value: object, kind: str) -> object:
    if value is None:
        return None
    if kind == "datetime" and isinstance(value, datetime):
        return value.isoformat()
    if kind == "status":
        return str(value)
    if kind == "list":
        return list(value)  # type: ignore[call-overload]
    return value


def _from_column(value: object, kind: str) -> object:
    if kind == "datetime":
        if isinstance(value, str) and value:
            return datetime.fromisoformat(value)
        return value if isinstance(value, datetime) else None
    if kind == "status":
        return WayleaveStatus(str(value)) if value else INITIAL_STATUS
    if kind == "list":
        if not value:
            return ()
        return tuple(str(item) for item in value)  # type: ignore[attr-defined]
    return value

