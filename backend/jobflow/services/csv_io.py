from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import ValidationError

from jobflow.core.timeutil import as_utc, utcnow
from jobflow.schemas.application import ApplicationImport, ApplicationOut
from jobflow.schemas.enums import ApplicationStatus, Platform, Priority
from jobflow.stores.base import ApplicationStore, StoreError

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Company",
    "Role",
    "Location",
    "Salary",
    "URL",
    "Platform",
    "Status",
    "Applied Date",
    "Last Touch",
    "Priority",
    "Notes",
]

DATE_FORMAT = "%Y-%m-%d"
# Also accepted on import, for files produced by spreadsheet tools.
_EXTRA_DATE_FORMATS = ("%m/%d/%Y", "%d.%m.%Y")


class CsvImportError(ValueError):
    pass


@dataclass(frozen=True)
class ImportResult:
    success: bool
    count: int
    error: Optional[str] = None


def _date_cell(dt: Optional[datetime]) -> str:
    return as_utc(dt).strftime(DATE_FORMAT) if dt is not None else ""


def export_csv(apps: Iterable[ApplicationOut]) -> str:
    buf = io.StringIO()
    # Header row is bare; every data cell is quoted.
    buf.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for app in apps:
        writer.writerow(
            [
                app.company,
                app.role,
                app.location or "",
                app.salary or "",
                app.url or "",
                app.platform.value,
                app.status.value,
                _date_cell(app.applied_at),
                _date_cell(app.last_touch_at),
                app.priority.value if app.priority else "",
                app.notes or "",
            ]
        )
    return buf.getvalue()


def _parse_date(raw: str, column: str) -> Optional[datetime]:
    value = raw.strip()
    if not value:
        return None
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError:
        pass
    for fmt in _EXTRA_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise CsvImportError(f"Invalid {column} value: {raw!r}")


def _parse_enum(enum_cls, raw: str, default, column: str):
    value = raw.strip().lower()
    if not value:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        raise CsvImportError(f"Invalid {column} value: {raw!r}")


def _cell(values: list[str], index: int) -> str:
    return values[index] if index < len(values) else ""


def parse_row(values: list[str], now: datetime) -> ApplicationImport:
    """Map one CSV row (header order) to a bulk-create draft."""
    status = _parse_enum(ApplicationStatus, _cell(values, 6), ApplicationStatus.SAVED, "Status")
    applied_at = _parse_date(_cell(values, 7), "Applied Date")
    if status == ApplicationStatus.SAVED:
        applied_at = None

    try:
        return ApplicationImport(
            company=_cell(values, 0).strip() or "Unknown",
            role=_cell(values, 1).strip() or "Unknown Role",
            location=_cell(values, 2).strip() or None,
            salary=_cell(values, 3).strip() or None,
            url=_cell(values, 4).strip() or None,
            platform=_parse_enum(Platform, _cell(values, 5), Platform.OTHER, "Platform"),
            status=status,
            applied_at=applied_at,
            last_touch_at=_parse_date(_cell(values, 8), "Last Touch") or now,
            priority=_parse_enum(Priority, _cell(values, 9), Priority.MEDIUM, "Priority"),
            notes=_cell(values, 10) or None,
        )
    except ValidationError as exc:
        raise CsvImportError(str(exc)) from exc


def import_csv(store: ApplicationStore, text: str, *, now: Optional[datetime] = None) -> ImportResult:
    """
    Insert every data row of ``text`` into ``store``.

    Rows are inserted one at a time; when a row is malformed the import stops and
    rows inserted before it are kept.
    """
    if not text or not text.strip():
        return ImportResult(success=False, count=0, error="Empty file")

    stamp = as_utc(now) if now is not None else utcnow()
    reader = csv.reader(io.StringIO(text))
    count = 0
    try:
        header = next(reader)
        if not header or header[0].strip().lstrip("\ufeff") != CSV_HEADERS[0]:
            raise CsvImportError("Invalid CSV format: missing header row")

        for values in reader:
            if not any(v.strip() for v in values):
                continue
            draft = parse_row(values, stamp)
            store.bulk_create_applications([draft])
            count += 1
    except (CsvImportError, csv.Error, StoreError) as exc:
        logger.warning("CSV import stopped after %s rows: %s", count, exc)
        return ImportResult(success=False, count=count, error=str(exc))

    logger.info("CSV import inserted %s applications", count)
    return ImportResult(success=True, count=count)
