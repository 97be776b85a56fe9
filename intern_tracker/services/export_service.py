"""
Log export — flat rows of an intern's log entries with verification metadata.

Rendered either as CSV (every field quoted, embedded quotes doubled) or as
a styled Excel workbook. An empty export renders the literal placeholder
``No data available`` instead of a header-only CSV.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import asdict, astuple, dataclass
from datetime import date

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import joinedload

from intern_tracker.core.exceptions import ValidationError
from intern_tracker.models.training import STATUS_PENDING, LogEntry, Procedure, Verification
from intern_tracker.services.progress_service import require_user_id

logger = logging.getLogger(__name__)

NO_DATA_PLACEHOLDER = "No data available"

CSV_HEADERS = [
    "ID",
    "Intern Name",
    "Procedure Name",
    "Rotation Name",
    "Date",
    "Count",
    "Notes",
    "Status",
    "Verified By",
    "Verified At",
    "Reason",
]

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
STATUS_FILLS = {
    "APPROVED": PatternFill(start_color="27AE60", end_color="27AE60", fill_type="solid"),
    "PENDING": PatternFill(start_color="F39C12", end_color="F39C12", fill_type="solid"),
    "REJECTED": PatternFill(start_color="E74C3C", end_color="E74C3C", fill_type="solid"),
}


@dataclass(frozen=True)
class LogExportRow:
    id: int
    intern_name: str
    procedure_name: str
    rotation_name: str
    date: str
    count: int
    notes: str | None = None
    status: str = STATUS_PENDING
    verified_by: str | None = None
    verified_at: str | None = None
    reason: str | None = None

    def to_dict(self):
        return asdict(self)

    def as_fields(self) -> list[str]:
        """Row values as strings; missing optionals become empty strings."""
        return ["" if v is None else str(v) for v in astuple(self)]


def format_date_for_csv(value) -> str:
    """YYYY-MM-DD for dates and datetimes."""
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")


def _to_row(log: LogEntry) -> LogExportRow:
    verification = log.verification
    status = verification.status if verification else STATUS_PENDING
    reviewed = verification is not None and status != STATUS_PENDING
    return LogExportRow(
        id=log.id,
        intern_name=log.intern.display_name,
        procedure_name=log.procedure.name,
        rotation_name=log.procedure.rotation.name,
        date=format_date_for_csv(log.date),
        count=log.count,
        notes=log.notes,
        status=status,
        verified_by=verification.verifier.name if verification and verification.verifier else None,
        verified_at=format_date_for_csv(verification.timestamp) if reviewed else None,
        reason=verification.reason if verification else None,
    )


def export_logs(user_id, date_from: date | None = None, date_to: date | None = None) -> list[LogExportRow]:
    """Fetch the intern's log entries (optionally within a date range) as export rows.

    Args:
        user_id: The intern whose logs are exported.
        date_from: Inclusive lower bound on the log date.
        date_to: Inclusive upper bound on the log date.

    Returns:
        Rows ordered by log date, newest first.
    """
    user_id = require_user_id(user_id)
    if date_from and date_to and date_from > date_to:
        raise ValidationError(
            "From date must be before or equal to to date",
            details={"from": "after to"},
        )

    q = (
        LogEntry.query
        .filter(LogEntry.intern_id == user_id)
        .options(
            joinedload(LogEntry.intern),
            joinedload(LogEntry.procedure).joinedload(Procedure.rotation),
            joinedload(LogEntry.verification).joinedload(Verification.verifier),
        )
    )
    if date_from:
        q = q.filter(LogEntry.date >= date_from)
    if date_to:
        q = q.filter(LogEntry.date <= date_to)

    logs = q.order_by(LogEntry.date.desc(), LogEntry.id.desc()).all()
    logger.info("Exporting %d log entries for user=%s", len(logs), user_id)
    return [_to_row(log) for log in logs]


def generate_csv_content(rows) -> str:
    """Render *rows* as CSV text; every field quoted, rows joined by newlines."""
    if not rows:
        return NO_DATA_PLACEHOLDER

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow(row.as_fields())
    return buf.getvalue().rstrip("\n")


def _apply_header_style(ws, row: int, col_count: int) -> None:
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 60 chars)."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def generate_logs_xlsx(rows) -> bytes:
    """Render *rows* as a single-sheet Excel workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Logs"

    for col, header in enumerate(CSV_HEADERS, start=1):
        ws.cell(row=1, column=col).value = header
    _apply_header_style(ws, 1, len(CSV_HEADERS))

    if not rows:
        ws.cell(row=2, column=1).value = NO_DATA_PLACEHOLDER

    status_col = CSV_HEADERS.index("Status") + 1
    for row_i, row in enumerate(rows, start=2):
        for col, value in enumerate(astuple(row), start=1):
            cell = ws.cell(row=row_i, column=col, value=value)
            cell.border = THIN_BORDER
        status_cell = ws.cell(row=row_i, column=status_col)
        if row.status in STATUS_FILLS:
            status_cell.fill = STATUS_FILLS[row.status]
            status_cell.font = Font(color="FFFFFF", bold=True)

    ws.freeze_panes = "A2"
    _auto_width(ws)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf.getvalue()


def build_export_filename(date_from=None, date_to=None, today=None, ext="csv") -> str:
    """``logs[_from-X][_to-Y]_<today>.<ext>``"""
    parts = ["logs"]
    if date_from:
        parts.append(f"from-{date_from.isoformat()}")
    if date_to:
        parts.append(f"to-{date_to.isoformat()}")
    parts.append((today or date.today()).isoformat())
    return f"{'_'.join(parts)}.{ext}"
