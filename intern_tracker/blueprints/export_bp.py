"""
Log export endpoint.

    GET /api/v1/export/logs
        userId: int (optional, defaults to the caller)
        from / to: YYYY-MM-DD, inclusive (optional)
        format: csv | excel (default: csv)

Content is generated in memory; no temp files.
"""

import logging
from datetime import date

from flask import Blueprint, Response, request

from intern_tracker.auth import login_required, resolve_target_user_id
from intern_tracker.services.export_service import (
    build_export_filename,
    export_logs,
    generate_csv_content,
    generate_logs_xlsx,
)
from intern_tracker.utils.errors import E, api_error, register_error_handlers
from intern_tracker.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

export_bp = Blueprint("export", __name__, url_prefix="/api/v1")
register_error_handlers(export_bp)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@export_bp.route("/export/logs", methods=["GET"])
@login_required
def export_logs_file():
    """Download the intern's log entries as CSV or Excel.

    Returns:
        Binary file download with Content-Disposition set.
    """
    fmt = request.args.get("format", "csv").strip().lower()
    if fmt not in ("csv", "excel"):
        return api_error(
            E.VALIDATION_INVALID,
            "Unsupported format. Supported values: csv, excel.",
            details={"format": "invalid"},
        )

    user_id, error = resolve_target_user_id(request.args.get("userId"))
    if error:
        return error

    try:
        date_from = parse_date_input(request.args.get("from"))
        date_to = parse_date_input(request.args.get("to"))
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc), details={"date": "invalid"})

    rows = export_logs(user_id, date_from, date_to)
    today = date.today()

    if fmt == "excel":
        content = generate_logs_xlsx(rows)
        content_type = XLSX_MIMETYPE
        filename = build_export_filename(date_from, date_to, today, ext="xlsx")
    else:
        content = generate_csv_content(rows)
        content_type = "text/csv; charset=utf-8"
        filename = build_export_filename(date_from, date_to, today, ext="csv")

    logger.info("Log export user=%s format=%s rows=%d", user_id, fmt, len(rows))
    return Response(
        content,
        content_type=content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-store",
        },
    )
