"""Shared utility functions.

parse_date_input:  raises ValueError on bad input, for query/body dates
parse_int_arg:     tolerant integer parsing for ids and paging params
sanitize_text:     strip control characters from free-text fields
commit_or_raise:   commit the session, translating DB errors for services
"""
import logging
import re
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from intern_tracker.core.exceptions import ConflictError
from intern_tracker.models import db

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Supports: YYYY-MM-DD, full ISO datetimes (``2024-05-01T10:00:00Z``),
    DD.MM.YYYY and date objects. Empty input returns None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(text, "%d.%m.%Y").date()
    except ValueError as exc:
        raise ValueError(
            "Invalid date format. Use YYYY-MM-DD or an ISO datetime."
        ) from exc


def parse_int_arg(value, default=None):
    """Return *value* as int, or *default* when missing or not an integer."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def sanitize_text(value, max_length):
    """Strip control characters and surrounding whitespace; None if empty.

    Raises ValueError when the cleaned text exceeds *max_length*.
    """
    if value is None:
        return None
    cleaned = _CONTROL_CHARS.sub("", str(value)).strip()
    if not cleaned:
        return None
    if len(cleaned) > max_length:
        raise ValueError(f"must be at most {max_length} characters")
    return cleaned


def commit_or_raise(resource=None):
    """Commit the current session; roll back and re-raise on failure.

    IntegrityError  → ConflictError (duplicate / constraint violation)
    Other DB errors → re-raised after rollback
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit resource=%s: %s", resource, exc.orig)
        raise ConflictError("Duplicate or constraint violation", resource=resource) from exc
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error on commit resource=%s", resource)
        raise
