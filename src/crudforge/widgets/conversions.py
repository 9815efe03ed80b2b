"""ISO-8601 conversions for DATE and DATETIME fields.

Wire forms:
- DATE: ``YYYY-MM-DD`` (calendar date, no time zone)
- DATETIME: ISO-8601 with offset; UTC is written with a ``Z`` suffix

In memory, DATE values are ``datetime.date`` and DATETIME values are
``datetime.datetime``. A DATE parsed from a full timestamp keeps the
calendar date as written; it is never shifted through a time zone.
"""

import re
from datetime import date, datetime, timedelta

from crudforge.errors import FieldValueError

_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


def date_from_wire(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        match = _DATE_PREFIX.match(value.strip())
        if match:
            try:
                return date(*(int(part) for part in match.groups()))
            except ValueError as e:
                raise FieldValueError(f"Invalid date: {value!r}") from e
    raise FieldValueError(f"Invalid date: {value!r}")


def date_to_wire(value: object) -> str:
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    # Accept already-serialised values, normalising them
    return date_from_wire(value).isoformat()


def datetime_from_wire(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as e:
            raise FieldValueError(f"Invalid datetime: {value!r}") from e
    raise FieldValueError(f"Invalid datetime: {value!r}")


def datetime_to_wire(value: object) -> str:
    dt = datetime_from_wire(value)
    text = dt.isoformat()
    if dt.utcoffset() == timedelta(0):
        text = text[: -len("+00:00")] + "Z"
    return text


def same_instant(a: datetime, b: datetime) -> bool:
    """Equality for DATETIME values; naive and aware values never match."""
    if (a.utcoffset() is None) != (b.utcoffset() is None):
        return False
    return a == b
