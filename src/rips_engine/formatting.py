"""Field formatting for RIPS flat files.

Every value written to a RIPS file passes through ``format_field``, which
fits it to the declared type and maximum length of its field. Formatting is
best-effort: bad dates degrade to an empty string and over-long values are
cut, unless a strict policy is selected on the config.

The helpers below (``to_iso_date``, ``to_hhmm``, ``pad_code``) are shared by
the record mappers so that date handling is identical at both layers.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from rips_engine.config import MalformedFieldPolicy, NumericOverflowPolicy
from rips_engine.errors import FieldFormatError

STRING = "string"
NUMBER = "number"
DATE = "date"

# Commas separate fields and line breaks separate records; quotes have no
# escaping convention. None of them may survive inside a field.
FIELD_REPLACEMENTS = str.maketrans({",": " ", "\r": " ", "\n": " ", '"': None})


def number_text(value: Any) -> str:
    """Textual form of a value, with whole floats rendered without '.0'."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, Decimal):
        return format(value.normalize(), "f") if value.is_finite() else str(value)
    return str(value)


def to_number(value: Any) -> float:
    """Numeric value of a record field, including text read back from files."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return 0.0


def parse_datetime(value: Any) -> datetime | None:
    """Parse a date-like value; returns None when it cannot be read."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def as_date(value: Any) -> date | None:
    parsed = parse_datetime(value)
    return parsed.date() if parsed is not None else None


def to_iso_date(value: Any) -> str:
    """``YYYY-MM-DD`` for a date-like value, ``""`` when absent or unreadable."""
    parsed = as_date(value)
    return parsed.isoformat() if parsed is not None else ""


def to_hhmm(value: Any) -> str:
    """``HH:MM`` for a time-like value, ``""`` when absent or unreadable."""
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, str) and len(value) == 5 and value[2] == ":":
        return value
    parsed = parse_datetime(value)
    return parsed.strftime("%H:%M") if parsed is not None else ""


def pad_code(value: str | None, width: int, fill: str = "0") -> str:
    """Right-pad a code to ``width`` characters; empty codes stay empty."""
    return value.ljust(width, fill) if value else ""


def clip(value: str | None, max_length: int) -> str:
    return (value or "")[:max_length]


def _malformed(value: Any, field_type: str, policy: MalformedFieldPolicy) -> str:
    if policy is MalformedFieldPolicy.RAISE:
        raise FieldFormatError(f"Cannot format {value!r} as {field_type}")
    return ""


def _format_number(
    value: Any,
    max_length: int,
    numeric_policy: NumericOverflowPolicy,
    malformed_policy: MalformedFieldPolicy,
) -> str:
    if numeric_policy is NumericOverflowPolicy.ROUND and value != "":
        try:
            rounded = Decimal(number_text(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return _malformed(value, NUMBER, malformed_policy)
        text = format(rounded, "f")
        if not rounded.is_finite() or len(text) > max_length:
            return _malformed(value, NUMBER, malformed_policy)
        return text
    # TODO: character truncation corrupts magnitude (123456 -> "123" for length 3);
    # switch the default to ROUND once downstream consumers accept rounded values.
    return number_text(value)[:max_length].translate(FIELD_REPLACEMENTS)


def _format_date(value: Any, malformed_policy: MalformedFieldPolicy) -> str:
    if isinstance(value, str):
        if len(value) == 10 or value == "":
            return value.translate(FIELD_REPLACEMENTS)
    parsed = parse_datetime(value)
    if parsed is None:
        return _malformed(value, DATE, malformed_policy)
    return parsed.date().isoformat()


def format_field(
    value: Any,
    field_type: str,
    max_length: int,
    *,
    numeric_policy: NumericOverflowPolicy = NumericOverflowPolicy.TRUNCATE,
    malformed_policy: MalformedFieldPolicy = MalformedFieldPolicy.DEGRADE_TO_EMPTY,
) -> str:
    """Render one field value for a RIPS flat file.

    Args:
        value: Raw value from a mapped record. ``None`` is treated as ``""``.
        field_type: ``"string"``, ``"number"`` or ``"date"``. Unknown types are
            formatted as strings.
        max_length: Declared maximum length of the field.
        numeric_policy: How number fields are fitted to ``max_length``.
        malformed_policy: Whether unreadable values degrade to ``""`` or raise.

    Returns:
        The field text. Strings are truncated, commas and line breaks become
        spaces and double quotes are dropped, since the flat format has no
        quoting convention. Dates are ``YYYY-MM-DD``.

    Raises:
        FieldFormatError: Only under ``MalformedFieldPolicy.RAISE``.
    """
    if value is None:
        value = ""
    if field_type == NUMBER:
        return _format_number(value, max_length, numeric_policy, malformed_policy)
    if field_type == DATE:
        return _format_date(value, malformed_policy)
    return number_text(value)[:max_length].translate(FIELD_REPLACEMENTS)
