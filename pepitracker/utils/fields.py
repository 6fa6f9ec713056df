"""Mini README: Field coercion and export helpers shared by record types.

Structure:
    * coerce_updates - validate an edit payload against a table of coercers.
    * parse_date / parse_datetime - accept ISO strings or date objects.
    * optional_text - trim strings, turning blanks into ``None``.
    * record_as_dict - export a record dataclass with JSON friendly values.

Records declare which fields an owner may edit by mapping field names to a
coercion callable; anything outside that table is rejected so an edit can
never rewrite status, reviewer or linkage fields.
"""

from __future__ import annotations

from dataclasses import fields
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from ..errors import InvalidField, TrackerError

Coercer = Callable[[Any], Any]


def coerce_updates(updates: Mapping[str, Any], coercers: Mapping[str, Coercer]) -> Dict[str, Any]:
    """Validate and coerce an update payload.

    Optional text coercers accept ``None`` so an edit can clear a value;
    required fields reject it through their coercer.
    """

    coerced: Dict[str, Any] = {}
    for key, value in updates.items():
        if key not in coercers:
            raise InvalidField(f"Field '{key}' cannot be edited.")
        try:
            coerced[key] = coercers[key](value)
        except TrackerError:
            raise
        except (TypeError, ValueError) as error:
            raise InvalidField(f"Field '{key}' has an invalid value: {value!r}") from error
    return coerced


def parse_date(value: object) -> date:
    """Parse ISO formatted strings or date objects safely."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip())
    raise ValueError("Dates must be provided as ISO strings or date/datetime instances.")


def parse_optional_date(value: object) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_date(value)


def parse_datetime(value: object) -> datetime:
    """Parse ISO timestamps, assuming UTC when no offset is given."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError("Timestamps must be ISO strings or datetime instances.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def optional_text(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def required_text(value: object) -> str:
    text = optional_text(value)
    if text is None:
        raise ValueError("A non-empty value is required.")
    return text


def _export_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def record_as_dict(record: Any) -> Dict[str, Any]:
    """Export a slotted record dataclass with serialisable values."""

    return {field.name: _export_value(getattr(record, field.name)) for field in fields(record)}
