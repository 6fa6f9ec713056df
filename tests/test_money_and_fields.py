"""Mini README: Tests for amount parsing, formatting and field coercion."""

from __future__ import annotations

from datetime import date, timezone
from decimal import Decimal

import pytest

from pepitracker.errors import InvalidAmount, InvalidField
from pepitracker.finance import FundRequest
from pepitracker.finance.requests import EDITABLE_FIELDS
from pepitracker.utils import format_currency, parse_amount, parse_non_negative
from pepitracker.utils.fields import coerce_updates, parse_datetime, record_as_dict


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("12.345", "12.35"), (" 7 ", "7.00"), (0.1, "0.10"), (3, "3.00"), (Decimal("2.005"), "2.01")],
)
def test_parse_amount_quantises_to_cents(raw, expected) -> None:
    assert parse_amount(raw) == Decimal(expected)


@pytest.mark.parametrize("raw", ["0", "-1", "abc", "NaN", "Infinity", True, None])
def test_parse_amount_rejects_bad_values(raw) -> None:
    with pytest.raises(InvalidAmount):
        parse_amount(raw)


def test_non_negative_allows_zero() -> None:
    assert parse_non_negative("0") == Decimal("0.00")
    with pytest.raises(InvalidAmount):
        parse_non_negative("-0.01")


def test_format_currency() -> None:
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(Decimal("-80"), "usd") == "-$80.00"
    assert format_currency(Decimal("99"), "EUR") == "99.00 EUR"


def test_coerce_updates_checks_editable_fields() -> None:
    coerced = coerce_updates({"amount": "15", "case_number": "  "}, EDITABLE_FIELDS)
    assert coerced == {"amount": Decimal("15.00"), "case_number": None}

    with pytest.raises(InvalidField):
        coerce_updates({"status": "approved"}, EDITABLE_FIELDS)
    with pytest.raises(InvalidField):
        coerce_updates({"agent_signature": ""}, EDITABLE_FIELDS)
    with pytest.raises(InvalidAmount):
        coerce_updates({"amount": "-3"}, EDITABLE_FIELDS)


def test_parse_datetime_defaults_to_utc() -> None:
    assert parse_datetime("2025-01-02T03:04:05").tzinfo is timezone.utc
    assert parse_datetime("2025-01-02T03:04:05Z").utcoffset().total_seconds() == 0
    assert parse_datetime(date(2025, 1, 2)).tzinfo is timezone.utc


def test_record_as_dict_serialises_values() -> None:
    request = FundRequest(
        request_id="r1",
        agent_id="a",
        book_id="b",
        amount=Decimal("10.00"),
        agent_signature="sig",
        requested_at=parse_datetime("2025-01-02T03:04:05"),
    )

    exported = record_as_dict(request)

    assert exported["amount"] == "10.00"
    assert exported["status"] == "pending"
    assert exported["requested_at"] == "2025-01-02T03:04:05+00:00"
