"""Mini README: Utility helpers for the funds tracker.

Exports money parsing and formatting helpers and the UTC clock. Field
coercion helpers live in ``utils.fields`` and are imported from there by the
record modules.
"""

from .clock import Clock, utc_now
from .money import format_currency, parse_amount, parse_non_negative

__all__ = ["Clock", "format_currency", "parse_amount", "parse_non_negative", "utc_now"]
