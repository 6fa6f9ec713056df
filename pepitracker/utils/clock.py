"""Mini README: Time source shared by services.

Services accept a ``Clock`` so tests can pin timestamps; production code
uses ``utc_now``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
