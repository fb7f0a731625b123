"""Time source shared by services.

Services accept a ``clock`` callable so tests can pin "now"; this module
provides the default.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
