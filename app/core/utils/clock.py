"""Time helpers shared by the scheduler, the enrollment flow and the detection loop."""
import time
from datetime import datetime, timezone
from typing import Callable

# All cooldown and dwell arithmetic is done on a monotonic millisecond clock
Clock = Callable[[], float]


def monotonic_ms() -> float:
    """Current monotonic time in milliseconds."""
    return time.monotonic() * 1000.0


def utc_now() -> datetime:
    """Current wall-clock time in UTC."""
    return datetime.now(timezone.utc)
