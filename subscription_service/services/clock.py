"""Service clock with time manipulation.

Responsibilities:
- Provide the current time to the lifecycle engine and sweeps
- Shift time forward (days, hours, minutes) for operators and tests
- Keep a single offset from the underlying time source
"""

import threading
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from subscription_service.logging_config import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Clock:
    """Offset clock over a time source.

    ``now()`` returns the time source plus an offset, converted to the
    configured timezone. With the default source the clock keeps ticking
    after ``advance``/``set_time``; tests pass a fixed source to get a
    deterministic "now".

    Args:
        time_source: callable returning an aware datetime (defaults to real UTC time)
        tz: timezone used for ``now()`` and day boundaries
    """

    def __init__(
            self,
            time_source: Optional[Callable[[], datetime]] = None,
            tz: Optional[tzinfo] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._time_source = time_source or utc_now
        self._tz = tz or timezone.utc
        self._offset = timedelta(0)

        logger.info("clock_initialized", now=self.now().isoformat(), tz=str(self._tz))

    @classmethod
    def for_timezone(cls, tz_name: str) -> "Clock":
        return cls(tz=ZoneInfo(tz_name))

    @property
    def tz(self) -> tzinfo:
        return self._tz

    @property
    def offset(self) -> timedelta:
        with self._lock:
            return self._offset

    def now(self) -> datetime:
        """Get the current service time."""
        with self._lock:
            return (self._time_source() + self._offset).astimezone(self._tz)

    def advance(self, days: int = 0, hours: int = 0, minutes: int = 0) -> dict:
        """Move the clock forward.

        Returns:
            Dictionary with old_time, new_time and advanced_by (timedelta)

        Raises:
            ValueError: if any value is negative
        """
        if days < 0 or hours < 0 or minutes < 0:
            raise ValueError("Cannot advance time backwards, negative values are not allowed")

        delta = timedelta(days=days, hours=hours, minutes=minutes)
        with self._lock:
            old_time = self.now()
            self._offset += delta
            new_time = self.now()

        if delta:
            logger.info(
                "time_advanced",
                old_time=old_time.isoformat(),
                new_time=new_time.isoformat(),
                days=days,
                hours=hours,
                minutes=minutes,
            )

        return {"old_time": old_time, "new_time": new_time, "advanced_by": delta}

    def set_time(self, target: datetime) -> dict:
        """Set the clock to a specific time.

        Raises:
            ValueError: If target is naive or earlier than the current time
        """
        if target.tzinfo is None:
            raise ValueError("Target time must be timezone-aware")

        with self._lock:
            old_time = self.now()
            if target < old_time:
                raise ValueError(
                    f"Cannot set time backwards, current: {old_time.isoformat()}, "
                    f"requested: {target.isoformat()}"
                )
            self._offset += target - old_time
            new_time = self.now()

        logger.info("time_set", old_time=old_time.isoformat(), new_time=new_time.isoformat())
        return {"old_time": old_time, "new_time": new_time}

    def reset(self) -> dict:
        """Drop the offset and return to the time source."""
        with self._lock:
            old_time = self.now()
            self._offset = timedelta(0)
            new_time = self.now()

        logger.info("time_reset", old_time=old_time.isoformat(), new_time=new_time.isoformat())
        return {"old_time": old_time, "new_time": new_time}
