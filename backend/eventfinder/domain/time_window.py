from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Optional, Union
from zoneinfo import ZoneInfo

from .models import TimeWindow

END_OF_DAY = time(23, 59, 59, 999000)
EVENING_START = time(17, 0)
SATURDAY = 5

# Free-text hints for providers that only take a temporal phrase.
TEXT_HINTS: Dict[TimeWindow, Optional[str]] = {
    TimeWindow.TODAY: "today",
    TimeWindow.TONIGHT: "tonight",
    TimeWindow.TOMORROW: "tomorrow",
    TimeWindow.WEEKEND: "this weekend",
    TimeWindow.ANY: None,
}


@dataclass(frozen=True)
class TimeRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, value: datetime) -> bool:
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True


class TimeWindowResolver:
    """Turns a time-window label into concrete civil-day boundaries.

    Boundaries are computed in a single deployment timezone. A naive ``now``
    is read as wall-clock time in that zone.

    Weekend rule: the next Saturday, including today. On a Saturday the range
    is today and tomorrow; on a Sunday it is the following Saturday and Sunday.
    """

    def __init__(self, tz: Union[str, tzinfo] = "UTC") -> None:
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def resolve(self, window: TimeWindow, now: Optional[datetime] = None) -> TimeRange:
        window = TimeWindow.parse(window)
        today = self._localize(now or datetime.now(timezone.utc)).date()

        if window is TimeWindow.ANY:
            return TimeRange()
        if window is TimeWindow.TODAY:
            return self._range(today, time.min, today)
        if window is TimeWindow.TONIGHT:
            return self._range(today, EVENING_START, today)
        if window is TimeWindow.TOMORROW:
            tomorrow = today + timedelta(days=1)
            return self._range(tomorrow, time.min, tomorrow)
        saturday = today + timedelta(days=(SATURDAY - today.weekday()) % 7)
        return self._range(saturday, time.min, saturday + timedelta(days=1))

    @staticmethod
    def text_hint(window: TimeWindow) -> Optional[str]:
        return TEXT_HINTS[TimeWindow.parse(window)]

    def _localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)

    def _range(self, start_day: date, start_time: time, end_day: date) -> TimeRange:
        return TimeRange(
            start=datetime.combine(start_day, start_time, tzinfo=self.tz),
            end=datetime.combine(end_day, END_OF_DAY, tzinfo=self.tz),
        )
