# study_planner/core/time_utils.py
from datetime import datetime, timedelta, timezone, date
from typing import Optional, List, Tuple, Union
import pytz

DEFAULT_TZ = "UTC"

TzLike = Union[str, pytz.BaseTzInfo, None]


def get_tz(tz: TzLike = None) -> pytz.BaseTzInfo:
    if tz is None:
        return pytz.timezone(DEFAULT_TZ)
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(dt: datetime, tz: TzLike = None) -> datetime:
    """Return UTC-naive datetime for Mongo 'date' type; naive input is read as local to `tz`."""
    if dt.tzinfo is None:
        dt = get_tz(tz).localize(dt)
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(dt: datetime, tz: TzLike = None) -> datetime:
    """Make a store datetime (UTC-naive) aware in the configured zone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(get_tz(tz))


def to_epoch_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def day_key(dt: Optional[datetime], tz: TzLike = None) -> Optional[str]:
    if not isinstance(dt, datetime):
        return None
    return to_local(dt, tz).date().isoformat()


def local_day_start(d: date, tz: TzLike = None) -> datetime:
    """Local midnight of `d`, as UTC-naive."""
    zone = get_tz(tz)
    return to_utc_naive(zone.localize(datetime(d.year, d.month, d.day)), zone)


def local_today(now: Optional[datetime] = None, tz: TzLike = None) -> date:
    return to_local(now or utc_now_naive(), tz).date()


def local_day_bounds(now: Optional[datetime] = None, tz: TzLike = None) -> Tuple[datetime, datetime]:
    today = local_today(now, tz)
    return local_day_start(today, tz), local_day_start(today + timedelta(days=1), tz)


def window_start(days_back: int, now: Optional[datetime] = None, tz: TzLike = None) -> datetime:
    """Local midnight `days_back` days before today, as UTC-naive."""
    return local_day_start(local_today(now, tz) - timedelta(days=days_back), tz)


def last_n_day_keys(n: int, now: Optional[datetime] = None, tz: TzLike = None) -> List[str]:
    today = local_today(now, tz)
    return [(today - timedelta(days=i)).isoformat() for i in range(n - 1, -1, -1)]
