from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from src.domain.errors import InvalidArgument
from src.domain.models import PeriodScope

SQLITE_TS_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_scope(raw: str | PeriodScope) -> PeriodScope:
    if isinstance(raw, PeriodScope):
        return raw
    try:
        return PeriodScope(str(raw).strip().lower())
    except ValueError:
        raise InvalidArgument(f"Unknown period scope: {raw!r}") from None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_start_of_today(now: Optional[datetime] = None) -> datetime:
    now = now or _utc_now()
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def utc_start_of_week_monday(now: Optional[datetime] = None) -> datetime:
    today0 = utc_start_of_today(now)
    return today0 - timedelta(days=today0.weekday())


def utc_start_of_month(now: Optional[datetime] = None) -> datetime:
    return utc_start_of_today(now).replace(day=1)


def fmt_sqlite(dt: datetime) -> str:
    return dt.strftime(SQLITE_TS_FORMAT)


def since_for_scope(scope: PeriodScope, now: Optional[datetime] = None) -> Optional[str]:
    """
    Lower bound (inclusive, UTC, SQLite datetime format) for facts in scope.

    None means no lower bound (all-time).
    """
    if scope is PeriodScope.ALL:
        return None
    if scope is PeriodScope.MONTH:
        return fmt_sqlite(utc_start_of_month(now))
    if scope is PeriodScope.WEEK:
        return fmt_sqlite(utc_start_of_week_monday(now))
    raise InvalidArgument(f"Unknown period scope: {scope!r}")


def scope_label(scope: PeriodScope) -> str:
    return {
        PeriodScope.ALL: "All Time",
        PeriodScope.MONTH: "This Month",
        PeriodScope.WEEK: "This Week",
    }[scope]
