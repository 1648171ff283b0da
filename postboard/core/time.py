from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Текущее время UTC без tzinfo (так время хранится в БД)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def next_timestamp(previous: Optional[datetime] = None) -> datetime:
    """Метка времени строго больше предыдущей"""
    now = utc_now()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now
