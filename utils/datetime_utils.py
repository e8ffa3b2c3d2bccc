import os
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pytz

APP_TZ = pytz.timezone(os.getenv("APP_TIMEZONE", "UTC"))

def now_utc() -> datetime:
    return datetime.now(pytz.utc)

def local_now(tz=None) -> datetime:
    return datetime.now(tz or APP_TZ)

def ensure_aware(dt: datetime, tz=None) -> datetime:
    """Наивное время считается временем приложения"""
    if dt.tzinfo is None:
        return (tz or APP_TZ).localize(dt)
    return dt

def parse_timestamp(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    """datetime из значения хранилища: datetime, date или ISO-строка

    Результат всегда с часовым поясом; время без смещения считается UTC.
    """
    if value is None:
        return default
    if isinstance(value, datetime):
        return ensure_aware(value, pytz.utc)
    if isinstance(value, date):
        return pytz.utc.localize(datetime(value.year, value.month, value.day))
    if isinstance(value, str):
        try:
            return ensure_aware(datetime.fromisoformat(value.replace("Z", "+00:00")), pytz.utc)
        except ValueError:
            return default
    return default

def same_month(dt: datetime, reference: datetime) -> bool:
    reference = ensure_aware(reference)
    dt = ensure_aware(dt).astimezone(reference.tzinfo)
    return (dt.year, dt.month) == (reference.year, reference.month)

def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)

def last_days(count: int, today: Optional[datetime] = None):
    """Начала последних count дней, начиная с сегодняшнего"""
    today = start_of_day(today or local_now())
    return [today - timedelta(days=i) for i in range(count)]

def years_between(birthday: datetime, today: Optional[date] = None) -> int:
    today = today or local_now().date()
    age = today.year - birthday.year
    if (today.month, today.day) < (birthday.month, birthday.day):
        age -= 1
    return age

def format_date(dt: datetime, fmt: str = "%d.%m.%Y") -> str:
    return dt.strftime(fmt)
