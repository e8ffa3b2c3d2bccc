# models/base.py

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Optional

from utils.datetime_utils import now_utc, parse_timestamp

class Record:
    """Общие методы записей хранилища"""

    def copy_with(self, **changes):
        return replace(self, **changes)

def read_time(data: Dict[str, Any], key: str, fallback_now: bool = True) -> Optional[datetime]:
    """Время из документа; при отсутствии - текущее или None"""
    return parse_timestamp(data.get(key), now_utc() if fallback_now else None)

def read_int(data: Dict[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)
