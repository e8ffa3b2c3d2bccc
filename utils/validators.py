import re
from typing import Optional

SEARCH_QUERY_MIN_LENGTH = 2
SEARCH_QUERY_MAX_LENGTH = 50
USER_ID_MIN_LENGTH = 20
USER_ID_MAX_LENGTH = 40

_SEARCH_PATTERN = re.compile(r"^[a-zA-Z0-9\s._-]+$")
_USER_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

def clean_search_query(query: str) -> Optional[str]:
    """Нормализованный поисковый запрос или None, если он недопустим"""
    query = (query or "").strip()
    if not SEARCH_QUERY_MIN_LENGTH <= len(query) <= SEARCH_QUERY_MAX_LENGTH:
        return None
    if not _SEARCH_PATTERN.match(query):
        return None
    return query.lower()

def clean_user_id(user_id: str) -> Optional[str]:
    user_id = (user_id or "").strip()
    if not USER_ID_MIN_LENGTH <= len(user_id) <= USER_ID_MAX_LENGTH:
        return None
    if not _USER_ID_PATTERN.match(user_id):
        return None
    return user_id

def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match((email or "").strip()))

def is_valid_password(password: str, min_length: int = 6) -> bool:
    return len(password or "") >= min_length

def is_valid_group_name(name: str) -> bool:
    return 1 <= len((name or "").strip()) <= 100

def is_valid_project_name(name: str) -> bool:
    return 1 <= len((name or "").strip()) <= 100

def is_valid_color(color: str) -> bool:
    return bool(_HEX_COLOR_PATTERN.match(color or ""))
