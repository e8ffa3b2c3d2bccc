# models/profile.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from models.base import Record, read_time
from utils.datetime_utils import now_utc, parse_timestamp, years_between

@dataclass
class UserProfile(Record):
    """Краткий профиль (user_profiles/{uid})"""
    full_name: str = "User"
    birthday: Optional[datetime] = None
    avatar_url: Optional[str] = None
    onboarding_completed: bool = False
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    @classmethod
    def new_user(cls, full_name: Optional[str] = None) -> "UserProfile":
        now = now_utc()
        return cls(full_name=full_name or "User", created_at=now, updated_at=now)

    @property
    def age(self) -> Optional[int]:
        if self.birthday is None:
            return None
        return years_between(self.birthday)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fullName': self.full_name,
            'birthday': self.birthday,
            'avatarUrl': self.avatar_url,
            'onboardingCompleted': self.onboarding_completed,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            full_name=data.get('fullName') or 'User',
            birthday=parse_timestamp(data.get('birthday')),
            avatar_url=data.get('avatarUrl'),
            onboarding_completed=bool(data.get('onboardingCompleted', False)),
            created_at=read_time(data, 'createdAt'),
            updated_at=read_time(data, 'updatedAt')
        )
