# models/group.py

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.base import Record, read_int, read_time
from models.user import UserData
from utils.datetime_utils import now_utc

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_LENGTH = 6

def generate_invite_code() -> str:
    """6 символов из A-Z0-9; уникальность не проверяется"""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))

@dataclass
class Group(Record):
    group_id: str
    name: str
    invite_code: str
    creator_id: str
    description: Optional[str] = None
    created_at: datetime = field(default_factory=now_utc)
    member_ids: List[str] = field(default_factory=list)
    member_count: int = 0

    def is_member(self, user_id: str) -> bool:
        return user_id in self.member_ids

    def is_creator(self, user_id: str) -> bool:
        return self.creator_id == user_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            'groupId': self.group_id,
            'name': self.name,
            'description': self.description,
            'inviteCode': self.invite_code,
            'creatorId': self.creator_id,
            'createdAt': self.created_at,
            'memberIds': list(self.member_ids),
            'memberCount': self.member_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        return cls(
            group_id=data.get('groupId', ''),
            name=data.get('name') or 'Unnamed Group',
            description=data.get('description'),
            invite_code=data.get('inviteCode', ''),
            creator_id=data.get('creatorId', ''),
            created_at=read_time(data, 'createdAt'),
            member_ids=list(data.get('memberIds') or []),
            member_count=read_int(data, 'memberCount')
        )

@dataclass
class GroupMember(Record):
    """Снимок статистики участника для таблицы лидеров группы"""
    user_id: str
    full_name: str = "Unknown"
    avatar_url: Optional[str] = None
    focus_hours: int = 0
    focus_hours_month: int = 0
    day_streak: int = 0
    joined_at: datetime = field(default_factory=now_utc)

    @classmethod
    def from_user(cls, user_id: str, user: UserData, joined_at: Optional[datetime] = None) -> "GroupMember":
        return cls(
            user_id=user_id,
            full_name=user.full_name,
            avatar_url=user.avatar_url,
            focus_hours=user.focus_hours,
            focus_hours_month=user.focus_hours_this_month(),
            day_streak=user.day_streak,
            joined_at=joined_at or now_utc()
        )

    def with_live_stats(self, user: UserData) -> "GroupMember":
        return self.copy_with(
            full_name=user.full_name,
            avatar_url=user.avatar_url,
            focus_hours=user.focus_hours,
            focus_hours_month=user.focus_hours_this_month(),
            day_streak=user.day_streak
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'fullName': self.full_name,
            'avatarUrl': self.avatar_url,
            'focusHours': self.focus_hours,
            'focusHoursMonth': self.focus_hours_month,
            'dayStreak': self.day_streak,
            'joinedAt': self.joined_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GroupMember":
        return cls(
            user_id=data.get('userId', ''),
            full_name=data.get('fullName') or 'Unknown',
            avatar_url=data.get('avatarUrl'),
            focus_hours=read_int(data, 'focusHours'),
            focus_hours_month=read_int(data, 'focusHoursMonth'),
            day_streak=read_int(data, 'dayStreak'),
            joined_at=read_time(data, 'joinedAt')
        )
