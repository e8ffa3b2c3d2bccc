# models/social.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from models.base import Record, read_int, read_time
from models.enums import FriendRequestStatus
from models.user import UserData
from utils.datetime_utils import now_utc

@dataclass
class Friend(Record):
    """Связь с другим пользователем с точки зрения владельца записи

    Для каждой пары (A, B) хранятся две записи: users/A/friends/B и
    users/B/friends/A с одинаковым статусом и противоположным is_requester.
    """
    user_id: str
    full_name: str = "Unknown"
    avatar_url: Optional[str] = None
    added_at: datetime = field(default_factory=now_utc)
    focus_hours: int = 0
    focus_hours_month: int = 0
    day_streak: int = 0
    rank_percentage: Optional[str] = None
    status: FriendRequestStatus = FriendRequestStatus.ACCEPTED
    is_requester: bool = False

    @property
    def is_pending(self) -> bool:
        return self.status == FriendRequestStatus.PENDING

    @property
    def is_accepted(self) -> bool:
        return self.status == FriendRequestStatus.ACCEPTED

    @classmethod
    def from_user(cls, user_id: str, user: UserData, added_at: datetime,
                  status: FriendRequestStatus, is_requester: bool) -> "Friend":
        """Запись со снимком статистики пользователя"""
        return cls(
            user_id=user_id,
            full_name=user.full_name,
            avatar_url=user.avatar_url,
            added_at=added_at,
            focus_hours=user.focus_hours,
            focus_hours_month=user.focus_hours_this_month(),
            day_streak=user.day_streak,
            rank_percentage=user.rank_percentage,
            status=status,
            is_requester=is_requester
        )

    def with_live_stats(self, user: UserData) -> "Friend":
        return self.copy_with(
            full_name=user.full_name,
            avatar_url=user.avatar_url,
            focus_hours=user.focus_hours,
            focus_hours_month=user.focus_hours_this_month(),
            day_streak=user.day_streak,
            rank_percentage=user.rank_percentage
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'fullName': self.full_name,
            'avatarUrl': self.avatar_url,
            'addedAt': self.added_at,
            'focusHours': self.focus_hours,
            'focusHoursMonth': self.focus_hours_month,
            'dayStreak': self.day_streak,
            'rankPercentage': self.rank_percentage,
            'status': self.status.value,
            'isRequester': self.is_requester,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Friend":
        try:
            status = FriendRequestStatus(data.get('status') or 'accepted')
        except ValueError:
            status = FriendRequestStatus.ACCEPTED

        return cls(
            user_id=data.get('userId', ''),
            full_name=data.get('fullName') or 'Unknown',
            avatar_url=data.get('avatarUrl'),
            added_at=read_time(data, 'addedAt'),
            focus_hours=read_int(data, 'focusHours'),
            focus_hours_month=read_int(data, 'focusHoursMonth'),
            day_streak=read_int(data, 'dayStreak'),
            rank_percentage=data.get('rankPercentage'),
            status=status,
            is_requester=bool(data.get('isRequester', False))
        )

@dataclass
class FriendRequestResult:
    success: bool
    error_message: Optional[str] = None

    @classmethod
    def ok(cls) -> "FriendRequestResult":
        return cls(success=True)

    @classmethod
    def failure(cls, message: str) -> "FriendRequestResult":
        return cls(success=False, error_message=message)
