# models/notification.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from models.base import Record, read_time
from utils.datetime_utils import now_utc

@dataclass
class AppNotification(Record):
    id: str
    type: str  # nudge, friend_request, ...
    from_user_id: str
    from_user_name: str
    from_user_avatar: Optional[str] = None
    message: Optional[str] = None
    created_at: datetime = field(default_factory=now_utc)
    is_read: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'fromUserId': self.from_user_id,
            'fromUserName': self.from_user_name,
            'fromUserAvatar': self.from_user_avatar,
            'message': self.message,
            'createdAt': self.created_at,
            'isRead': self.is_read,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppNotification":
        return cls(
            id=data.get('id', ''),
            type=data.get('type', ''),
            from_user_id=data.get('fromUserId', ''),
            from_user_name=data.get('fromUserName', ''),
            from_user_avatar=data.get('fromUserAvatar'),
            message=data.get('message'),
            created_at=read_time(data, 'createdAt'),
            is_read=bool(data.get('isRead', False))
        )
