# models/achievement.py

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from models.base import Record, read_int
from models.enums import AchievementType
from utils.datetime_utils import parse_timestamp

@dataclass
class AchievementCriteria:
    type: AchievementType
    target_value: int

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type.value, 'targetValue': self.target_value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AchievementCriteria":
        try:
            kind = AchievementType(data.get('type'))
        except ValueError:
            kind = AchievementType.FOCUS_HOURS
        return cls(type=kind, target_value=read_int(data, 'targetValue'))

@dataclass
class Achievement(Record):
    """Достижение; после разблокировки обратно не блокируется"""
    id: str
    title: str
    description: str
    icon_url: str
    criteria: AchievementCriteria
    is_unlocked: bool = False
    unlocked_at: Optional[datetime] = None

    def unlock(self, at: datetime) -> "Achievement":
        if self.is_unlocked:
            return self
        return self.copy_with(is_unlocked=True, unlocked_at=at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'iconUrl': self.icon_url,
            'isUnlocked': self.is_unlocked,
            'unlockedAt': self.unlocked_at,
            'criteria': self.criteria.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Achievement":
        return cls(
            id=data['id'],
            title=data.get('title', ''),
            description=data.get('description', ''),
            icon_url=data.get('iconUrl', ''),
            criteria=AchievementCriteria.from_dict(data.get('criteria') or {}),
            is_unlocked=bool(data.get('isUnlocked', False)),
            unlocked_at=parse_timestamp(data.get('unlockedAt'))
        )
