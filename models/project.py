# models/project.py

import uuid
import zlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.base import Record, read_time
from utils.datetime_utils import now_utc

UNSET_PROJECT_ID = "unset"
UNSET_PROJECT_NAME = "Unset"
UNSET_PROJECT_COLOR = "#8E8E93"
UNSET_PROJECT_EMOJI = "📝"
DEFAULT_PROJECT_COLOR = "#007AFF"

@dataclass
class Subproject(Record):
    id: str
    name: str
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    @classmethod
    def create(cls, name: str) -> "Subproject":
        now = now_utc()
        return cls(id=str(uuid.uuid4()), name=name, created_at=now, updated_at=now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subproject":
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            created_at=read_time(data, 'createdAt'),
            updated_at=read_time(data, 'updatedAt')
        )

@dataclass
class Project(Record):
    """Проект пользователя (users/{uid}/projects/{id})"""
    id: str
    name: str
    color: Optional[str] = None
    emoji: Optional[str] = None
    subprojects: List[Subproject] = field(default_factory=list)
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)
    is_default: bool = False

    @classmethod
    def unset(cls) -> "Project":
        """Проект по умолчанию; удалить его нельзя"""
        now = now_utc()
        return cls(
            id=UNSET_PROJECT_ID,
            name=UNSET_PROJECT_NAME,
            color=UNSET_PROJECT_COLOR,
            emoji=UNSET_PROJECT_EMOJI,
            created_at=now,
            updated_at=now,
            is_default=True
        )

    @classmethod
    def create(cls, name: str, color: Optional[str] = None, emoji: Optional[str] = None) -> "Project":
        now = now_utc()
        project_id = f"{int(now.timestamp() * 1000)}_{zlib.crc32(name.encode('utf-8'))}"
        return cls(
            id=project_id,
            name=name,
            color=color or DEFAULT_PROJECT_COLOR,
            emoji=emoji,
            created_at=now,
            updated_at=now
        )

    def add_subproject(self, subproject: Subproject) -> "Project":
        return self.copy_with(subprojects=self.subprojects + [subproject], updated_at=now_utc())

    def remove_subproject(self, subproject_id: str) -> "Project":
        return self.copy_with(
            subprojects=[item for item in self.subprojects if item.id != subproject_id],
            updated_at=now_utc()
        )

    def update_subproject(self, subproject: Subproject) -> "Project":
        return self.copy_with(
            subprojects=[subproject if item.id == subproject.id else item for item in self.subprojects],
            updated_at=now_utc()
        )

    def get_subproject(self, subproject_id: str) -> Optional[Subproject]:
        return next((item for item in self.subprojects if item.id == subproject_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'emoji': self.emoji,
            'subprojects': [item.to_dict() for item in self.subprojects],
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'isDefault': self.is_default,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            color=data.get('color'),
            emoji=data.get('emoji'),
            subprojects=[Subproject.from_dict(item) for item in data.get('subprojects') or []],
            created_at=read_time(data, 'createdAt'),
            updated_at=read_time(data, 'updatedAt'),
            is_default=bool(data.get('isDefault', False))
        )
