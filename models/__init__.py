#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - Models Package
Записи документного хранилища

Версия: 1.0.0
Дата: 2026-10-19
"""

from .enums import (
    FriendRequestStatus,
    AchievementType,
    NotificationType,
    ImageKind
)

from .user import (
    FocusSession,
    UserData
)

from .profile import UserProfile

from .social import (
    Friend,
    FriendRequestResult
)

from .group import (
    Group,
    GroupMember,
    generate_invite_code
)

from .achievement import (
    Achievement,
    AchievementCriteria
)

from .project import (
    Project,
    Subproject,
    UNSET_PROJECT_ID
)

from .notification import AppNotification

__all__ = [
    # Enums
    'FriendRequestStatus',
    'AchievementType',
    'NotificationType',
    'ImageKind',

    # User models
    'FocusSession',
    'UserData',
    'UserProfile',

    # Social models
    'Friend',
    'FriendRequestResult',
    'Group',
    'GroupMember',
    'generate_invite_code',

    # Progress models
    'Achievement',
    'AchievementCriteria',
    'Project',
    'Subproject',
    'UNSET_PROJECT_ID',
    'AppNotification'
]
