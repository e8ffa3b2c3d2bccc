# models/enums.py

from enum import Enum

class FriendRequestStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"  # только читается, не записывается

class AchievementType(Enum):
    FOCUS_HOURS = "focusHours"
    DAY_STREAK = "dayStreak"
    SESSIONS_COUNT = "sessionsCount"
    SINGLE_SESSION = "singleSession"

class NotificationType(Enum):
    NUDGE = "nudge"
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"
    GROUP_JOINED = "group_joined"
    ACHIEVEMENT = "achievement"

class ImageKind(Enum):
    AVATAR = "avatar"
    BANNER = "banner"
