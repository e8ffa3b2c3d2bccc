# models/user.py

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from models.base import Record, read_int, read_time
from utils.datetime_utils import (
    last_days, local_now, now_utc, parse_timestamp, same_month, years_between,
)

ACTIVITY_DAYS = 365
HOURS_IN_DAY = 24

DEFAULT_RANK = "N/A"
DEFAULT_BADGE = "None"
DEFAULT_BADGE_PROGRESS = "0/30 days"
DEFAULT_NEXT_BADGE_PROGRESS = "0/500 days"

@dataclass
class FocusSession:
    start: datetime
    duration: timedelta

    @property
    def minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def to_dict(self) -> Dict[str, Any]:
        return {'start': self.start, 'duration': self.minutes}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FocusSession":
        return cls(
            start=parse_timestamp(data.get('start'), now_utc()),
            duration=timedelta(minutes=read_int(data, 'duration'))
        )

def _empty_activity(today: Optional[datetime] = None) -> Dict[date, float]:
    return {day.date(): 0.0 for day in last_days(ACTIVITY_DAYS, today)}

def _empty_hours() -> Dict[int, float]:
    return {hour: 0.0 for hour in range(HOURS_IN_DAY)}

@dataclass
class UserData(Record):
    """Профиль и статистика пользователя (документ users/{uid})"""
    email: str
    full_name: str
    user_id: str = ""  # идентификатор документа, в данные не пишется
    username: Optional[str] = None
    birthday: Optional[datetime] = None
    gender: Optional[str] = None
    avatar_url: Optional[str] = None
    banner_image_url: Optional[str] = None
    onboarding_completed: bool = False
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)
    question_answers: Optional[Dict[str, str]] = None

    # Статистика
    day_streak: int = 0
    focus_hours: int = 0
    rank_percentage: str = DEFAULT_RANK
    current_badge: str = DEFAULT_BADGE
    current_badge_progress: str = DEFAULT_BADGE_PROGRESS
    next_badge: str = DEFAULT_BADGE
    next_badge_progress: str = DEFAULT_NEXT_BADGE_PROGRESS
    daily_activity_data: Dict[date, float] = field(default_factory=dict)
    focus_sessions: List[FocusSession] = field(default_factory=list)
    time_of_day_performance: Optional[Dict[int, float]] = None
    is_generated_data: bool = False
    generated_at: Optional[datetime] = None
    group_ids: List[str] = field(default_factory=list)
    is_pro: bool = True

    @classmethod
    def new_user(cls, email: str, full_name: str, user_id: str = "", username: Optional[str] = None,
                 birthday: Optional[datetime] = None, gender: Optional[str] = None,
                 question_answers: Optional[Dict[str, str]] = None) -> "UserData":
        """Новый пользователь с нулевой статистикой"""
        now = now_utc()
        return cls(
            email=email,
            full_name=full_name,
            user_id=user_id,
            username=username.lower() if username else None,
            birthday=birthday,
            gender=gender,
            onboarding_completed=True,
            created_at=now,
            updated_at=now,
            question_answers=question_answers,
            daily_activity_data=_empty_activity(),
            time_of_day_performance=_empty_hours()
        )

    def with_default_statistics(self) -> "UserData":
        """Сбросить статистику, сохранив профиль"""
        return self.copy_with(
            day_streak=0,
            focus_hours=0,
            rank_percentage=DEFAULT_RANK,
            current_badge=DEFAULT_BADGE,
            current_badge_progress=DEFAULT_BADGE_PROGRESS,
            next_badge=DEFAULT_BADGE,
            next_badge_progress=DEFAULT_NEXT_BADGE_PROGRESS,
            daily_activity_data=_empty_activity(),
            focus_sessions=[],
            time_of_day_performance=_empty_hours(),
            is_generated_data=False,
            generated_at=None,
            updated_at=now_utc()
        )

    @staticmethod
    def calculate_time_of_day_performance(sessions: List[FocusSession]) -> Dict[int, float]:
        """Среднее число минут фокуса по часам суток в дни с сессиями

        Сессия, пересекающая границу часа, делится между часами.
        Значения ограничены диапазоном 0-60.
        """
        totals = _empty_hours()

        for session in sessions:
            current = session.start
            remaining = session.minutes
            while remaining > 0:
                in_this_hour = min(remaining, 60 - current.minute)
                totals[current.hour] += in_this_hour
                remaining -= in_this_hour
                current = current + timedelta(minutes=in_this_hour)

        days_with_sessions = len({session.start.date() for session in sessions})
        if days_with_sessions == 0:
            return _empty_hours()

        return {
            hour: min(max(total / days_with_sessions, 0.0), 60.0)
            for hour, total in totals.items()
        }

    @property
    def age(self) -> Optional[int]:
        if self.birthday is None:
            return None
        return years_between(self.birthday)

    def focus_hours_this_month(self, now: Optional[datetime] = None) -> int:
        """Целые часы фокуса в текущем календарном месяце"""
        reference = now or local_now()
        minutes = sum(
            session.minutes for session in self.focus_sessions
            if same_month(session.start, reference)
        )
        return minutes // 60

    @property
    def total_sessions(self) -> int:
        return len(self.focus_sessions)

    @property
    def longest_session_minutes(self) -> int:
        return max((session.minutes for session in self.focus_sessions), default=0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'email': self.email,
            'fullName': self.full_name,
            'username': self.username,
            'birthday': self.birthday,
            'gender': self.gender,
            'avatarUrl': self.avatar_url,
            'bannerImageUrl': self.banner_image_url,
            'onboardingCompleted': self.onboarding_completed,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'questionAnswers': self.question_answers,
            'dayStreak': self.day_streak,
            'focusHours': self.focus_hours,
            'rankPercentage': self.rank_percentage,
            'currentBadge': self.current_badge,
            'currentBadgeProgress': self.current_badge_progress,
            'nextBadge': self.next_badge,
            'nextBadgeProgress': self.next_badge_progress,
            'dailyActivityData': {day.isoformat(): hours for day, hours in self.daily_activity_data.items()},
            'focusSessions': [session.to_dict() for session in self.focus_sessions],
            'timeOfDayPerformance': (
                {str(hour): minutes for hour, minutes in self.time_of_day_performance.items()}
                if self.time_of_day_performance is not None else None
            ),
            'isGeneratedData': self.is_generated_data,
            'generatedAt': self.generated_at,
            'groupIds': list(self.group_ids),
            'isPro': self.is_pro,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], user_id: str = "") -> "UserData":
        activity = {}
        for key, hours in (data.get('dailyActivityData') or {}).items():
            day = parse_timestamp(key)
            if day is not None:
                activity[day.date()] = float(hours)

        performance = None
        if data.get('timeOfDayPerformance') is not None:
            performance = {int(hour): float(minutes) for hour, minutes in data['timeOfDayPerformance'].items()}

        answers = data.get('questionAnswers')
        return cls(
            email=data.get('email') or 'user@example.com',
            full_name=data.get('fullName') or 'User',
            user_id=user_id,
            username=data.get('username'),
            birthday=parse_timestamp(data.get('birthday')),
            gender=data.get('gender'),
            avatar_url=data.get('avatarUrl'),
            banner_image_url=data.get('bannerImageUrl'),
            onboarding_completed=bool(data.get('onboardingCompleted', False)),
            created_at=read_time(data, 'createdAt'),
            updated_at=read_time(data, 'updatedAt'),
            question_answers=dict(answers) if answers is not None else None,
            day_streak=read_int(data, 'dayStreak'),
            focus_hours=read_int(data, 'focusHours'),
            rank_percentage=data.get('rankPercentage') or DEFAULT_RANK,
            current_badge=data.get('currentBadge') or DEFAULT_BADGE,
            current_badge_progress=data.get('currentBadgeProgress') or DEFAULT_BADGE_PROGRESS,
            next_badge=data.get('nextBadge') or DEFAULT_BADGE,
            next_badge_progress=data.get('nextBadgeProgress') or DEFAULT_NEXT_BADGE_PROGRESS,
            daily_activity_data=activity,
            focus_sessions=[FocusSession.from_dict(item) for item in data.get('focusSessions') or []],
            time_of_day_performance=performance,
            is_generated_data=bool(data.get('isGeneratedData', False)),
            generated_at=parse_timestamp(data.get('generatedAt')),
            group_ids=list(data.get('groupIds') or []),
            is_pro=bool(data.get('isPro', True))
        )
