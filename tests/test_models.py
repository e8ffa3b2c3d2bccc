import re
from datetime import date, datetime, timedelta

import pytest
import pytz

from models.enums import FriendRequestStatus
from models.project import Project
from models.social import Friend
from models.user import FocusSession, UserData
from utils.datetime_utils import parse_timestamp

def at(day: int, hour: int, minute: int = 0, month: int = 10) -> datetime:
    return datetime(2026, month, day, hour, minute, tzinfo=pytz.utc)

def test_new_user_defaults():
    user = UserData.new_user("a@example.com", "Alice", username="MiXeD")

    assert user.username == "mixed"
    assert user.onboarding_completed
    assert user.is_pro
    assert user.current_badge == "None"
    assert len(user.daily_activity_data) == 365
    assert set(user.time_of_day_performance) == set(range(24))

def test_user_round_trip_keeps_key_fields():
    user = UserData.new_user("a@example.com", "Alice").copy_with(
        day_streak=7,
        focus_hours=42,
        group_ids=["g1"],
        focus_sessions=[FocusSession(at(1, 9), timedelta(minutes=50))]
    )

    restored = UserData.from_dict(user.to_dict(), user_id="uid")

    assert restored.user_id == "uid"
    assert restored.day_streak == 7
    assert restored.focus_hours == 42
    assert restored.group_ids == ["g1"]
    assert restored.focus_sessions == user.focus_sessions
    assert restored.daily_activity_data == user.daily_activity_data
    assert restored.time_of_day_performance == user.time_of_day_performance

def test_from_dict_uses_fallbacks():
    user = UserData.from_dict({'dayStreak': "bad", 'focusHours': 3.9})

    assert user.email == "user@example.com"
    assert user.full_name == "User"
    assert user.day_streak == 0
    assert user.focus_hours == 3
    assert user.rank_percentage == "N/A"

def test_time_of_day_performance_splits_sessions_across_hours():
    sessions = [
        FocusSession(at(1, 9, 30), timedelta(minutes=60)),
        FocusSession(at(2, 9, 0), timedelta(minutes=20)),
    ]

    performance = UserData.calculate_time_of_day_performance(sessions)

    assert performance[9] == pytest.approx((30 + 20) / 2)
    assert performance[10] == pytest.approx(30 / 2)
    assert performance[11] == 0
    assert UserData.calculate_time_of_day_performance([]) == {hour: 0.0 for hour in range(24)}

def test_focus_hours_this_month():
    user = UserData.new_user("a@example.com", "Alice").copy_with(focus_sessions=[
        FocusSession(at(3, 9), timedelta(minutes=90)),
        FocusSession(at(4, 9), timedelta(minutes=50)),
        FocusSession(at(30, 9, month=9), timedelta(minutes=600)),
    ])

    assert user.focus_hours_this_month(now=at(19, 12)) == 2
    assert user.total_sessions == 3
    assert user.longest_session_minutes == 600

def test_project_id_format():
    project = Project.create("Work")

    assert re.fullmatch(r"\d{13}_\d+", project.id)
    assert project.color == "#007AFF"
    assert not project.is_default

def test_friend_status_decoding():
    accepted = Friend.from_dict({'userId': "u1", 'status': "something-new"})
    pending = Friend.from_dict({'userId': "u2", 'status': "pending", 'isRequester': True})

    assert accepted.status == FriendRequestStatus.ACCEPTED
    assert pending.is_pending
    assert pending.is_requester
    assert Friend.from_dict(pending.to_dict()) == pending

def test_parse_timestamp_is_always_timezone_aware():
    naive = parse_timestamp("2026-10-18T10:00:00")
    offset = parse_timestamp("2026-10-18T12:00:00+03:00")
    day = parse_timestamp(date(2026, 10, 18))
    plain = parse_timestamp(datetime(2026, 10, 18, 8))

    assert naive == at(18, 10)
    assert offset == at(18, 9)
    assert day == at(18, 0)
    assert plain == at(18, 8)
    assert sorted([naive, offset, day, plain]) == [day, plain, offset, naive]
    assert parse_timestamp("not a date") is None
