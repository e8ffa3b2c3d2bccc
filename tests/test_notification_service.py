import asyncio

import pytest

from models.enums import NotificationType
from services.notification_service import NUDGE_MESSAGE, NotificationService
from tests.conftest import ALICE, BOB, CAROL

@pytest.fixture
def notifications(store):
    return NotificationService(store, limit=3)

async def test_send_notification_stores_unread(notifications, store):
    sent = await notifications.send_notification(
        to_user_id=BOB,
        type=NotificationType.FRIEND_REQUEST.value,
        from_user_id=ALICE,
        from_user_name="Alice"
    )

    snapshot = await store.get(f"users/{BOB}/notifications/{sent.id}")
    assert snapshot.get('type') == "friend_request"
    assert snapshot.get('fromUserId') == ALICE
    assert snapshot.get('isRead') is False

async def test_send_nudge(notifications):
    nudge = await notifications.send_nudge(BOB, ALICE, "Alice", from_user_avatar="https://cdn/a.jpg")

    assert nudge.type == NotificationType.NUDGE.value
    assert nudge.message == NUDGE_MESSAGE
    assert nudge.from_user_avatar == "https://cdn/a.jpg"

async def test_mark_as_read_and_mark_all(notifications, store):
    first = await notifications.send_nudge(BOB, ALICE, "Alice")
    await notifications.send_nudge(BOB, CAROL, "Carol")
    await notifications.send_nudge(BOB, ALICE, "Alice")

    assert await notifications.mark_as_read(BOB, first.id)
    assert await notifications.mark_all_as_read(BOB) == 2
    assert await notifications.mark_all_as_read(BOB) == 0

    unread = [path for path in store.paths(f"users/{BOB}/notifications")
              if (await store.get(path)).get('isRead') is False]
    assert unread == []

async def test_mark_missing_notification_returns_false(notifications):
    assert not await notifications.mark_as_read(BOB, "missing")

async def test_delete_notification(notifications, store):
    sent = await notifications.send_nudge(BOB, ALICE, "Alice")

    assert await notifications.delete_notification(BOB, sent.id)
    assert store.paths(f"users/{BOB}/notifications") == []

async def test_unread_count_stream(notifications):
    stream = notifications.stream_unread_count(BOB)
    try:
        assert await stream.__anext__() == 0

        sent = await notifications.send_nudge(BOB, ALICE, "Alice")
        assert await asyncio.wait_for(stream.__anext__(), timeout=1) == 1

        await notifications.mark_as_read(BOB, sent.id)
        assert await asyncio.wait_for(stream.__anext__(), timeout=1) == 0
    finally:
        await stream.aclose()

async def test_notification_stream_is_limited(notifications):
    for _ in range(5):
        await notifications.send_nudge(BOB, ALICE, "Alice")

    stream = notifications.stream_notifications(BOB)
    try:
        latest = await stream.__anext__()
    finally:
        await stream.aclose()

    assert len(latest) == 3
    assert all(item.type == "nudge" for item in latest)
    assert [item.created_at for item in latest] == sorted((item.created_at for item in latest), reverse=True)

async def test_mark_all_as_read_splits_large_batches(notifications, store):
    for index in range(1203):
        await store.set(f"users/{BOB}/notifications/n{index:04d}", {
            'id': f"n{index:04d}",
            'type': "nudge",
            'fromUserId': ALICE,
            'fromUserName': "Alice",
            'isRead': False,
        })
    commits = store.stats.commits

    assert await notifications.mark_all_as_read(BOB) == 1203

    assert store.stats.commits - commits == 3
    assert await notifications.mark_all_as_read(BOB) == 0
