import asyncio
import string

import pytest

from models.group import INVITE_CODE_ALPHABET, generate_invite_code
from services.base import group_path, members_collection, user_path
from services.groups_service import GroupsService
from tests.conftest import ALICE, BOB, CAROL, DAVE

@pytest.fixture
def groups(store):
    return GroupsService(store)

@pytest.fixture
async def users(add_user):
    await add_user(ALICE, "Alice", focus_hours=3)
    await add_user(BOB, "Bob", focus_hours=30)
    await add_user(CAROL, "Carol", focus_hours=10)

async def assert_consistent(store, group_id):
    group = (await store.get(group_path(group_id))).to_dict()
    members = store.paths(members_collection(group_id))
    assert group['memberCount'] == len(group['memberIds']) == len(members)

def test_invite_code_shape():
    for _ in range(50):
        code = generate_invite_code()
        assert len(code) == 6
        assert set(code) <= set(INVITE_CODE_ALPHABET)
    assert len(INVITE_CODE_ALPHABET) == 36
    assert set(INVITE_CODE_ALPHABET) == set(string.ascii_uppercase + string.digits)

async def test_create_group_adds_creator_as_member(store, groups, users):
    group = await groups.create_group(ALICE, "  Morning Focus ", "Early birds")

    assert group.name == "Morning Focus"
    assert group.member_ids == [ALICE]
    assert group.member_count == 1
    assert (await store.get(user_path(ALICE))).get('groupIds') == [group.group_id]
    assert (await store.get(f"{members_collection(group.group_id)}/{ALICE}")).exists
    await assert_consistent(store, group.group_id)

async def test_create_group_rejects_blank_name_and_missing_creator(store, groups, users):
    assert await groups.create_group(ALICE, "   ") is None
    assert await groups.create_group(DAVE, "Ghosts") is None
    assert store.paths("groups") == []

async def test_join_is_case_insensitive_and_keeps_counts(store, groups, users):
    group = await groups.create_group(ALICE, "Readers")

    assert await groups.join_group(BOB, group.invite_code.lower())
    assert await groups.join_group(CAROL, group.invite_code)

    stored = await groups.get_group(group.group_id)
    assert stored.member_count == 3
    assert set(stored.member_ids) == {ALICE, BOB, CAROL}
    assert (await store.get(user_path(BOB))).get('groupIds') == [group.group_id]
    await assert_consistent(store, group.group_id)

async def test_join_rejects_unknown_code_members_and_missing_users(store, groups, users):
    group = await groups.create_group(ALICE, "Readers")

    assert not await groups.join_group(BOB, "ZZZZZZ" if group.invite_code != "ZZZZZZ" else "YYYYYY")
    assert not await groups.join_group(ALICE, group.invite_code)
    assert not await groups.join_group(DAVE, group.invite_code)
    assert (await groups.get_group(group.group_id)).member_count == 1

async def test_leave_updates_group_and_user(store, groups, users):
    group = await groups.create_group(ALICE, "Readers")
    await groups.join_group(BOB, group.invite_code)
    await groups.join_group(CAROL, group.invite_code)

    assert await groups.leave_group(BOB, group.group_id)
    assert not await groups.leave_group(BOB, group.group_id)

    stored = await groups.get_group(group.group_id)
    assert stored.member_count == 2
    assert BOB not in stored.member_ids
    assert (await store.get(user_path(BOB))).get('groupIds') == []
    await assert_consistent(store, group.group_id)

async def test_sole_creator_leaving_deletes_group(store, groups, users):
    group = await groups.create_group(ALICE, "Solo")

    assert await groups.leave_group(ALICE, group.group_id)

    assert not (await store.get(group_path(group.group_id))).exists
    assert store.paths(members_collection(group.group_id)) == []
    assert (await store.get(user_path(ALICE))).get('groupIds') == []

async def test_delete_group_clears_every_member(store, groups, users):
    group = await groups.create_group(ALICE, "Readers")
    await groups.join_group(BOB, group.invite_code)

    assert not await groups.delete_group(group.group_id, requested_by=BOB)
    assert await groups.delete_group(group.group_id, requested_by=ALICE)

    assert store.paths(f"groups/{group.group_id}") == []
    for user_id in (ALICE, BOB):
        assert (await store.get(user_path(user_id))).get('groupIds') == []
    assert not await groups.delete_group(group.group_id)

async def test_group_members_sorted_by_live_focus_hours(store, groups, users):
    group = await groups.create_group(ALICE, "Readers")
    await groups.join_group(BOB, group.invite_code)
    await groups.join_group(CAROL, group.invite_code)
    await store.update(user_path(ALICE), {'focusHours': 50})

    members = await groups.get_group_members(group.group_id)

    assert [member.user_id for member in members] == [ALICE, BOB, CAROL]
    assert members[0].focus_hours == 50

async def test_members_fall_back_to_stored_snapshot(store, groups, users):
    group = await groups.create_group(ALICE, "Readers")
    await groups.join_group(BOB, group.invite_code)
    await store.delete(user_path(BOB))

    members = await groups.get_group_members(group.group_id)

    assert {member.user_id for member in members} == {ALICE, BOB}
    assert next(member for member in members if member.user_id == BOB).full_name == "Bob"

async def test_user_groups_newest_first(groups, users):
    first = await groups.create_group(ALICE, "First")
    await asyncio.sleep(0.01)
    second = await groups.create_group(ALICE, "Second")

    result = await groups.get_user_groups(ALICE)

    assert [group.group_id for group in result] == [second.group_id, first.group_id]
    assert await groups.get_user_groups(BOB) == []

async def test_stream_user_groups_follows_membership(groups, users):
    group = await groups.create_group(ALICE, "Readers")
    stream = groups.stream_user_groups(BOB)
    try:
        assert await stream.__anext__() == []
        await groups.join_group(BOB, group.invite_code)
        joined = await asyncio.wait_for(stream.__anext__(), timeout=1)
        assert [item.group_id for item in joined] == [group.group_id]
    finally:
        await stream.aclose()
