import asyncio

import pytest

from models.profile import UserProfile
from models.user import UserData
from services.user_data_service import UserDataService
from services.user_profile_service import UserProfileService
from tests.conftest import ALICE, BOB

@pytest.fixture
def user_data(store):
    return UserDataService(store)

@pytest.fixture
def profiles(store):
    return UserProfileService(store)

async def test_save_and_load_user_data(user_data):
    user = UserData.new_user("alice@example.com", "Alice", username="AliceW")

    await user_data.save_user_data(ALICE, user.copy_with(day_streak=4, focus_hours=12))

    loaded = await user_data.load_user_data(ALICE)
    assert loaded.user_id == ALICE
    assert loaded.username == "alicew"
    assert loaded.day_streak == 4
    assert loaded.focus_hours == 12
    assert len(loaded.daily_activity_data) == 365

async def test_save_merges_with_existing_fields(user_data, store):
    await store.set(f"users/{ALICE}", {'fullName': "Old", 'customField': "keep"})

    await user_data.save_user_data(ALICE, UserData.new_user("alice@example.com", "Alice"))

    snapshot = await store.get(f"users/{ALICE}")
    assert snapshot.get('fullName') == "Alice"
    assert snapshot.get('customField') == "keep"

async def test_missing_user_loads_as_none(user_data):
    assert await user_data.load_user_data(BOB) is None

async def test_delete_user_data(user_data, add_user):
    await add_user(ALICE, "Alice")

    await user_data.delete_user_data(ALICE)

    assert await user_data.load_user_data(ALICE) is None

async def test_stream_user_data(user_data, add_user):
    stream = user_data.stream_user_data(ALICE)
    try:
        assert await stream.__anext__() is None

        await add_user(ALICE, "Alice", focus_hours=3)
        user = await asyncio.wait_for(stream.__anext__(), timeout=1)
        assert user.full_name == "Alice"
        assert user.focus_hours == 3
    finally:
        await stream.aclose()

async def test_uploads_without_storage_return_none(user_data):
    assert await user_data.upload_avatar(ALICE, b"data") is None
    assert await user_data.upload_banner(ALICE, b"data") is None

async def test_profile_round_trip(profiles, store):
    profile = UserProfile.new_user("Alice").copy_with(onboarding_completed=True)

    await profiles.save_user_profile(ALICE, profile)

    loaded = await profiles.load_user_profile(ALICE)
    assert loaded.full_name == "Alice"
    assert loaded.onboarding_completed
    assert (await store.get(f"user_profiles/{ALICE}")).exists

async def test_has_completed_onboarding(profiles):
    assert not await profiles.has_completed_onboarding(ALICE)

    await profiles.save_user_profile(ALICE, UserProfile.new_user())
    assert not await profiles.has_completed_onboarding(ALICE)

    await profiles.save_user_profile(ALICE, UserProfile.new_user().copy_with(onboarding_completed=True))
    assert await profiles.has_completed_onboarding(ALICE)

async def test_delete_profile(profiles):
    await profiles.save_user_profile(ALICE, UserProfile.new_user("Alice"))

    await profiles.delete_user_profile(ALICE)

    assert await profiles.load_user_profile(ALICE) is None
