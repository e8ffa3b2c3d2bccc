import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest

from core.memory_store import MemoryDocumentStore
from core.object_storage import MemoryObjectStorage
from models.user import UserData
from services.base import user_path

ALICE = "alice_uid_0000000000001"
BOB = "bob_uid_00000000000000002"
CAROL = "carol_uid_0000000000003"
DAVE = "dave_uid_00000000000000004"

@pytest.fixture
def store():
    return MemoryDocumentStore()

@pytest.fixture
def object_storage():
    return MemoryObjectStorage()

@pytest.fixture
def add_user(store):
    """Записать пользователя в хранилище и вернуть его модель"""

    async def _add(user_id: str, full_name: str = "User", username: str = None, **stats) -> UserData:
        user = UserData.new_user(
            email=f"{user_id[:5]}@example.com",
            full_name=full_name,
            user_id=user_id,
            username=username
        )
        if stats:
            user = user.copy_with(**stats)
        await store.set(user_path(user_id), user.to_dict())
        return user

    return _add
