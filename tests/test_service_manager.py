from core.connection import ConnectionQuality
from core.memory_store import MemoryDocumentStore
from config import AppConfig
from services import ServiceManager, create_store
from tests.conftest import ALICE

async def test_initialize_with_memory_backends(store, object_storage):
    manager = ServiceManager(AppConfig())

    assert await manager.initialize_services(store=store, object_storage=object_storage)
    assert manager.store is store
    assert manager.friends.user_cache is manager.user_cache
    assert manager.groups.user_cache is manager.user_cache

    info = manager.get_services_info()
    assert info['initialized']
    assert set(info['services']) == {
        "user_data", "profiles", "friends", "groups", "achievements",
        "projects", "notifications", "storage", "auth",
    }
    assert "images" in info['worker_pools']
    assert info['connection']['quality'] == "good"

    await manager.close_services()
    assert not manager.initialized

async def test_user_cache_ttl_follows_connection_quality(store, object_storage):
    manager = ServiceManager(AppConfig())
    await manager.initialize_services(store=store, object_storage=object_storage)

    good_ttl = manager.user_cache.ttl
    manager.connection.update_quality(ConnectionQuality.POOR)

    assert manager.user_cache.ttl > good_ttl
    await manager.close_services()

async def test_context_manager_dumps_memory_snapshot(monkeypatch, tmp_path):
    snapshot = tmp_path / "store.json"
    monkeypatch.setenv("STORE_SNAPSHOT", str(snapshot))
    settings = AppConfig()

    async with ServiceManager(settings) as manager:
        await manager.projects.initialize_default_project(ALICE)

    assert snapshot.exists()
    restored = create_store(settings)
    assert isinstance(restored, MemoryDocumentStore)
    assert restored.paths() == [f"users/{ALICE}/projects/unset"]
