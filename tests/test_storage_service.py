import io

import pytest
from PIL import Image

from models.enums import ImageKind
from services.storage_service import StorageService, compress_image, image_path
from services.user_data_service import UserDataService
from tests.conftest import ALICE
from utils.worker_pool import WorkerPool

def make_image(width: int, height: int, mode: str = "RGBA") -> bytes:
    output = io.BytesIO()
    Image.new(mode, (width, height), color=(200, 30, 30, 255) if mode == "RGBA" else 128).save(output, format="PNG")
    return output.getvalue()

def open_image(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))

@pytest.fixture
def storage(store, object_storage):
    return StorageService(store, object_storage)

def test_compress_image_keeps_aspect_ratio():
    compressed = open_image(compress_image(make_image(2000, 1000), max_size=512))

    assert compressed.format == "JPEG"
    assert compressed.mode == "RGB"
    assert compressed.size == (512, 256)

def test_small_images_are_not_upscaled():
    compressed = open_image(compress_image(make_image(100, 80, mode="L"), max_size=512))

    assert compressed.size == (100, 80)

def test_image_path():
    assert image_path(ALICE, ImageKind.AVATAR) == f"users/{ALICE}/avatar.jpg"
    assert image_path(ALICE, ImageKind.BANNER) == f"users/{ALICE}/banner.jpg"

async def test_upload_avatar_stores_url(storage, store, object_storage, add_user):
    await add_user(ALICE, "Alice")

    url = await storage.upload_avatar(ALICE, make_image(1024, 1024))

    assert object_storage.paths() == [f"users/{ALICE}/avatar.jpg"]
    assert url.endswith("avatar.jpg")
    snapshot = await store.get(f"users/{ALICE}")
    assert snapshot.get('avatarUrl') == url
    assert snapshot.get('fullName') == "Alice"

    uploaded = open_image(await object_storage.download(f"users/{ALICE}/avatar.jpg"))
    assert max(uploaded.size) == 512

async def test_upload_banner_through_worker_pool(store, object_storage):
    pool = WorkerPool("images", max_workers=1)
    storage = StorageService(store, object_storage, pool=pool)

    url = await storage.upload_banner(ALICE, make_image(3840, 2160))

    uploaded = open_image(await object_storage.download(f"users/{ALICE}/banner.jpg"))
    assert uploaded.size == (1920, 1080)
    assert (await store.get(f"users/{ALICE}")).get('bannerImageUrl') == url
    assert pool.get_stats()['completed'] == 1
    await pool.dispose()

async def test_delete_image_clears_url(storage, store, object_storage):
    await storage.upload_avatar(ALICE, make_image(64, 64))

    assert await storage.delete_image(ALICE, ImageKind.AVATAR)
    assert object_storage.paths() == []
    assert (await store.get(f"users/{ALICE}")).get('avatarUrl') is None

async def test_user_data_upload_returns_none_on_bad_image(store, storage):
    user_data = UserDataService(store, storage=storage)

    assert await user_data.upload_avatar(ALICE, b"not an image") is None
    assert await user_data.upload_avatar(ALICE, make_image(32, 32)) is not None
