# services/storage_service.py

import io
import logging
from functools import partial
from typing import Optional

from PIL import Image, ImageOps

from core.connection import ConnectionManager
from core.object_storage import ObjectStorage
from core.store import DocumentStore
from models.enums import ImageKind
from services.base import StoreService, user_path
from utils.worker_pool import WorkerPool, compute

logger = logging.getLogger(__name__)

JPEG_QUALITY = 85
AVATAR_MAX_SIZE = 512
BANNER_MAX_SIZE = 1920

URL_FIELDS = {
    ImageKind.AVATAR: 'avatarUrl',
    ImageKind.BANNER: 'bannerImageUrl',
}

def image_path(user_id: str, kind: ImageKind) -> str:
    return f"users/{user_id}/{kind.value}.jpg"

def compress_image(data: bytes, max_size: int, quality: int = JPEG_QUALITY) -> bytes:
    """Сжать изображение в JPEG, уменьшив длинную сторону до max_size

    Пропорции сохраняются, маленькие изображения не увеличиваются.
    """
    with Image.open(io.BytesIO(data)) as source:
        image = ImageOps.exif_transpose(source)
        if image.mode != "RGB":
            image = image.convert("RGB")
        image.thumbnail((max_size, max_size), Image.LANCZOS)

        output = io.BytesIO()
        image.save(output, format="JPEG", quality=quality, optimize=True)
        return output.getvalue()

class StorageService(StoreService):
    """Загрузка аватаров и баннеров с клиентским сжатием"""

    def __init__(self, store: DocumentStore, storage: ObjectStorage,
                 connection: Optional[ConnectionManager] = None, pool: Optional[WorkerPool] = None,
                 jpeg_quality: int = JPEG_QUALITY, avatar_max_size: int = AVATAR_MAX_SIZE,
                 banner_max_size: int = BANNER_MAX_SIZE):
        super().__init__(store, connection)
        self.storage = storage
        self.pool = pool
        self.jpeg_quality = jpeg_quality
        self.max_sizes = {
            ImageKind.AVATAR: avatar_max_size,
            ImageKind.BANNER: banner_max_size,
        }

    async def _compress(self, data: bytes, kind: ImageKind) -> bytes:
        func = partial(compress_image, max_size=self.max_sizes[kind], quality=self.jpeg_quality)
        label = f"compress_{kind.value}"
        if self.pool is not None:
            return await self.pool.run(func, data, label)
        return await compute(func, data, label)

    async def upload_image(self, user_id: str, data: bytes, kind: ImageKind) -> str:
        """Сжать, загрузить и записать URL в документ пользователя"""
        compressed = await self._compress(data, kind)
        url = await self.storage.upload(image_path(user_id, kind), compressed, content_type="image/jpeg")
        await self._run(self.store.set(user_path(user_id), {URL_FIELDS[kind]: url}, merge=True))

        logger.info(f"📤 {kind.value} загружен для {user_id}: {len(data)} → {len(compressed)} байт")
        return url

    async def upload_avatar(self, user_id: str, data: bytes) -> str:
        return await self.upload_image(user_id, data, ImageKind.AVATAR)

    async def upload_banner(self, user_id: str, data: bytes) -> str:
        return await self.upload_image(user_id, data, ImageKind.BANNER)

    async def delete_image(self, user_id: str, kind: ImageKind) -> bool:
        try:
            deleted = await self.storage.delete(image_path(user_id, kind))
            await self._run(self.store.set(user_path(user_id), {URL_FIELDS[kind]: None}, merge=True))
            return deleted
        except Exception as e:
            logger.error(f"❌ Ошибка удаления {kind.value} для {user_id}: {e}")
            return False
