# services/user_data_service.py

import logging
from typing import AsyncIterator, Optional

from core.connection import ConnectionManager
from core.store import DocumentStore
from models.user import UserData
from services.base import StoreService, user_path
from services.storage_service import StorageService

logger = logging.getLogger(__name__)

class UserDataService(StoreService):
    """
    Профиль и статистика пользователя в одном документе users/{uid}

    Сохранение идёт слиянием, поэтому поля, которых нет в модели
    (например ссылки, записанные другими сервисами), не затираются.
    """

    def __init__(self, store: DocumentStore, connection: Optional[ConnectionManager] = None,
                 storage: Optional[StorageService] = None):
        super().__init__(store, connection)
        self.storage = storage

    async def load_user_data(self, user_id: str) -> Optional[UserData]:
        try:
            user = await self._get_user(user_id)
            if user is None:
                logger.warning(f"⚠️ Нет данных пользователя {user_id}")
                return None
            logger.debug(f"📥 Данные {user_id}: серия {user.day_streak}, часов {user.focus_hours}")
            return user
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки данных {user_id}: {e}")
            return None

    async def save_user_data(self, user_id: str, user_data: UserData) -> None:
        try:
            await self._run(self.store.set(user_path(user_id), user_data.to_dict(), merge=True))
            logger.info(f"💾 Данные пользователя {user_id} сохранены")
        except Exception as e:
            logger.error(f"❌ Ошибка сохранения данных {user_id}: {e}")
            raise

    async def delete_user_data(self, user_id: str) -> None:
        try:
            await self._run(self.store.delete(user_path(user_id)))
            logger.info(f"🗑️ Данные пользователя {user_id} удалены")
        except Exception as e:
            logger.error(f"❌ Ошибка удаления данных {user_id}: {e}")
            raise

    async def stream_user_data(self, user_id: str) -> AsyncIterator[Optional[UserData]]:
        async for snapshot in self.store.watch(user_path(user_id)):
            if not snapshot.exists:
                yield None
            else:
                yield UserData.from_dict(snapshot.to_dict(), user_id=user_id)

    async def upload_avatar(self, user_id: str, data: bytes) -> Optional[str]:
        """URL загруженного аватара или None при ошибке"""
        if self.storage is None:
            logger.warning("⚠️ Хранилище изображений не настроено")
            return None
        try:
            return await self.storage.upload_avatar(user_id, data)
        except Exception as e:
            logger.error(f"❌ Не удалось загрузить аватар {user_id}: {e}")
            return None

    async def upload_banner(self, user_id: str, data: bytes) -> Optional[str]:
        if self.storage is None:
            logger.warning("⚠️ Хранилище изображений не настроено")
            return None
        try:
            return await self.storage.upload_banner(user_id, data)
        except Exception as e:
            logger.error(f"❌ Не удалось загрузить баннер {user_id}: {e}")
            return None
