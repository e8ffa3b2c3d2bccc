# services/base.py

"""
Общая основа сервисов, работающих с документным хранилищем
"""

import logging
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from core.cache import CacheManager
from core.connection import ConnectionManager
from core.store import DOCUMENT_ID, DocumentStore, Query, join_path
from models.user import UserData

logger = logging.getLogger(__name__)

USERS = "users"
USER_PROFILES = "user_profiles"
GROUPS = "groups"

# Ограничение оператора "in" у Firestore
DEFAULT_BATCH_FETCH_SIZE = 10

def user_path(user_id: str) -> str:
    return join_path(USERS, user_id)

def friends_collection(user_id: str) -> str:
    return join_path(USERS, user_id, "friends")

def friend_path(user_id: str, peer_id: str) -> str:
    return join_path(USERS, user_id, "friends", peer_id)

def projects_collection(user_id: str) -> str:
    return join_path(USERS, user_id, "projects")

def achievements_collection(user_id: str) -> str:
    return join_path(USERS, user_id, "achievements")

def notifications_collection(user_id: str) -> str:
    return join_path(USERS, user_id, "notifications")

def group_path(group_id: str) -> str:
    return join_path(GROUPS, group_id)

def members_collection(group_id: str) -> str:
    return join_path(GROUPS, group_id, "members")

def chunked(items: List[Any], size: int) -> Iterable[List[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]

class StoreService:
    """Сервис с доступом к хранилищу и учётом качества соединения

    Если передан user_cache, загруженные пользователи кэшируются,
    а при ошибке пакетной загрузки недостающие берутся из кэша.
    """

    def __init__(self, store: DocumentStore, connection: Optional[ConnectionManager] = None,
                 user_cache: Optional[CacheManager[UserData]] = None):
        self.store = store
        self.connection = connection
        self.user_cache = user_cache

    async def _run(self, operation: Awaitable[Any]) -> Any:
        """Выполнить обращение к хранилищу с замером задержки"""
        if self.connection is None:
            return await operation
        return await self.connection.run_measured(operation)

    async def _batch_get_users(self, user_ids: List[str],
                               batch_size: int = DEFAULT_BATCH_FETCH_SIZE) -> Dict[str, UserData]:
        """Пользователи по идентификаторам, не больше batch_size за запрос

        При ошибке возвращает то, что успели загрузить.
        """
        users: Dict[str, UserData] = {}
        unique_ids = list(dict.fromkeys(user_ids))
        if not unique_ids:
            return users

        try:
            for ids in chunked(unique_ids, batch_size):
                snapshots = await self._run(self.store.query(Query(USERS).where(DOCUMENT_ID, "in", ids)))
                for snapshot in snapshots:
                    if snapshot.exists:
                        user = UserData.from_dict(snapshot.to_dict(), user_id=snapshot.id)
                        users[snapshot.id] = user
                        if self.user_cache is not None:
                            self.user_cache.set(snapshot.id, user)
            logger.debug(f"📦 Загружено пользователей: {len(users)}/{len(unique_ids)}")
        except Exception as e:
            logger.error(f"❌ Ошибка пакетной загрузки пользователей: {e}")
            if self.user_cache is not None:
                for user_id in unique_ids:
                    cached = self.user_cache.get(user_id) if user_id not in users else None
                    if cached is not None:
                        users[user_id] = cached

        return users

    async def _get_user(self, user_id: str) -> Optional[UserData]:
        snapshot = await self._run(self.store.get(user_path(user_id)))
        if not snapshot.exists:
            return None
        return UserData.from_dict(snapshot.to_dict(), user_id=user_id)
