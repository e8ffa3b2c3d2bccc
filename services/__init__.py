# services/__init__.py

"""
Модуль сервисов RAW Focus

Сервисы данных клиента: пользователи, друзья, группы, достижения,
проекты, уведомления, аутентификация и загрузка изображений.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from config import AppConfig
from core.cache import CacheManager
from core.connection import AdaptivePerformanceSettings, ConnectionManager, ConnectionQuality
from core.memory_store import MemoryDocumentStore
from core.object_storage import MemoryObjectStorage, ObjectStorage
from core.store import DocumentStore
from models.user import UserData
from utils.image_cache import ImageCacheHelper
from utils.logger import setup_logger
from utils.worker_pool import WorkerPoolRegistry

from .achievements_service import AchievementsService
from .auth_service import AuthError, AuthResult, AuthService
from .friends_service import FriendsService
from .groups_service import GroupsService
from .notification_service import NotificationService
from .project_service import ProjectError, ProjectService
from .storage_service import StorageService
from .user_data_service import UserDataService
from .user_profile_service import UserProfileService

logger = logging.getLogger(__name__)

IMAGE_POOL = "images"

def create_store(settings: AppConfig) -> DocumentStore:
    """Документное хранилище по конфигурации"""
    if settings.store.backend == "firestore":
        from core.firestore_store import FirestoreDocumentStore
        return FirestoreDocumentStore(
            project=settings.store.project_id,
            database=settings.store.database,
            emulator_host=settings.store.emulator_host
        )

    snapshot = settings.store.snapshot_path
    if snapshot is not None and snapshot.exists():
        return MemoryDocumentStore.load(snapshot)
    return MemoryDocumentStore()

def create_object_storage(settings: AppConfig) -> ObjectStorage:
    if settings.storage.backend == "gcs":
        from core.object_storage import GCSObjectStorage
        return GCSObjectStorage(settings.storage.bucket, project=settings.store.project_id)
    return MemoryObjectStorage()

class ServiceManager:
    """
    Менеджер для управления всеми сервисами

    Обеспечивает:
    - Создание хранилищ по конфигурации
    - Общий ConnectionManager для всех сервисов
    - Корректное закрытие ресурсов в обратном порядке
    """

    def __init__(self, settings: Optional[AppConfig] = None):
        self.settings = settings
        self.store: Optional[DocumentStore] = None
        self.object_storage: Optional[ObjectStorage] = None
        self.connection: Optional[ConnectionManager] = None
        self.performance: Optional[AdaptivePerformanceSettings] = None
        self.pools: Optional[WorkerPoolRegistry] = None
        self.user_cache: Optional[CacheManager[UserData]] = None
        self.images: Optional[ImageCacheHelper] = None

        self.user_data: Optional[UserDataService] = None
        self.profiles: Optional[UserProfileService] = None
        self.friends: Optional[FriendsService] = None
        self.groups: Optional[GroupsService] = None
        self.achievements: Optional[AchievementsService] = None
        self.projects: Optional[ProjectService] = None
        self.notifications: Optional[NotificationService] = None
        self.storage: Optional[StorageService] = None
        self.auth: Optional[AuthService] = None
        self.initialized = False

    async def initialize_services(self, store: Optional[DocumentStore] = None,
                                  object_storage: Optional[ObjectStorage] = None) -> bool:
        """Инициализация всех сервисов"""
        try:
            logger.info("🔧 Инициализация сервисов RAW Focus...")
            if self.settings is None:
                from config import config
                self.settings = config
            settings = self.settings

            self.store = store or create_store(settings)
            self.object_storage = object_storage or create_object_storage(settings)

            initial = ConnectionQuality[settings.performance.initial_connection_quality.upper()]
            self.connection = ConnectionManager(initial)
            self.performance = AdaptivePerformanceSettings(self.connection)
            self.pools = WorkerPoolRegistry(settings.performance.worker_pool_size)

            default_ttl = timedelta(seconds=settings.performance.cache_ttl_seconds)
            self.user_cache = CacheManager("users", ttl=lambda: self.performance.get_cache_ttl(default_ttl))
            self.images = ImageCacheHelper(
                ttl=timedelta(seconds=settings.performance.image_cache_ttl_seconds),
                timeout=self.connection.request_timeout.total_seconds()
            )

            social = settings.social
            self.storage = StorageService(
                self.store, self.object_storage, self.connection,
                pool=self.pools.get_pool(IMAGE_POOL),
                jpeg_quality=settings.storage.jpeg_quality,
                avatar_max_size=settings.storage.avatar_max_size,
                banner_max_size=settings.storage.banner_max_size
            )
            self.user_data = UserDataService(self.store, self.connection, storage=self.storage)
            self.profiles = UserProfileService(self.store, self.connection)
            self.friends = FriendsService(
                self.store, self.connection,
                requests_per_hour=social.friend_requests_per_hour,
                search_limit=social.search_results_limit,
                batch_size=social.batch_fetch_size,
                user_cache=self.user_cache
            )
            self.groups = GroupsService(
                self.store, self.connection,
                batch_size=social.batch_fetch_size,
                user_cache=self.user_cache
            )
            self.achievements = AchievementsService(self.store, self.connection)
            self.projects = ProjectService(self.store, self.connection)
            self.notifications = NotificationService(self.store, self.connection, limit=social.notifications_limit)
            self.auth = AuthService(
                settings.auth.api_key,
                base_url=settings.auth.base_url,
                timeout=settings.auth.request_timeout,
                min_password_length=settings.auth.min_password_length,
                user_data=self.user_data,
                projects=self.projects
            )

            self.initialized = True
            logger.info(f"✅ Все сервисы инициализированы (хранилище: {settings.store.backend})")
            return True

        except Exception as e:
            logger.error(f"❌ Ошибка инициализации сервисов: {e}")
            await self.close_services()
            return False

    def get_services_info(self) -> Dict[str, Any]:
        """Получить информацию о состоянии сервисов"""
        info: Dict[str, Any] = {
            "initialized": self.initialized,
            "services": {}
        }

        if self.connection is not None:
            info["connection"] = self.connection.get_stats()
        if self.user_cache is not None:
            info["user_cache"] = self.user_cache.get_stats()
        if self.images is not None:
            info["image_cache"] = self.images.get_cache_stats()
        if self.pools is not None:
            info["worker_pools"] = {
                pool_id: self.pools.get_pool(pool_id).get_stats() for pool_id in self.pools.pool_ids()
            }
        if isinstance(self.store, MemoryDocumentStore):
            info["store"] = self.store.stats.to_dict()

        for name in ("user_data", "profiles", "friends", "groups", "achievements",
                     "projects", "notifications", "storage", "auth"):
            if getattr(self, name) is not None:
                info["services"][name] = {"status": "active"}

        return info

    async def close_services(self) -> None:
        """Закрытие всех сервисов"""
        try:
            logger.info("🛑 Закрытие сервисов...")

            if self.auth is not None:
                await self.auth.close()
            if self.images is not None:
                await self.images.close()
            if self.pools is not None:
                await self.pools.dispose_all()
            if self.connection is not None:
                self.connection.close()

            if self.store is not None:
                snapshot = self.settings.store.snapshot_path if self.settings else None
                if snapshot is not None and isinstance(self.store, MemoryDocumentStore):
                    self.store.dump(snapshot)
                await self.store.close()

            self.initialized = False
            logger.info("✅ Все сервисы закрыты")

        except Exception as e:
            logger.error(f"❌ Ошибка закрытия сервисов: {e}")

    async def __aenter__(self) -> "ServiceManager":
        await self.initialize_services()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close_services()

# Глобальный экземпляр менеджера сервисов
_service_manager: Optional[ServiceManager] = None

def get_service_manager() -> ServiceManager:
    """Получить глобальный менеджер сервисов"""
    global _service_manager
    if _service_manager is None:
        _service_manager = ServiceManager()
    return _service_manager

async def initialize_all_services(configure_logging: bool = True) -> bool:
    """Инициализация глобального менеджера; по умолчанию настраивает логирование"""
    manager = get_service_manager()
    if configure_logging:
        from config import config
        setup_logger(
            log_file=str(config.log_dir / "raw_focus.log") if config.log_to_file else None,
            level=config.log_level.value
        )
    return await manager.initialize_services()

async def close_all_services() -> None:
    global _service_manager
    if _service_manager:
        await _service_manager.close_services()
        _service_manager = None

__all__ = [
    'AchievementsService',
    'AuthError',
    'AuthResult',
    'AuthService',
    'FriendsService',
    'GroupsService',
    'NotificationService',
    'ProjectError',
    'ProjectService',
    'StorageService',
    'UserDataService',
    'UserProfileService',
    'ServiceManager',
    'create_store',
    'create_object_storage',
    'get_service_manager',
    'initialize_all_services',
    'close_all_services'
]
