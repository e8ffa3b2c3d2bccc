#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - Configuration
Централизованная конфигурация с валидацией

Значения читаются из переменных окружения (и файла .env, если он есть).

Версия: 1.0.0
Дата: 2026-10-19
"""

import os
import sys
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum

from dotenv import load_dotenv

load_dotenv()

class Environment(Enum):
    """Среды выполнения"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"

class LogLevel(Enum):
    """Уровни логирования"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

STORE_BACKENDS = ("memory", "firestore")
STORAGE_BACKENDS = ("memory", "gcs")

@dataclass
class StoreConfig:
    """Конфигурация документного хранилища"""
    backend: str = "memory"
    project_id: Optional[str] = None
    database: Optional[str] = None
    emulator_host: Optional[str] = None
    snapshot_path: Optional[Path] = None

@dataclass
class StorageConfig:
    """Конфигурация хранилища изображений"""
    backend: str = "memory"
    bucket: Optional[str] = None
    jpeg_quality: int = 85
    avatar_max_size: int = 512
    banner_max_size: int = 1920

@dataclass
class AuthConfig:
    """Конфигурация провайдера аутентификации"""
    api_key: Optional[str] = None
    base_url: str = "https://identitytoolkit.googleapis.com/v1"
    request_timeout: int = 10
    min_password_length: int = 6

@dataclass
class SocialConfig:
    """Друзья, группы и уведомления"""
    friend_requests_per_hour: int = 10
    search_results_limit: int = 10
    batch_fetch_size: int = 10
    notifications_limit: int = 50

@dataclass
class PerformanceConfig:
    """Производительность"""
    worker_pool_size: int = 2
    cache_ttl_seconds: int = 30
    image_cache_ttl_seconds: int = 3600
    initial_connection_quality: str = "good"

def _env_bool(key: str, default: str = 'false') -> bool:
    return os.getenv(key, default).lower() == 'true'

class AppConfig:
    """Главный класс конфигурации"""

    def __init__(self):
        self.environment = Environment(os.getenv('ENVIRONMENT', 'development'))
        self._load_config()
        self._validate_config()
        self._ensure_directories()

    def _load_config(self):
        """Загрузка конфигурации из переменных окружения"""

        self.data_dir = Path(os.getenv('DATA_DIR', 'data'))
        self.log_dir = Path(os.getenv('LOG_DIR', 'logs'))
        self.timezone = os.getenv('APP_TIMEZONE', 'UTC')

        snapshot = os.getenv('STORE_SNAPSHOT')
        self.store = StoreConfig(
            backend=os.getenv('STORE_BACKEND', 'memory'),
            project_id=os.getenv('GOOGLE_CLOUD_PROJECT'),
            database=os.getenv('FIRESTORE_DATABASE'),
            emulator_host=os.getenv('FIRESTORE_EMULATOR_HOST'),
            snapshot_path=Path(snapshot) if snapshot else None
        )

        self.storage = StorageConfig(
            backend=os.getenv('STORAGE_BACKEND', 'memory'),
            bucket=os.getenv('STORAGE_BUCKET'),
            jpeg_quality=int(os.getenv('IMAGE_JPEG_QUALITY', 85)),
            avatar_max_size=int(os.getenv('AVATAR_MAX_SIZE', 512)),
            banner_max_size=int(os.getenv('BANNER_MAX_SIZE', 1920))
        )

        self.auth = AuthConfig(
            api_key=os.getenv('AUTH_API_KEY'),
            base_url=os.getenv('AUTH_BASE_URL', 'https://identitytoolkit.googleapis.com/v1'),
            request_timeout=int(os.getenv('AUTH_TIMEOUT', 10)),
            min_password_length=int(os.getenv('MIN_PASSWORD_LENGTH', 6))
        )

        self.social = SocialConfig(
            friend_requests_per_hour=int(os.getenv('FRIEND_REQUESTS_PER_HOUR', 10)),
            search_results_limit=int(os.getenv('SEARCH_RESULTS_LIMIT', 10)),
            batch_fetch_size=int(os.getenv('BATCH_FETCH_SIZE', 10)),
            notifications_limit=int(os.getenv('NOTIFICATIONS_LIMIT', 50))
        )

        self.performance = PerformanceConfig(
            worker_pool_size=int(os.getenv('WORKER_POOL_SIZE', 2)),
            cache_ttl_seconds=int(os.getenv('CACHE_TTL', 30)),
            image_cache_ttl_seconds=int(os.getenv('IMAGE_CACHE_TTL', 3600)),
            initial_connection_quality=os.getenv('INITIAL_CONNECTION_QUALITY', 'good').lower()
        )

        # Логирование
        self.log_level = LogLevel(os.getenv('LOG_LEVEL', 'INFO'))
        self.log_to_file = _env_bool('LOG_TO_FILE')
        self.log_format = os.getenv(
            'LOG_FORMAT',
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )

    def _validate_config(self):
        """Валидация конфигурации"""
        errors = []

        if self.store.backend not in STORE_BACKENDS:
            errors.append(f"STORE_BACKEND должен быть одним из: {', '.join(STORE_BACKENDS)}")

        if self.storage.backend not in STORAGE_BACKENDS:
            errors.append(f"STORAGE_BACKEND должен быть одним из: {', '.join(STORAGE_BACKENDS)}")

        if self.storage.backend == "gcs" and not self.storage.bucket:
            errors.append("STORAGE_BUCKET обязателен для STORAGE_BACKEND=gcs")

        if not 1 <= self.storage.jpeg_quality <= 100:
            errors.append(f"IMAGE_JPEG_QUALITY {self.storage.jpeg_quality} вне диапазона (1-100)")

        if self.environment == Environment.PRODUCTION and not self.auth.api_key:
            errors.append("AUTH_API_KEY обязателен в продакшн режиме")

        if self.social.batch_fetch_size < 1 or self.social.batch_fetch_size > 30:
            errors.append("BATCH_FETCH_SIZE должен быть от 1 до 30")

        if self.performance.worker_pool_size < 1:
            errors.append("WORKER_POOL_SIZE должен быть положительным числом")

        if self.performance.initial_connection_quality not in ("offline", "poor", "fair", "good", "excellent"):
            errors.append(f"Неизвестное качество соединения: {self.performance.initial_connection_quality}")

        if errors:
            raise ValueError("Ошибки конфигурации:\n" + "\n".join(f"• {error}" for error in errors))

    def _ensure_directories(self):
        """Создание необходимых директорий"""
        if self.log_to_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        if self.store.snapshot_path:
            self.store.snapshot_path.parent.mkdir(parents=True, exist_ok=True)

    def get_logging_config(self) -> Dict[str, Any]:
        """Получение конфигурации логирования для logging.config.dictConfig"""
        handlers = ['console']
        if self.log_to_file:
            handlers.append('file')

        config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.log_format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': self.log_level.value,
                    'formatter': 'default',
                    'stream': sys.stdout
                }
            },
            'loggers': {
                '': {
                    'level': self.log_level.value,
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

        if self.log_to_file:
            config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.log_level.value,
                'formatter': 'default',
                'filename': str(self.log_dir / f"raw_focus_{self.environment.value}.log"),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf-8'
            }

        for name in ('google', 'urllib3', 'aiohttp.access'):
            config['loggers'][name] = {
                'level': 'WARNING',
                'handlers': handlers,
                'propagate': False
            }

        return config

    def is_development(self) -> bool:
        """Проверка режима разработки"""
        return self.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        """Проверка продакшн режима"""
        return self.environment == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация конфигурации в словарь"""
        return {
            'environment': self.environment.value,
            'store': {
                'backend': self.store.backend,
                'project_id': self.store.project_id,
                'emulator': bool(self.store.emulator_host)
            },
            'storage': {
                'backend': self.storage.backend,
                'bucket': self.storage.bucket
            },
            'auth': {
                'api_key': (self.auth.api_key[:6] + "...") if self.auth.api_key else None,  # Скрываем ключ
                'base_url': self.auth.base_url
            },
            'social': {
                'friend_requests_per_hour': self.social.friend_requests_per_hour,
                'batch_fetch_size': self.social.batch_fetch_size
            },
            'timezone': self.timezone,
            'log_level': self.log_level.value
        }

# Глобальный экземпляр конфигурации
config = AppConfig()

if config.is_development():
    logging.getLogger(__name__).debug(f"⚙️ Конфигурация: {config.to_dict()}")
