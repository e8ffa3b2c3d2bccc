#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - Object Storage
Хранилище бинарных объектов (аватары, баннеры)

Версия: 1.0.0
Дата: 2026-10-19
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import quote

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import storage as gcs

logger = logging.getLogger(__name__)

class ObjectStorageError(Exception):
    """Ошибка хранилища объектов"""
    pass

@dataclass
class StoredObject:
    """Загруженный объект"""
    path: str
    data: bytes
    content_type: str
    uploaded_at: datetime

    @property
    def size(self) -> int:
        return len(self.data)

class ObjectStorage(ABC):
    """Базовый класс хранилища объектов"""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        """Загрузить объект и вернуть URL для скачивания"""
        pass

    @abstractmethod
    async def download(self, path: str) -> Optional[bytes]:
        pass

    @abstractmethod
    async def delete(self, path: str) -> bool:
        pass

class MemoryObjectStorage(ObjectStorage):
    """Хранилище объектов в памяти процесса"""

    def __init__(self, base_url: str = "memory://raw-focus"):
        self.base_url = base_url.rstrip("/")
        self.objects: Dict[str, StoredObject] = {}

    async def upload(self, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        path = path.strip("/")
        self.objects[path] = StoredObject(path, bytes(data), content_type, datetime.now())
        return f"{self.base_url}/{quote(path)}"

    async def download(self, path: str) -> Optional[bytes]:
        stored = self.objects.get(path.strip("/"))
        return stored.data if stored else None

    async def delete(self, path: str) -> bool:
        return self.objects.pop(path.strip("/"), None) is not None

    def paths(self) -> List[str]:
        return sorted(self.objects)

class GCSObjectStorage(ObjectStorage):
    """Cloud Storage; блокирующие вызовы клиента выполняются в executor"""

    def __init__(self, bucket_name: str, project: Optional[str] = None,
                 client: Optional[gcs.Client] = None):
        self._client = client or gcs.Client(project=project)
        self._bucket = self._client.bucket(bucket_name)

    async def _call(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, lambda: func(*args, **kwargs))
        except GoogleAPICallError as e:
            raise ObjectStorageError(str(e)) from e

    async def upload(self, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        blob = self._bucket.blob(path.strip("/"))
        await self._call(blob.upload_from_string, data, content_type=content_type)
        logger.info(f"☁️ Загружен объект {blob.name} ({len(data)} байт)")
        return blob.public_url

    async def download(self, path: str) -> Optional[bytes]:
        blob = self._bucket.blob(path.strip("/"))
        if not await self._call(blob.exists):
            return None
        return await self._call(blob.download_as_bytes)

    async def delete(self, path: str) -> bool:
        blob = self._bucket.blob(path.strip("/"))
        if not await self._call(blob.exists):
            return False
        await self._call(blob.delete)
        return True
