#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - Image Cache Helper
Предзагрузка сетевых изображений и размеры кэша декодирования

Версия: 1.0.0
Дата: 2026-10-19
"""

import math
import time
import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, Iterable, Optional

import aiohttp

from core.cache import CacheManager, TTLSource
from core.connection import round_half_up

logger = logging.getLogger(__name__)

MAX_CACHE_DIMENSION = 10000

# Множители размеров относительно логического размера виджета
MEMORY_CACHE_MULTIPLIER = 2
DISK_CACHE_MULTIPLIER = 3

def safe_dimension_to_int(value: Optional[float], multiplier: float) -> Optional[int]:
    """Размер в пикселях или None, если результат не конечен, не положителен или слишком велик"""
    if value is None:
        return None
    result = value * multiplier
    if not math.isfinite(result) or result <= 0 or result > MAX_CACHE_DIMENSION:
        return None
    return round_half_up(result)

def is_network_image(path: str) -> bool:
    return path.startswith("http://") or path.startswith("https://")

def cache_dimensions(width: Optional[float] = None, height: Optional[float] = None) -> Dict[str, Optional[int]]:
    return {
        'memory_width': safe_dimension_to_int(width, MEMORY_CACHE_MULTIPLIER),
        'memory_height': safe_dimension_to_int(height, MEMORY_CACHE_MULTIPLIER),
        'disk_width': safe_dimension_to_int(width, DISK_CACHE_MULTIPLIER),
        'disk_height': safe_dimension_to_int(height, DISK_CACHE_MULTIPLIER),
    }

class ImageCacheHelper:
    """Кэш байтов сетевых изображений поверх aiohttp"""

    def __init__(self, ttl: TTLSource = timedelta(hours=1), timeout: float = 10.0,
                 session: Optional[aiohttp.ClientSession] = None):
        self.cache: CacheManager[bytes] = CacheManager("images", ttl=ttl)
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self.failed = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _fetch(self, url: str) -> Optional[bytes]:
        """Загрузка одного изображения; любая неудача учитывается в failed"""
        session = await self._get_session()
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    logger.warning(f"⚠️ Изображение недоступно ({response.status}): {url}")
                    self.failed += 1
                    return None
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError):
            self.failed += 1
            raise

    async def preload_image(self, url: str) -> Optional[bytes]:
        """Загрузить одно изображение в кэш; локальные пути пропускаются"""
        if not is_network_image(url):
            return None
        return await self.cache.get_or_fetch(url, lambda: self._fetch(url))

    async def preload_network_images(self, urls: Iterable[str]) -> int:
        """Параллельная предзагрузка; возвращает число изображений в кэше"""
        network_urls = [url for url in dict.fromkeys(urls) if is_network_image(url)]
        if not network_urls:
            return 0

        logger.info(f"🖼️ Предзагрузка {len(network_urls)} изображений...")
        started = time.monotonic()

        results = await asyncio.gather(
            *(self.preload_image(url) for url in network_urls),
            return_exceptions=True
        )
        loaded = sum(1 for result in results if isinstance(result, bytes))

        logger.info(f"✅ Загружено {loaded}/{len(network_urls)} изображений за "
                    f"{int((time.monotonic() - started) * 1000)}ms")
        return loaded

    def get_cached(self, url: str) -> Optional[bytes]:
        return self.cache.get(url)

    def clear_cache(self) -> int:
        count = self.cache.clear()
        logger.info(f"🗑️ Кэш изображений очищен ({count})")
        return count

    def get_cache_stats(self) -> Dict[str, Any]:
        stats = self.cache.get_stats()
        stats['failed'] = self.failed
        stats['bytes'] = sum(len(value) for value in self.cache.values())
        return stats

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
