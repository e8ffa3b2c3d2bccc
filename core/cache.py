#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - Cache Manager
Кэш в памяти с TTL и объединением одновременных запросов

Версия: 1.0.0
Дата: 2026-10-19
"""

import time
import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

TTLSource = Union[timedelta, Callable[[], timedelta]]

@dataclass
class _CacheEntry(Generic[T]):
    value: T
    expires_at: float

class CacheManager(Generic[T]):
    """TTL-кэш; ttl может быть функцией, например адаптивным TTL соединения"""

    def __init__(self, name: str, ttl: TTLSource = timedelta(seconds=30),
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[str, _CacheEntry[T]] = {}
        self._pending: Dict[str, "asyncio.Future[Optional[T]]"] = {}
        self.hits = 0
        self.misses = 0

    @property
    def ttl(self) -> timedelta:
        return self._ttl() if callable(self._ttl) else self._ttl

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._clock() >= entry.expires_at:
            del self._entries[key]
            self.misses += 1
            logger.debug(f"🔄 Cache[{self.name}]: истёк {key}")
            return None

        self.hits += 1
        return entry.value

    def set(self, key: str, value: T) -> None:
        ttl = self.ttl
        self._entries[key] = _CacheEntry(value, self._clock() + ttl.total_seconds())
        logger.debug(f"💾 Cache[{self.name}]: сохранён {key} (TTL: {int(ttl.total_seconds())}s)")

    async def get_or_fetch(self, key: str, fetcher: Callable[[], Awaitable[Optional[T]]]) -> Optional[T]:
        """Значение из кэша или результат fetcher; повторные вызовы ждут один запрос

        Ошибка fetcher логируется и превращается в None.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        pending = self._pending.get(key)
        if pending is not None:
            logger.debug(f"⏳ Cache[{self.name}]: ожидание запроса {key}")
            return await asyncio.shield(pending)

        future: "asyncio.Future[Optional[T]]" = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        value = None
        try:
            value = await fetcher()
            if value is not None:
                self.set(key, value)
        except Exception as e:
            logger.error(f"❌ Cache[{self.name}]: ошибка загрузки {key}: {e}")
            value = None
        finally:
            self._pending.pop(key, None)
            # Ожидающие получают результат и при отмене запроса
            if not future.done():
                future.set_result(value)

        return value

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self._pending.clear()
        logger.debug(f"🗑️ Cache[{self.name}]: очищено {count} записей")
        return count

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() < entry.expires_at

    def __len__(self) -> int:
        return len(self._entries)

    def values(self):
        now = self._clock()
        return [entry.value for entry in self._entries.values() if now < entry.expires_at]

    def get_stats(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'size': len(self._entries),
            'pending': len(self._pending),
            'ttl_seconds': int(self.ttl.total_seconds()),
            'hits': self.hits,
            'misses': self.misses,
        }
