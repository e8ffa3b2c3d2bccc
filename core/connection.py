#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - Connection Quality
Оценка качества соединения и адаптивные параметры загрузки

Качество понижается сразу, если замер хуже текущего уровня больше чем
на один шаг, а повышается строго на один уровень за замер.

Версия: 1.0.0
Дата: 2026-10-19
"""

import math
import time
import asyncio
import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import IntEnum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

class ConnectionQuality(IntEnum):
    """Уровни качества соединения (по возрастанию)"""
    OFFLINE = 0
    POOR = 1
    FAIR = 2
    GOOD = 3
    EXCELLENT = 4

    @property
    def description(self) -> str:
        return {
            ConnectionQuality.OFFLINE: "Нет соединения",
            ConnectionQuality.POOR: "Плохое соединение",
            ConnectionQuality.FAIR: "Среднее соединение",
            ConnectionQuality.GOOD: "Хорошее соединение",
            ConnectionQuality.EXCELLENT: "Отличное соединение",
        }[self]

# ===== POLICY TABLES =====

CACHE_TTL = {
    ConnectionQuality.EXCELLENT: timedelta(seconds=30),
    ConnectionQuality.GOOD: timedelta(seconds=60),
    ConnectionQuality.FAIR: timedelta(minutes=2),
    ConnectionQuality.POOR: timedelta(minutes=5),
    ConnectionQuality.OFFLINE: timedelta(hours=1),
}

BATCH_SIZE = {
    ConnectionQuality.EXCELLENT: 50,
    ConnectionQuality.GOOD: 50,
    ConnectionQuality.FAIR: 25,
    ConnectionQuality.POOR: 10,
    ConnectionQuality.OFFLINE: 1,
}

PREFETCH_COUNT = {
    ConnectionQuality.EXCELLENT: 10,
    ConnectionQuality.GOOD: 5,
    ConnectionQuality.FAIR: 2,
    ConnectionQuality.POOR: 0,
    ConnectionQuality.OFFLINE: 0,
}

IMAGE_QUALITY = {
    ConnectionQuality.EXCELLENT: 1.0,
    ConnectionQuality.GOOD: 1.0,
    ConnectionQuality.FAIR: 0.75,
    ConnectionQuality.POOR: 0.5,
    ConnectionQuality.OFFLINE: 0.5,
}

REQUEST_TIMEOUT = {
    ConnectionQuality.EXCELLENT: timedelta(seconds=10),
    ConnectionQuality.GOOD: timedelta(seconds=10),
    ConnectionQuality.FAIR: timedelta(seconds=15),
    ConnectionQuality.POOR: timedelta(seconds=30),
    ConnectionQuality.OFFLINE: timedelta(seconds=5),
}

PAGE_SIZE_FACTOR = {
    ConnectionQuality.EXCELLENT: 1.0,
    ConnectionQuality.GOOD: 1.0,
    ConnectionQuality.FAIR: 0.75,
    ConnectionQuality.POOR: 0.5,
    ConnectionQuality.OFFLINE: 0.0,
}

MAX_IMAGE_DIMENSION = 10000

def round_half_up(value: float) -> int:
    """Округление половины вверх (2.5 -> 3)"""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def quality_for_latency(latency: timedelta) -> ConnectionQuality:
    """Уровень, который подсказывает одиночный замер задержки"""
    ms = latency.total_seconds() * 1000
    if ms < 100:
        return ConnectionQuality.EXCELLENT
    if ms < 300:
        return ConnectionQuality.GOOD
    if ms < 1000:
        return ConnectionQuality.FAIR
    return ConnectionQuality.POOR

QualityListener = Callable[[ConnectionQuality], None]

class ConnectionManager:
    """Текущее качество соединения и производные параметры"""

    def __init__(self, initial: ConnectionQuality = ConnectionQuality.GOOD):
        self._quality = initial
        self._listeners: List[QualityListener] = []
        self._queues: List[asyncio.Queue] = []

    @property
    def quality(self) -> ConnectionQuality:
        return self._quality

    # ----- подписки -----

    def add_listener(self, listener: QualityListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: QualityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def stream(self) -> AsyncIterator[ConnectionQuality]:
        """Поток изменений качества"""
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._queues.remove(queue)

    # ----- переходы -----

    def update_quality(self, quality: ConnectionQuality) -> None:
        if quality == self._quality:
            return

        self._quality = quality
        logger.info(f"📡 Качество соединения: {quality.name.lower()}")

        for listener in list(self._listeners):
            try:
                listener(quality)
            except Exception as e:
                logger.error(f"❌ Ошибка в обработчике качества соединения: {e}")
        for queue in self._queues:
            queue.put_nowait(quality)

    def measure_latency(self, latency: timedelta) -> None:
        """Учесть замер задержки"""
        suggested = quality_for_latency(latency)

        if suggested < self._quality - 1:
            self.update_quality(suggested)
        elif suggested > self._quality:
            self.update_quality(ConnectionQuality(self._quality + 1))

    def set_offline(self) -> None:
        self.update_quality(ConnectionQuality.OFFLINE)

    def set_online(self) -> None:
        # После восстановления сети всегда GOOD, а не последний известный уровень
        if self._quality == ConnectionQuality.OFFLINE:
            self.update_quality(ConnectionQuality.GOOD)

    # ----- параметры -----

    @property
    def recommended_cache_ttl(self) -> timedelta:
        return CACHE_TTL[self._quality]

    @property
    def recommended_batch_size(self) -> int:
        return BATCH_SIZE[self._quality]

    @property
    def recommended_prefetch_count(self) -> int:
        return PREFETCH_COUNT[self._quality]

    @property
    def image_quality_multiplier(self) -> float:
        return IMAGE_QUALITY[self._quality]

    @property
    def request_timeout(self) -> timedelta:
        return REQUEST_TIMEOUT[self._quality]

    @property
    def should_prefetch(self) -> bool:
        return self._quality >= ConnectionQuality.GOOD

    @property
    def should_load_high_quality_images(self) -> bool:
        return self._quality >= ConnectionQuality.GOOD

    async def run_measured(self, operation: Awaitable[Any]) -> Any:
        """Выполнить операцию с адаптивным таймаутом и учесть её задержку

        Любая ошибка (включая таймаут) переводит качество в POOR и
        пробрасывается дальше. Повторов нет.
        """
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(operation, timeout=self.request_timeout.total_seconds())
        except Exception:
            self.update_quality(ConnectionQuality.POOR)
            raise

        self.measure_latency(timedelta(seconds=time.monotonic() - started))
        return result

    def get_stats(self) -> Dict[str, Any]:
        return {
            'quality': self._quality.name.lower(),
            'cache_ttl_seconds': int(self.recommended_cache_ttl.total_seconds()),
            'batch_size': self.recommended_batch_size,
            'prefetch_count': self.recommended_prefetch_count,
            'image_quality': self.image_quality_multiplier,
            'timeout_seconds': int(self.request_timeout.total_seconds()),
            'listeners': len(self._listeners) + len(self._queues),
        }

    def close(self) -> None:
        self._listeners.clear()

class AdaptivePerformanceSettings:
    """Параметры интерфейса и загрузки в зависимости от соединения"""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    def get_cache_ttl(self, default: Optional[timedelta] = None) -> timedelta:
        connection_ttl = self.manager.recommended_cache_ttl
        if default is None:
            return connection_ttl
        return max(connection_ttl, default)

    def should_prefetch(self) -> bool:
        return self.manager.should_prefetch

    def get_adaptive_image_dimension(self, dimension: Optional[float]) -> Optional[int]:
        if dimension is None:
            return None

        result = dimension * self.manager.image_quality_multiplier
        if not math.isfinite(result) or result <= 0 or result > MAX_IMAGE_DIMENSION:
            return None
        return round_half_up(result)

    def get_list_page_size(self, default: int = 20) -> int:
        return round_half_up(default * PAGE_SIZE_FACTOR[self.manager.quality])

    def should_show_connection_warning(self) -> bool:
        return self.manager.quality <= ConnectionQuality.FAIR
