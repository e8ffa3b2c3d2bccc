#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - Worker Pool
Фоновое выполнение тяжёлых вычислений вне event loop

- compute(): разовая задача в пуле потоков по умолчанию
- WorkerPool: фиксированное число воркеров и FIFO-очередь ожидания
- WorkerPoolRegistry: именованные пулы

Отмены нет: задача, взятая из очереди, выполняется до конца.

Версия: 1.0.0
Дата: 2026-10-19
"""

import json
import math
import time
import asyncio
import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, asdict
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

class PoolDisposedError(RuntimeError):
    """Пул уже закрыт"""

    def __init__(self, pool_id: str):
        super().__init__(f"Пул '{pool_id}' закрыт")
        self.pool_id = pool_id

async def compute(func: Callable[[Any], Any], arg: Any, label: Optional[str] = None) -> Any:
    """Выполнить func(arg) в фоновом потоке"""
    label = label or "вычисление"
    started = time.monotonic()
    logger.debug(f"🔄 Запуск в фоне: {label}")

    loop = asyncio.get_running_loop()
    try:
        result = await loop.run_in_executor(None, func, arg)
    except Exception as e:
        logger.error(f"❌ Ошибка фоновой задачи {label}: {e}")
        raise

    logger.debug(f"✅ {label} завершено за {int((time.monotonic() - started) * 1000)}ms")
    return result

@dataclass
class _PendingTask:
    func: Callable[[Any], Any]
    arg: Any
    future: asyncio.Future
    label: Optional[str] = None

class WorkerPool:
    """Пул с ограниченным числом одновременно выполняемых задач"""

    def __init__(self, pool_id: str, max_workers: int = 2):
        if max_workers < 1:
            raise ValueError("max_workers должен быть положительным")

        self.pool_id = pool_id
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"pool-{pool_id}")
        self._pending: Deque[_PendingTask] = deque()
        self._running: Set["asyncio.Task[None]"] = set()
        self._busy = 0
        self._completed = 0
        self._disposed = False
        logger.info(f"🏊 Создан пул '{pool_id}' на {max_workers} воркеров")

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def busy(self) -> int:
        return self._busy

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def run(self, func: Callable[[Any], Any], arg: Any, label: Optional[str] = None) -> Any:
        if self._disposed:
            raise PoolDisposedError(self.pool_id)

        # Новая задача не обгоняет уже ожидающие
        if self._busy >= self.max_workers or self._pending:
            future = asyncio.get_running_loop().create_future()
            self._pending.append(_PendingTask(func, arg, future, label))
            logger.debug(f"⏸️ Пул '{self.pool_id}': задача {label or ''} в очереди ({len(self._pending)})")
            return await future

        self._busy += 1
        return await self._execute(func, arg, label)

    async def _execute(self, func: Callable[[Any], Any], arg: Any, label: Optional[str]) -> Any:
        """Выполнить задачу на занятом заранее воркере"""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, func, arg)
        finally:
            self._busy -= 1
            self._completed += 1
            self._process_next()

    def _process_next(self) -> None:
        while self._pending and not self._disposed and self._busy < self.max_workers:
            task = self._pending.popleft()
            if task.future.done():
                continue
            self._busy += 1
            running = asyncio.ensure_future(self._run_queued(task))
            self._running.add(running)
            running.add_done_callback(self._running.discard)

    async def _run_queued(self, task: _PendingTask) -> None:
        logger.debug(f"▶️ Пул '{self.pool_id}': запуск задачи {task.label or ''} из очереди")
        try:
            result = await self._execute(task.func, task.arg, task.label)
        except Exception as e:
            if not task.future.done():
                task.future.set_exception(e)
            return
        if not task.future.done():
            task.future.set_result(result)

    async def dispose(self) -> None:
        """Закрыть пул; ожидающие задачи получают PoolDisposedError"""
        if self._disposed:
            return
        self._disposed = True

        rejected = 0
        while self._pending:
            task = self._pending.popleft()
            if not task.future.done():
                task.future.set_exception(PoolDisposedError(self.pool_id))
                rejected += 1

        self._executor.shutdown(wait=False)
        logger.info(f"🗑️ Пул '{self.pool_id}' закрыт (отклонено задач: {rejected})")

    def get_stats(self) -> Dict[str, Any]:
        return {
            'pool_id': self.pool_id,
            'max_workers': self.max_workers,
            'busy': self._busy,
            'pending': len(self._pending),
            'running': len(self._running),
            'completed': self._completed,
            'disposed': self._disposed,
        }

class WorkerPoolRegistry:
    """Именованные пулы воркеров"""

    def __init__(self, default_workers: int = 2):
        self.default_workers = default_workers
        self._pools: Dict[str, WorkerPool] = {}

    def get_pool(self, pool_id: str, max_workers: Optional[int] = None) -> WorkerPool:
        pool = self._pools.get(pool_id)
        if pool is None:
            pool = WorkerPool(pool_id, max_workers or self.default_workers)
            self._pools[pool_id] = pool
        return pool

    async def run_in_pool(self, pool_id: str, func: Callable[[Any], Any], arg: Any,
                          label: Optional[str] = None) -> Any:
        return await self.get_pool(pool_id).run(func, arg, label)

    async def dispose_pool(self, pool_id: str) -> bool:
        pool = self._pools.pop(pool_id, None)
        if pool is None:
            return False
        await pool.dispose()
        return True

    async def dispose_all(self) -> None:
        pools = list(self._pools.values())
        self._pools.clear()
        for pool in pools:
            await pool.dispose()

    def pool_ids(self) -> List[str]:
        return list(self._pools)

    def __contains__(self, pool_id: str) -> bool:
        return pool_id in self._pools

    def __len__(self) -> int:
        return len(self._pools)

# ===== BACKGROUND TASKS =====

@dataclass
class DataStats:
    """Сводная статистика по выборке"""
    count: int
    sum: float
    mean: float
    min: float
    max: float
    std_dev: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

def _stats(values: List[float]) -> DataStats:
    if not values:
        return DataStats(count=0, sum=0.0, mean=0.0, min=0.0, max=0.0, std_dev=0.0)

    count = len(values)
    total = float(sum(values))
    mean = total / count
    variance = sum((value - mean) ** 2 for value in values) / count
    return DataStats(
        count=count,
        sum=total,
        mean=mean,
        min=float(min(values)),
        max=float(max(values)),
        std_dev=math.sqrt(variance)
    )

class BackgroundTasks:
    """Типовые тяжёлые операции, выполняемые через compute()"""

    @staticmethod
    async def parse_json(text: str) -> Any:
        return await compute(json.loads, text, "Разбор JSON")

    @staticmethod
    async def encode_json(data: Any) -> str:
        return await compute(lambda value: json.dumps(value, ensure_ascii=False, default=str), data, "Сериализация JSON")

    @staticmethod
    async def sort_list(items: Iterable[Any], key: Optional[Callable[[Any], Any]] = None,
                        reverse: bool = False) -> List[Any]:
        return await compute(lambda values: sorted(values, key=key, reverse=reverse), list(items), "Сортировка")

    @staticmethod
    async def filter_list(items: Iterable[Any], predicate: Callable[[Any], bool]) -> List[Any]:
        return await compute(lambda values: [value for value in values if predicate(value)], list(items), "Фильтрация")

    @staticmethod
    async def map_list(items: Iterable[Any], mapper: Callable[[Any], Any]) -> List[Any]:
        return await compute(lambda values: [mapper(value) for value in values], list(items), "Преобразование")

    @staticmethod
    async def compute_stats(values: Iterable[float]) -> DataStats:
        return await compute(_stats, list(values), "Статистика")
