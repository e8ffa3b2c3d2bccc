#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - In-Memory Document Store
Хранилище документов в памяти процесса для разработки и тестов

Версия: 1.0.0
Дата: 2026-10-19
"""

import json
import copy
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple, Union

from core.store import (
    DOCUMENT_ID, ArrayRemove, ArrayUnion, BatchCommitError, DocumentNotFoundError,
    DocumentSnapshot, DocumentStore, Filter, Increment, Query, WriteOperation,
    document_id, parent_collection, split_path, validate_document_path,
)

logger = logging.getLogger(__name__)

@dataclass
class MemoryStoreStats:
    """Статистика обращений к хранилищу"""
    reads: int = 0
    queries: int = 0
    writes: int = 0
    commits: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'reads': self.reads,
            'queries': self.queries,
            'writes': self.writes,
            'commits': self.commits
        }

def apply_fields(target: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    """Применить значения и трансформации полей к документу"""
    for key, value in data.items():
        current = target.get(key)
        if isinstance(value, ArrayUnion):
            items = list(current) if isinstance(current, list) else []
            for item in value.values:
                if item not in items:
                    items.append(copy.deepcopy(item))
            target[key] = items
        elif isinstance(value, ArrayRemove):
            items = list(current) if isinstance(current, list) else []
            target[key] = [item for item in items if item not in value.values]
        elif isinstance(value, Increment):
            base = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
            target[key] = base + value.amount
        else:
            target[key] = copy.deepcopy(value)
    return target

def _matches(snapshot_id: str, data: Dict[str, Any], condition: Filter) -> bool:
    if condition.field == DOCUMENT_ID:
        present, actual = True, snapshot_id
    else:
        present, actual = condition.field in data, data.get(condition.field)

    if condition.op == "==":
        return present and actual == condition.value
    if condition.op == "!=":
        return present and actual is not None and actual != condition.value
    if condition.op == "in":
        return present and actual in condition.value
    if condition.op == "not-in":
        return present and actual is not None and actual not in condition.value
    if condition.op == "array_contains":
        return isinstance(actual, list) and condition.value in actual

    if not present or actual is None:
        return False
    try:
        if condition.op == "<":
            return actual < condition.value
        if condition.op == "<=":
            return actual <= condition.value
        if condition.op == ">":
            return actual > condition.value
        if condition.op == ">=":
            return actual >= condition.value
    except TypeError:
        # Значения разных типов не сравниваются
        return False
    return False

def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Тип {type(value).__name__} не сериализуется в JSON")

class MemoryDocumentStore(DocumentStore):
    """Документное хранилище в памяти с атомарными групповыми записями"""

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._document_watchers: Dict[str, List[asyncio.Queue]] = {}
        self._query_watchers: List[Tuple[Query, asyncio.Queue]] = []
        self.stats = MemoryStoreStats()

        for path, data in (documents or {}).items():
            self._documents[validate_document_path(path)] = copy.deepcopy(data)

    # ----- чтение -----

    async def get(self, path: str) -> DocumentSnapshot:
        path = validate_document_path(path)
        self.stats.reads += 1
        return self._snapshot(path)

    async def query(self, query: Query) -> List[DocumentSnapshot]:
        self.stats.queries += 1
        return self._run_query(self._documents, query)

    def _snapshot(self, path: str) -> DocumentSnapshot:
        data = self._documents.get(path)
        return DocumentSnapshot(path=path, data=copy.deepcopy(data) if data is not None else None)

    def _run_query(self, documents: Dict[str, Dict[str, Any]], query: Query) -> List[DocumentSnapshot]:
        results = []
        for path, data in documents.items():
            if len(split_path(path)) % 2 != 0 or parent_collection(path) != query.collection:
                continue
            if all(_matches(document_id(path), data, condition) for condition in query.filters):
                results.append((path, data))

        if query.order_field:
            # Документы без поля сортировки не попадают в выборку
            results = [item for item in results if item[1].get(query.order_field) is not None]
            results.sort(key=lambda item: item[1][query.order_field], reverse=query.descending)
        else:
            results.sort(key=lambda item: item[0])

        if query.limit_count is not None:
            results = results[:query.limit_count]

        return [DocumentSnapshot(path=path, data=copy.deepcopy(data)) for path, data in results]

    # ----- запись -----

    async def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self.commit([WriteOperation("set", validate_document_path(path), dict(data), merge)])

    async def update(self, path: str, data: Dict[str, Any]) -> None:
        path = validate_document_path(path)
        if path not in self._documents:
            raise DocumentNotFoundError(path)
        await self.commit([WriteOperation("update", path, dict(data))])

    async def delete(self, path: str) -> None:
        await self.commit([WriteOperation("delete", validate_document_path(path))])

    async def commit(self, operations: List[WriteOperation]) -> None:
        """Применить операции к копии данных и подменить состояние целиком"""
        staged = dict(self._documents)
        touched = []

        for operation in operations:
            if operation.kind == "set":
                base = copy.deepcopy(staged.get(operation.path, {})) if operation.merge else {}
                staged[operation.path] = apply_fields(base, operation.data or {})
            elif operation.kind == "update":
                if operation.path not in staged:
                    raise BatchCommitError(f"Документ не найден: {operation.path}")
                staged[operation.path] = apply_fields(copy.deepcopy(staged[operation.path]), operation.data or {})
            elif operation.kind == "delete":
                staged.pop(operation.path, None)
            else:
                raise BatchCommitError(f"Неизвестная операция: {operation.kind}")
            touched.append(operation.path)

        self._documents = staged
        self.stats.writes += len(operations)
        self.stats.commits += 1
        self._notify(touched)

    # ----- подписки -----

    def _notify(self, paths: List[str]) -> None:
        for path in dict.fromkeys(paths):
            for queue in self._document_watchers.get(path, []):
                queue.put_nowait(self._snapshot(path))

        collections = {parent_collection(path) for path in paths}
        for query, queue in self._query_watchers:
            if query.collection in collections:
                queue.put_nowait(self._run_query(self._documents, query))

    async def watch(self, path: str) -> AsyncIterator[DocumentSnapshot]:
        path = validate_document_path(path)
        queue: asyncio.Queue = asyncio.Queue()
        self._document_watchers.setdefault(path, []).append(queue)
        try:
            yield self._snapshot(path)
            while True:
                yield await queue.get()
        finally:
            self._document_watchers[path].remove(queue)
            if not self._document_watchers[path]:
                del self._document_watchers[path]

    async def watch_query(self, query: Query) -> AsyncIterator[List[DocumentSnapshot]]:
        queue: asyncio.Queue = asyncio.Queue()
        entry = (query, queue)
        self._query_watchers.append(entry)
        try:
            yield self._run_query(self._documents, query)
            while True:
                yield await queue.get()
        finally:
            self._query_watchers.remove(entry)

    # ----- служебное -----

    def paths(self, prefix: str = "") -> List[str]:
        """Пути всех документов с заданным префиксом"""
        prefix = prefix.strip("/")
        return sorted(path for path in self._documents if path.startswith(prefix))

    def dump(self, target: Union[str, Path]) -> Path:
        """Сохранить снимок хранилища в JSON"""
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(self._documents, f, ensure_ascii=False, indent=2, default=_json_default)
        logger.info(f"💾 Снимок хранилища сохранён: {target} ({len(self._documents)} документов)")
        return target

    @classmethod
    def load(cls, source: Union[str, Path]) -> "MemoryDocumentStore":
        """Загрузить хранилище из JSON-снимка"""
        with open(source, "r", encoding="utf-8") as f:
            documents = json.load(f)
        logger.info(f"📂 Снимок хранилища загружен: {source} ({len(documents)} документов)")
        return cls(documents)
