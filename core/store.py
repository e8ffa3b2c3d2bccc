#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - Document Store
Абстракция удалённого документного хранилища

Документы адресуются путями вида ``users/{uid}/friends/{peerId}``:
нечётные сегменты - коллекции, чётные - идентификаторы документов.
Групповые записи (WriteBatch) применяются атомарно: либо все операции,
либо ни одной.

Версия: 1.0.0
Дата: 2026-10-19
"""

import copy
import secrets
import string
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, AsyncIterator, Dict, List, Optional

logger = logging.getLogger(__name__)

# Псевдо-поле для фильтрации по идентификатору документа
DOCUMENT_ID = "__name__"

_AUTO_ID_ALPHABET = string.ascii_letters + string.digits
_AUTO_ID_LENGTH = 20

# ===== EXCEPTIONS =====

class StoreError(Exception):
    """Базовое исключение хранилища"""
    pass

class DocumentNotFoundError(StoreError):
    """Документ не найден"""

    def __init__(self, path: str):
        super().__init__(f"Документ не найден: {path}")
        self.path = path

class BatchCommitError(StoreError):
    """Ошибка применения групповой записи"""
    pass

class InvalidPathError(StoreError):
    """Неверный путь к документу или коллекции"""
    pass

# ===== FIELD TRANSFORMS =====

@dataclass
class ArrayUnion:
    """Добавить значения в массив без дубликатов"""
    values: List[Any]

@dataclass
class ArrayRemove:
    """Удалить значения из массива"""
    values: List[Any]

@dataclass
class Increment:
    """Увеличить числовое поле"""
    amount: int = 1

# ===== PATH HELPERS =====

def join_path(*parts: Any) -> str:
    """Собрать путь из сегментов"""
    return "/".join(str(part).strip("/") for part in parts)

def split_path(path: str) -> List[str]:
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        raise InvalidPathError("Пустой путь")
    return segments

def validate_document_path(path: str) -> str:
    """Путь к документу содержит чётное число сегментов"""
    if len(split_path(path)) % 2 != 0:
        raise InvalidPathError(f"Путь не указывает на документ: {path}")
    return path.strip("/")

def validate_collection_path(path: str) -> str:
    """Путь к коллекции содержит нечётное число сегментов"""
    if len(split_path(path)) % 2 != 1:
        raise InvalidPathError(f"Путь не указывает на коллекцию: {path}")
    return path.strip("/")

def parent_collection(path: str) -> str:
    return path.strip("/").rsplit("/", 1)[0]

def document_id(path: str) -> str:
    return path.strip("/").rsplit("/", 1)[-1]

# ===== QUERIES =====

@dataclass
class Filter:
    """Условие запроса"""
    field: str
    op: str
    value: Any

    OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in", "not-in", "array_contains")

    def __post_init__(self):
        if self.op not in self.OPERATORS:
            raise ValueError(f"Неподдерживаемый оператор: {self.op}")
        if self.op in ("in", "not-in") and not isinstance(self.value, (list, tuple)):
            raise ValueError(f"Оператор {self.op} требует список значений")

@dataclass
class Query:
    """Неизменяемый запрос к коллекции"""
    collection: str
    filters: List[Filter] = field(default_factory=list)
    order_field: Optional[str] = None
    descending: bool = False
    limit_count: Optional[int] = None

    def __post_init__(self):
        self.collection = validate_collection_path(self.collection)

    def where(self, field_name: str, op: str, value: Any) -> "Query":
        return replace(self, filters=self.filters + [Filter(field_name, op, value)])

    def order_by(self, field_name: str, descending: bool = False) -> "Query":
        return replace(self, order_field=field_name, descending=descending)

    def limit(self, count: int) -> "Query":
        if count < 0:
            raise ValueError("limit должен быть неотрицательным")
        return replace(self, limit_count=count)

# ===== SNAPSHOTS & BATCHES =====

@dataclass
class DocumentSnapshot:
    """Снимок документа на момент чтения"""
    path: str
    data: Optional[Dict[str, Any]] = None

    @property
    def id(self) -> str:
        return document_id(self.path)

    @property
    def exists(self) -> bool:
        return self.data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        if self.data is None:
            return None
        return copy.deepcopy(self.data)

    def get(self, field_name: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(field_name, default)

@dataclass
class WriteOperation:
    """Одна операция групповой записи"""
    kind: str  # set | update | delete
    path: str
    data: Optional[Dict[str, Any]] = None
    merge: bool = False

class WriteBatch:
    """Групповая запись, применяемая одним атомарным коммитом"""

    MAX_OPERATIONS = 500

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self.operations: List[WriteOperation] = []
        self.committed = False

    def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> "WriteBatch":
        self.operations.append(WriteOperation("set", validate_document_path(path), dict(data), merge))
        return self

    def update(self, path: str, data: Dict[str, Any]) -> "WriteBatch":
        self.operations.append(WriteOperation("update", validate_document_path(path), dict(data)))
        return self

    def delete(self, path: str) -> "WriteBatch":
        self.operations.append(WriteOperation("delete", validate_document_path(path)))
        return self

    def __len__(self) -> int:
        return len(self.operations)

    async def commit(self) -> None:
        """Применить все операции"""
        if self.committed:
            raise BatchCommitError("Групповая запись уже применена")
        if not self.operations:
            self.committed = True
            return
        if len(self.operations) > self.MAX_OPERATIONS:
            raise BatchCommitError(
                f"Слишком много операций в одной записи: {len(self.operations)} > {self.MAX_OPERATIONS}"
            )

        await self._store.commit(self.operations)
        self.committed = True
        logger.debug(f"📦 Применена групповая запись: {len(self.operations)} операций")

# ===== STORE =====

class DocumentStore(ABC):
    """Базовый класс документного хранилища"""

    @abstractmethod
    async def get(self, path: str) -> DocumentSnapshot:
        """Прочитать документ"""
        pass

    @abstractmethod
    async def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Записать документ (с объединением полей при merge=True)"""
        pass

    @abstractmethod
    async def update(self, path: str, data: Dict[str, Any]) -> None:
        """Обновить поля существующего документа"""
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Удалить документ (подколлекции не затрагиваются)"""
        pass

    @abstractmethod
    async def query(self, query: Query) -> List[DocumentSnapshot]:
        """Выполнить запрос"""
        pass

    @abstractmethod
    async def commit(self, operations: List[WriteOperation]) -> None:
        """Атомарно применить операции"""
        pass

    @abstractmethod
    def watch(self, path: str) -> AsyncIterator[DocumentSnapshot]:
        """Поток снимков документа"""
        pass

    @abstractmethod
    def watch_query(self, query: Query) -> AsyncIterator[List[DocumentSnapshot]]:
        """Поток результатов запроса"""
        pass

    async def collection(self, path: str) -> List[DocumentSnapshot]:
        """Все документы коллекции"""
        return await self.query(Query(path))

    def new_id(self, collection: str) -> str:
        """Сгенерировать идентификатор нового документа"""
        validate_collection_path(collection)
        return "".join(secrets.choice(_AUTO_ID_ALPHABET) for _ in range(_AUTO_ID_LENGTH))

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def close(self) -> None:
        pass
