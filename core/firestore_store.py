#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RAW Focus v1.0 - Firestore Document Store
Адаптер DocumentStore поверх google-cloud-firestore

Версия: 1.0.0
Дата: 2026-10-19
"""

import os
import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from google.api_core.exceptions import GoogleAPICallError, NotFound
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from core.store import (
    DOCUMENT_ID, ArrayRemove, ArrayUnion, BatchCommitError, DocumentNotFoundError,
    DocumentSnapshot, DocumentStore, Increment, Query, StoreError, WriteOperation,
    validate_document_path,
)

logger = logging.getLogger(__name__)

def _encode_value(value: Any) -> Any:
    if isinstance(value, ArrayUnion):
        return firestore.ArrayUnion(list(value.values))
    if isinstance(value, ArrayRemove):
        return firestore.ArrayRemove(list(value.values))
    if isinstance(value, Increment):
        return firestore.Increment(value.amount)
    return value

def _encode(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _encode_value(value) for key, value in data.items()}

def _to_snapshot(document) -> DocumentSnapshot:
    return DocumentSnapshot(
        path=document.reference.path,
        data=document.to_dict() if document.exists else None
    )

class FirestoreDocumentStore(DocumentStore):
    """Хранилище документов Cloud Firestore"""

    def __init__(self, project: Optional[str] = None, database: Optional[str] = None,
                 emulator_host: Optional[str] = None, client: Optional[firestore.AsyncClient] = None):
        if emulator_host:
            os.environ.setdefault("FIRESTORE_EMULATOR_HOST", emulator_host)
            logger.info(f"🧪 Firestore эмулятор: {emulator_host}")

        self._project = project
        self._database = database
        self._client = client or firestore.AsyncClient(project=project, database=database)
        self._sync_client: Optional[firestore.Client] = None

    def _listen_client(self) -> firestore.Client:
        """Синхронный клиент нужен только для on_snapshot"""
        if self._sync_client is None:
            self._sync_client = firestore.Client(project=self._project, database=self._database)
        return self._sync_client

    def _build_query(self, client, query: Query):
        ref = client.collection(query.collection)
        for condition in query.filters:
            value = condition.value
            if condition.field == DOCUMENT_ID:
                if condition.op in ("in", "not-in"):
                    value = [client.document(f"{query.collection}/{item}") for item in value]
                else:
                    value = client.document(f"{query.collection}/{value}")
            ref = ref.where(filter=FieldFilter(condition.field, condition.op, value))

        if query.order_field:
            direction = firestore.Query.DESCENDING if query.descending else firestore.Query.ASCENDING
            ref = ref.order_by(query.order_field, direction=direction)
        if query.limit_count is not None:
            ref = ref.limit(query.limit_count)
        return ref

    async def get(self, path: str) -> DocumentSnapshot:
        try:
            document = await self._client.document(validate_document_path(path)).get()
        except GoogleAPICallError as e:
            raise StoreError(f"Ошибка чтения {path}: {e}") from e
        return _to_snapshot(document)

    async def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        try:
            await self._client.document(validate_document_path(path)).set(_encode(data), merge=merge)
        except GoogleAPICallError as e:
            raise StoreError(f"Ошибка записи {path}: {e}") from e

    async def update(self, path: str, data: Dict[str, Any]) -> None:
        try:
            await self._client.document(validate_document_path(path)).update(_encode(data))
        except NotFound as e:
            raise DocumentNotFoundError(path) from e
        except GoogleAPICallError as e:
            raise StoreError(f"Ошибка обновления {path}: {e}") from e

    async def delete(self, path: str) -> None:
        try:
            await self._client.document(validate_document_path(path)).delete()
        except GoogleAPICallError as e:
            raise StoreError(f"Ошибка удаления {path}: {e}") from e

    async def query(self, query: Query) -> List[DocumentSnapshot]:
        try:
            documents = await self._build_query(self._client, query).get()
        except GoogleAPICallError as e:
            raise StoreError(f"Ошибка запроса к {query.collection}: {e}") from e
        return [_to_snapshot(document) for document in documents]

    async def commit(self, operations: List[WriteOperation]) -> None:
        batch = self._client.batch()
        for operation in operations:
            reference = self._client.document(operation.path)
            if operation.kind == "set":
                batch.set(reference, _encode(operation.data or {}), merge=operation.merge)
            elif operation.kind == "update":
                batch.update(reference, _encode(operation.data or {}))
            elif operation.kind == "delete":
                batch.delete(reference)
            else:
                raise BatchCommitError(f"Неизвестная операция: {operation.kind}")

        try:
            await batch.commit()
        except GoogleAPICallError as e:
            raise BatchCommitError(f"Групповая запись отклонена: {e}") from e

    async def watch(self, path: str) -> AsyncIterator[DocumentSnapshot]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def on_snapshot(documents, changes, read_time):
            for document in documents:
                loop.call_soon_threadsafe(queue.put_nowait, _to_snapshot(document))

        watcher = self._listen_client().document(validate_document_path(path)).on_snapshot(on_snapshot)
        try:
            while True:
                yield await queue.get()
        finally:
            watcher.unsubscribe()

    async def watch_query(self, query: Query) -> AsyncIterator[List[DocumentSnapshot]]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def on_snapshot(documents, changes, read_time):
            loop.call_soon_threadsafe(queue.put_nowait, [_to_snapshot(document) for document in documents])

        watcher = self._build_query(self._listen_client(), query).on_snapshot(on_snapshot)
        try:
            while True:
                yield await queue.get()
        finally:
            watcher.unsubscribe()

    async def close(self) -> None:
        self._client.close()
        if self._sync_client is not None:
            self._sync_client.close()
