"""
Ядро RAW Focus: хранилища, кэш и политика соединения
"""

from .store import (
    DOCUMENT_ID,
    ArrayRemove,
    ArrayUnion,
    BatchCommitError,
    DocumentNotFoundError,
    DocumentSnapshot,
    DocumentStore,
    Increment,
    Query,
    StoreError,
    WriteBatch,
    join_path,
)
from .memory_store import MemoryDocumentStore
from .object_storage import MemoryObjectStorage, ObjectStorage, ObjectStorageError
from .cache import CacheManager
from .connection import AdaptivePerformanceSettings, ConnectionManager, ConnectionQuality

__all__ = [
    'DOCUMENT_ID',
    'ArrayRemove',
    'ArrayUnion',
    'BatchCommitError',
    'DocumentNotFoundError',
    'DocumentSnapshot',
    'DocumentStore',
    'Increment',
    'Query',
    'StoreError',
    'WriteBatch',
    'join_path',
    'MemoryDocumentStore',
    'MemoryObjectStorage',
    'ObjectStorage',
    'ObjectStorageError',
    'CacheManager',
    'AdaptivePerformanceSettings',
    'ConnectionManager',
    'ConnectionQuality',
]
