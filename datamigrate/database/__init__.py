"""
Stores, repositories and write adapters.

- MemoryDatabase: in-process document store
- OdbcDatabase: SQL Server document tables over pyodbc
- CollectionRepository: validity and audit rules over a collection
- TargetAdapter: insert, upsert or raw-copy writes for the import load stage
- TemporaryStorageManager: owned and caller-owned staging collections
"""

from .memory_store import MemoryCollection, MemoryDatabase
from .repository import CollectionRepository
from .target_adapter import TargetAdapter
from .temp_storage import TemporaryCollection, TemporaryStorageManager

__all__ = [
    'MemoryCollection',
    'MemoryDatabase',
    'CollectionRepository',
    'TargetAdapter',
    'TemporaryCollection',
    'TemporaryStorageManager',
]
