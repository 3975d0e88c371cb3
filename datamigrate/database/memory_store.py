"""
In-process document store.

MemoryDatabase hands out MemoryCollection objects keyed by name. Documents
are deep-copied on the way in and out so callers never share state with the
store, which keeps the behavior close to a real database. Used for tests,
embedding, and as the store behind single-process jobs.
"""

import copy
import logging
import threading
import uuid
from typing import Any, Dict, Iterator, List, Optional

from ..config.processing_defaults import ProcessingDefaults
from ..exceptions import PersistenceError
from ..interfaces import CollectionInterface, DatabaseInterface
from ..utils import FieldPath

ID_FIELD = ProcessingDefaults.ID_FIELD


def matches(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    """True when every query field equals the document value at that path."""
    if not query:
        return True
    for path, expected in query.items():
        path_obj = FieldPath(path)
        if not path_obj.exists(document) or path_obj.get(document) != expected:
            return False
    return True


class MemoryCollection(CollectionInterface):
    """A named, ordered list of documents held in memory."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(__name__)
        self.name = name
        self._documents: List[Dict[str, Any]] = []
        self._exists = False
        self._lock = threading.RLock()

    @property
    def exists(self) -> bool:
        return self._exists

    def add(self, document: Dict[str, Any]) -> Any:
        document = copy.deepcopy(document)
        with self._lock:
            if ID_FIELD not in document or document[ID_FIELD] is None:
                document[ID_FIELD] = uuid.uuid4().hex
            elif any(d[ID_FIELD] == document[ID_FIELD] for d in self._documents):
                raise PersistenceError(f"Duplicate {ID_FIELD} {document[ID_FIELD]!r} in collection {self.name}")
            self._documents.append(document)
            self._exists = True
        return document[ID_FIELD]

    def find(self, query: Optional[Dict[str, Any]] = None,
             skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        with self._lock:
            found = [d for d in self._documents if matches(d, query)]
        end = None if limit is None else skip + limit
        return copy.deepcopy(found[skip:end])

    def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        with self._lock:
            return sum(1 for d in self._documents if matches(d, query))

    def update(self, query: Dict[str, Any], patch: Dict[str, Any]) -> List[Any]:
        updated = []
        with self._lock:
            for document in self._documents:
                if not matches(document, query):
                    continue
                for key, value in patch.items():
                    if key == ID_FIELD:
                        continue
                    FieldPath(key).set(document, copy.deepcopy(value))
                updated.append(document[ID_FIELD])
        return updated

    def remove(self, query: Dict[str, Any]) -> int:
        with self._lock:
            before = len(self._documents)
            self._documents = [d for d in self._documents if not matches(d, query)]
            return before - len(self._documents)

    def cursor(self, query: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        with self._lock:
            snapshot = list(self._documents)
        for document in snapshot:
            if matches(document, query):
                yield copy.deepcopy(document)

    def drop(self) -> bool:
        with self._lock:
            existed = self._exists
            self._documents = []
            self._exists = False
        if existed:
            self.logger.debug(f"Dropped collection {self.name}")
        return existed


class MemoryDatabase(DatabaseInterface):
    """
    Named set of in-memory collections.

    Args:
        domain: Identifier of the database, used for logging and source lookups
    """

    def __init__(self, domain: str = "default"):
        self.domain = domain
        self._collections: Dict[str, MemoryCollection] = {}
        self._lock = threading.Lock()

    def collection(self, name: str) -> MemoryCollection:
        with self._lock:
            if name not in self._collections:
                self._collections[name] = MemoryCollection(name)
            return self._collections[name]

    def collection_names(self) -> List[str]:
        """Names of collections that currently exist (hold or held data since their last drop)."""
        with self._lock:
            return sorted(name for name, c in self._collections.items() if c.exists)
