"""
Abstract interfaces and base classes for the datamigrate engine.

This module defines the contracts that stores, repositories, codecs and
file storages must implement so the importer and exporter can be wired
against any backend through dependency injection.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Iterator

from .models import Mapping, ListResult, FileRecord


class CollectionInterface(ABC):
    """Abstract interface for a named collection of documents."""

    name: str

    @abstractmethod
    def add(self, document: Dict[str, Any]) -> Any:
        """
        Insert a document.

        Args:
            document: Document to insert; an `_id` is assigned when absent

        Returns:
            Identifier of the inserted document
        """
        pass

    @abstractmethod
    def find(self, query: Optional[Dict[str, Any]] = None,
             skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Return documents whose fields equal every value in query.

        Args:
            query: Field/value equality conditions (dot paths allowed)
            skip: Number of matching documents to skip
            limit: Maximum number of documents to return
        """
        pass

    @abstractmethod
    def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        """Number of documents matching query."""
        pass

    @abstractmethod
    def update(self, query: Dict[str, Any], patch: Dict[str, Any]) -> List[Any]:
        """
        Merge patch into every matching document.

        Returns:
            Identifiers of the updated documents
        """
        pass

    @abstractmethod
    def remove(self, query: Dict[str, Any]) -> int:
        """Delete matching documents and return how many were removed."""
        pass

    @abstractmethod
    def cursor(self, query: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        """Iterate matching documents one at a time in insertion order."""
        pass

    @abstractmethod
    def drop(self) -> bool:
        """
        Drop the collection.

        Dropping a collection that does not exist is a no-op.

        Returns:
            True if something was dropped
        """
        pass

    def find_one(self, query: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        found = self.find(query, limit=1)
        return found[0] if found else None


class DatabaseInterface(ABC):
    """Abstract interface for a store that hands out named collections."""

    @abstractmethod
    def collection(self, name: str) -> CollectionInterface:
        """Return a handle for the named collection (created lazily)."""
        pass


class RepositoryInterface(ABC):
    """
    Abstract interface for the business-level destination of an import.

    Repositories apply application rules (validity flags, audit fields)
    on top of a raw collection.
    """

    @abstractmethod
    def list(self, query: Optional[Dict[str, Any]] = None,
             skip: int = 0, limit: Optional[int] = None) -> ListResult:
        pass

    @abstractmethod
    def get(self, condition: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def add(self, record: Dict[str, Any]) -> Any:
        pass

    @abstractmethod
    def update(self, condition: Dict[str, Any], patch: Dict[str, Any]) -> Any:
        pass

    @abstractmethod
    def remove(self, condition: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    def get_cursor(self, query: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        pass


class SpreadsheetCodecInterface(ABC):
    """Abstract interface for spreadsheet decoding and encoding."""

    @abstractmethod
    def parse(self, path: str, mappings: List[Mapping]) -> List[List[Dict[str, Any]]]:
        """
        Decode a workbook into rows.

        Args:
            path: Path to the workbook
            mappings: Mapping rules used to locate columns

        Returns:
            One list of row dicts per sheet
        """
        pass

    @abstractmethod
    def dump(self, path: str, rows: List[List[Any]]) -> None:
        """Write rows (header first) as a single-sheet workbook."""
        pass


class FileStorageInterface(ABC):
    """Abstract interface for file/blob storage."""

    @abstractmethod
    def add(self, record: FileRecord) -> str:
        """
        Store the record's stream.

        Returns:
            Identifier of the stored file
        """
        pass


class PerformanceMonitorInterface(ABC):
    """Abstract interface for performance monitoring components."""

    @abstractmethod
    def start_monitoring(self) -> None:
        """Start performance monitoring."""
        pass

    @abstractmethod
    def stop_monitoring(self) -> Dict[str, Any]:
        """
        Stop monitoring and return the collected metrics.
        """
        pass

    @abstractmethod
    def start_stage(self, stage_name: str) -> None:
        pass

    @abstractmethod
    def end_stage(self, stage_name: str) -> float:
        pass

    @abstractmethod
    def record_processing_result(self, success: bool) -> None:
        pass
