"""
datamigrate - bulk import/export engine

Moves records between spreadsheets or document collections and an
application-managed collection through an extract/transform/load pipeline,
and exports collections back to spreadsheets.
"""

__version__ = "1.0.0"

# Import core models and interfaces for easy access
from .models import (
    SourceType,
    LinkRule,
    Mapping,
    DocumentSource,
    ImportOptions,
    ExportOptions,
    ListResult,
    FileRecord,
    JobContext,
    ImportResult,
    ExportResult,
)

from .interfaces import (
    CollectionInterface,
    DatabaseInterface,
    RepositoryInterface,
    SpreadsheetCodecInterface,
    FileStorageInterface,
    PerformanceMonitorInterface,
)

from .exceptions import (
    DataMigrateError,
    ConfigurationError,
    UnsupportedSourceError,
    SourceReadError,
    StorageError,
    DatabaseConnectionError,
    PersistenceError,
    SanitizeError,
    HookError,
    ErrorThresholdExceeded,
)

from .hooks import MigrationHooks, register_hooks
from .processing import Importer, Exporter

__all__ = [
    # Core models
    "SourceType",
    "LinkRule",
    "Mapping",
    "DocumentSource",
    "ImportOptions",
    "ExportOptions",
    "ListResult",
    "FileRecord",
    "JobContext",
    "ImportResult",
    "ExportResult",

    # Interfaces
    "CollectionInterface",
    "DatabaseInterface",
    "RepositoryInterface",
    "SpreadsheetCodecInterface",
    "FileStorageInterface",
    "PerformanceMonitorInterface",

    # Exceptions
    "DataMigrateError",
    "ConfigurationError",
    "UnsupportedSourceError",
    "SourceReadError",
    "StorageError",
    "DatabaseConnectionError",
    "PersistenceError",
    "SanitizeError",
    "HookError",
    "ErrorThresholdExceeded",

    # Hooks and pipelines
    "MigrationHooks",
    "register_hooks",
    "Importer",
    "Exporter",
]
