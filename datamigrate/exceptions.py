"""
Custom exceptions for the datamigrate bulk transfer engine.

This module defines specific exception types for the different error conditions
that can occur while importing or exporting records.
"""


class DataMigrateError(Exception):
    """Base exception for all import/export related errors."""

    def __init__(self, message: str, row: int = None):
        """
        Initialize a migration error.

        Args:
            message: Error description
            row: Optional 1-based index of the source row that caused the error
        """
        super().__init__(message)
        self.row = row


class ConfigurationError(DataMigrateError):
    """Exception raised when configuration or a job definition is invalid."""
    pass


class UnsupportedSourceError(DataMigrateError):
    """Exception raised when a job names a source type the engine cannot read."""

    def __init__(self, source_type: str):
        super().__init__(f"Unsupported source type: {source_type}")
        self.source_type = source_type


class SourceReadError(DataMigrateError):
    """Exception raised when the import source cannot be opened or decoded."""
    pass


class StorageError(DataMigrateError):
    """Exception raised when a collection or file store operation fails."""
    pass


class DatabaseConnectionError(StorageError):
    """Exception raised when a database connection cannot be established."""
    pass


class PersistenceError(StorageError):
    """Exception raised when a record cannot be written to the target."""
    pass


class SanitizeError(DataMigrateError):
    """Exception raised when a value cannot be converted by a sanitizer."""

    def __init__(self, message: str, sanitizer: str = None, source_value=None):
        """
        Initialize sanitize error.

        Args:
            message: Error description
            sanitizer: Name of the sanitize rule that failed
            source_value: Original value that failed conversion
        """
        super().__init__(message)
        self.sanitizer = sanitizer
        self.source_value = source_value


class HookError(DataMigrateError):
    """Exception raised when a user-supplied hook fails."""

    def __init__(self, hook_name: str, cause: Exception):
        super().__init__(f"Hook '{hook_name}' failed: {cause}")
        self.hook_name = hook_name
        self.cause = cause


class ErrorThresholdExceeded(DataMigrateError):
    """
    Exception raised when validation errors exceed the configured tolerance.

    Raised by the transform stage; the importer converts it into an aborted
    result that still carries the accumulated error log.
    """

    def __init__(self, error_count: int, allow_error_max: int = None, row: int = None):
        if allow_error_max is None:
            message = f"Validation failed at row {row}; errors are not allowed"
        else:
            message = f"Validation errors ({error_count}) exceeded allow_error_max={allow_error_max}"
        super().__init__(message, row)
        self.error_count = error_count
        self.allow_error_max = allow_error_max
