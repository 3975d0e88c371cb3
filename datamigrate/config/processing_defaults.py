"""
Centralized configuration defaults for import and export jobs.

This module defines operational configuration constants used throughout the system.
These are processing infrastructure settings (not job-specific), shared across all
jobs. Environment variables and CLI arguments can override these defaults at runtime.
"""


class ProcessingDefaults:
    """
    Centralized operational configuration for import/export jobs.

    All values are defaults that can be overridden via environment variables
    (see config_manager.ProcessingParameters) or CLI arguments:
    - datamigrate import job.yaml --log-level DEBUG
    """

    # Temporary collections
    TEMP_PREFIX = "tmp."  # Prefix of auto-generated primitive/processed collection names
    TEMP_SUFFIX_LENGTH = 8  # Random hex characters appended to TEMP_PREFIX
    TMP_DIR = "tmp"  # Directory for export files before they are registered

    # Records
    ID_FIELD = "_id"  # Identifier field of stored documents
    ORIGINAL_FIELD = "_original"  # Scratch field holding pre-sanitized values
    VALID_FIELD = "valid"  # Validity flag combined with unique_key for upserts
    VALID_VALUE = 1

    # Export
    EXPORT_EXTENSION = ".xlsx"
    EXPORT_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    # Database connection (pyodbc)
    CONNECTION_TIMEOUT = 30  # Connection timeout in seconds
    TARGET_SCHEMA = "dbo"  # Schema holding collection tables

    # Logging
    LOG_LEVEL = "WARNING"  # Default logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG)

    @classmethod
    def to_dict(cls) -> dict:
        """
        Export all defaults as a dictionary.

        Returns:
            Dictionary of all ProcessingDefaults class attributes.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if not key.startswith('_') and key.isupper()
        }
