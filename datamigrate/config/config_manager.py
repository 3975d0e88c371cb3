"""
Centralized configuration management for the datamigrate engine.

This module provides the ConfigManager class that serves as the single source of truth
for configuration: database connections, processing parameters, job definition
loading, and environment variable handling.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field, fields

import yaml

from ..models import ImportOptions, ExportOptions
from ..exceptions import ConfigurationError
from .processing_defaults import ProcessingDefaults


@dataclass
class DatabaseConfig:
    """Database configuration with environment variable support."""
    connection_string: str
    driver: str = "ODBC Driver 17 for SQL Server"
    server: str = "localhost\\SQLEXPRESS"
    database: str = "DataMigrateDB"
    trusted_connection: bool = True
    connection_timeout: int = ProcessingDefaults.CONNECTION_TIMEOUT
    target_schema: str = ProcessingDefaults.TARGET_SCHEMA

    @classmethod
    def from_environment(cls) -> 'DatabaseConfig':
        """Create database configuration from environment variables."""
        target_schema = os.environ.get('DATAMIGRATE_DB_SCHEMA', cls.target_schema)

        # Primary connection string from environment
        connection_string = os.environ.get('DATAMIGRATE_CONNECTION_STRING')
        if connection_string:
            return cls(connection_string=connection_string, target_schema=target_schema)

        # Build connection string from individual components
        driver = os.environ.get('DATAMIGRATE_DB_DRIVER', cls.driver)
        server = os.environ.get('DATAMIGRATE_DB_SERVER', cls.server)
        database = os.environ.get('DATAMIGRATE_DB_DATABASE', cls.database)
        trusted_connection = os.environ.get('DATAMIGRATE_DB_TRUSTED_CONNECTION', 'true').lower() == 'true'
        connection_timeout = int(os.environ.get('DATAMIGRATE_DB_CONNECTION_TIMEOUT', cls.connection_timeout))

        connection_string = cls.build_connection_string(
            driver, server, database, connection_timeout,
            username=None if trusted_connection else os.environ.get('DATAMIGRATE_DB_USERNAME', ''),
            password=None if trusted_connection else os.environ.get('DATAMIGRATE_DB_PASSWORD', ''),
        )

        return cls(
            connection_string=connection_string,
            driver=driver,
            server=server,
            database=database,
            trusted_connection=trusted_connection,
            connection_timeout=connection_timeout,
            target_schema=target_schema,
        )

    @staticmethod
    def build_connection_string(driver: str, server: str, database: str, connection_timeout: int,
                                username: Optional[str] = None, password: Optional[str] = None) -> str:
        """Build an ODBC connection string; no username means Windows authentication."""
        connection_string = (
            f"DRIVER={{{driver}}};"
            f"SERVER={server};"
            f"DATABASE={database};"
        )
        if username is None:
            connection_string += "Trusted_Connection=yes;"
        else:
            connection_string += f"UID={username};PWD={password or ''};"
        connection_string += (
            f"Connection Timeout={connection_timeout};"
            f"Application Name=datamigrate;"
            f"TrustServerCertificate=yes;"
        )
        return connection_string

    def for_database(self, database: str, username: Optional[str] = None,
                     password: Optional[str] = None) -> 'DatabaseConfig':
        """Configuration pointing at another database on the same server."""
        connection_string = self.build_connection_string(
            self.driver, self.server, database, self.connection_timeout,
            username=username, password=password,
        )
        return DatabaseConfig(
            connection_string=connection_string,
            driver=self.driver,
            server=self.server,
            database=database,
            trusted_connection=username is None,
            connection_timeout=self.connection_timeout,
            target_schema=self.target_schema,
        )


@dataclass
class ProcessingParameters:
    """Processing parameters with environment variable support."""
    tmp_dir: str = ProcessingDefaults.TMP_DIR
    temp_prefix: str = ProcessingDefaults.TEMP_PREFIX
    log_level: str = ProcessingDefaults.LOG_LEVEL

    @classmethod
    def from_environment(cls) -> 'ProcessingParameters':
        """Create processing parameters from environment variables."""
        return cls(
            tmp_dir=os.environ.get('DATAMIGRATE_TMP_DIR', cls.tmp_dir),
            temp_prefix=os.environ.get('DATAMIGRATE_TEMP_PREFIX', cls.temp_prefix),
            log_level=os.environ.get('DATAMIGRATE_LOG_LEVEL', cls.log_level).upper(),
        )


@dataclass
class ConfigPaths:
    """Configuration file paths with environment variable support."""
    base_config_path: Path = field(default_factory=lambda: Path.cwd())
    jobs_path: str = "config/jobs"
    files_path: str = "files"

    @classmethod
    def from_environment(cls, base_path: Optional[Union[str, Path]] = None) -> 'ConfigPaths':
        """Create configuration paths from environment variables."""
        if base_path:
            base_config_path = Path(base_path)
        else:
            base_config_path = Path(os.environ.get('DATAMIGRATE_CONFIG_PATH', Path.cwd()))

        return cls(
            base_config_path=base_config_path,
            jobs_path=os.environ.get('DATAMIGRATE_JOBS_PATH', cls.jobs_path),
            files_path=os.environ.get('DATAMIGRATE_FILES_PATH', cls.files_path),
        )


class ConfigManager:
    """
    Centralized configuration manager serving as single source of truth.

    This class consolidates:
    - Database connection configuration
    - Processing parameters
    - Job definition loading (YAML or JSON)
    - File path management
    """

    def __init__(self, base_config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the centralized configuration manager.

        Args:
            base_config_path: Base path for configuration files. If None, uses current directory.
        """
        self.logger = logging.getLogger(__name__)

        self.paths = ConfigPaths.from_environment(base_config_path)
        self.database_config = DatabaseConfig.from_environment()
        self.processing_params = ProcessingParameters.from_environment()

        self._job_definition_cache: Dict[str, Dict[str, Any]] = {}

        self.logger.debug(f"ConfigManager initialized with base path: {self.paths.base_config_path}")

    def get_database_connection_string(self) -> str:
        return self.database_config.connection_string

    def get_tmp_dir(self) -> Path:
        """Directory for transient export files, created on demand."""
        tmp_dir = Path(self.processing_params.tmp_dir)
        if not tmp_dir.is_absolute():
            tmp_dir = self.paths.base_config_path / tmp_dir
        tmp_dir.mkdir(parents=True, exist_ok=True)
        return tmp_dir

    def get_files_dir(self) -> Path:
        files_dir = Path(self.paths.files_path)
        if not files_dir.is_absolute():
            files_dir = self.paths.base_config_path / files_dir
        return files_dir

    def resolve_job_path(self, job_path: Union[str, Path]) -> Path:
        """Resolve a job file given as an absolute path, a relative path, or a name in the jobs directory."""
        path = Path(job_path)
        if path.is_absolute() or path.exists():
            return path
        candidate = self.paths.base_config_path / self.paths.jobs_path / path
        if candidate.exists():
            return candidate
        for suffix in ('.yaml', '.yml', '.json'):
            if candidate.with_suffix(suffix).exists():
                return candidate.with_suffix(suffix)
        raise ConfigurationError(f"Job definition file not found: {job_path}")

    def load_job_definition(self, job_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Load a job definition with caching.

        Args:
            job_path: Path or name of a YAML/JSON job file

        Returns:
            Raw job definition dictionary
        """
        full_path = self.resolve_job_path(job_path)
        cache_key = str(full_path)

        if cache_key in self._job_definition_cache:
            self.logger.debug(f"Returning cached job definition for {cache_key}")
            return self._job_definition_cache[cache_key]

        try:
            with open(full_path, 'r', encoding='utf-8') as file:
                if full_path.suffix.lower() in ['.yaml', '.yml']:
                    definition = yaml.safe_load(file)
                elif full_path.suffix.lower() == '.json':
                    definition = json.load(file)
                else:
                    raise ConfigurationError(f"Unsupported file format: {full_path.suffix}")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to parse job definition file {full_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to read job definition file {full_path}: {e}")

        if not isinstance(definition, dict):
            raise ConfigurationError(f"Job definition {full_path} must be a mapping")

        self._job_definition_cache[cache_key] = definition
        self.logger.info(f"Loaded job definition from {full_path}")
        return definition

    def load_import_options(self, job_path: Union[str, Path], **overrides) -> ImportOptions:
        """Build ImportOptions from a job file; keyword overrides win over file values."""
        return self._build_options(ImportOptions, job_path, overrides)

    def load_export_options(self, job_path: Union[str, Path], **overrides) -> ExportOptions:
        """Build ExportOptions from a job file; keyword overrides win over file values."""
        return self._build_options(ExportOptions, job_path, overrides)

    def _build_options(self, options_cls, job_path, overrides):
        definition = dict(self.load_job_definition(job_path))
        definition.update({k: v for k, v in overrides.items() if v is not None})
        allowed = {f.name for f in fields(options_cls)}
        unknown = set(definition) - allowed - {'kind', 'description'}
        if unknown:
            self.logger.warning(f"Ignoring unknown job definition keys: {sorted(unknown)}")
        try:
            return options_cls(**{k: v for k, v in definition.items() if k in allowed})
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid job definition {job_path}: {e}")

    def get_configuration_summary(self) -> Dict[str, Any]:
        return {
            'database': {
                'server': self.database_config.server,
                'database': self.database_config.database,
                'schema': self.database_config.target_schema,
            },
            'processing': {
                'tmp_dir': self.processing_params.tmp_dir,
                'temp_prefix': self.processing_params.temp_prefix,
                'log_level': self.processing_params.log_level,
            },
            'paths': {
                'base_config_path': str(self.paths.base_config_path),
                'jobs_path': self.paths.jobs_path,
            },
            'defaults': ProcessingDefaults.to_dict(),
        }


_config_manager: Optional[ConfigManager] = None


def get_config_manager(base_config_path: Optional[Union[str, Path]] = None) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        base_config_path: Base path for configuration files (only used on first call)
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(base_config_path)
    return _config_manager


def reset_config_manager() -> None:
    """Reset the global configuration manager (used by tests)."""
    global _config_manager
    _config_manager = None
