"""
Command-line interface for the datamigrate engine.

    datamigrate import <job file> [--file PATH]
    datamigrate export <job file> [--skip N] [--limit N]

Jobs run against the SQL Server database configured through the
DATAMIGRATE_* environment variables. The job result is printed as JSON.
"""

import sys
import json
import logging
import argparse

from typing import Dict, List, Optional

from .codec.spreadsheet_codec import SpreadsheetCodec
from .config.config_manager import ConfigManager, get_config_manager
from .database.odbc_store import OdbcDatabase
from .database.repository import CollectionRepository
from .exceptions import DataMigrateError
from .models import Mapping
from .processing.exporter import Exporter
from .processing.importer import Importer
from .storage.file_storage import LocalFileStorage


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="datamigrate", description="Bulk import/export of collection records")
    parser.add_argument("--log-level", help="Logging level (defaults to DATAMIGRATE_LOG_LEVEL)")
    parser.add_argument("--config-path", help="Base path for job definitions")
    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import", help="Import a spreadsheet or document collection")
    import_cmd.add_argument("job", help="Job definition file (YAML or JSON)")
    import_cmd.add_argument("--file", help="Spreadsheet to import (overrides the job file)")

    export_cmd = commands.add_parser("export", help="Export a repository to a spreadsheet")
    export_cmd.add_argument("job", help="Job definition file (YAML or JSON)")
    export_cmd.add_argument("--skip", type=int, help="Number of records to skip")
    export_cmd.add_argument("--limit", type=int, help="Maximum number of records to export")
    return parser


def _link_repositories(database: OdbcDatabase, mappings: List[Mapping], uid: Optional[str]) -> Dict[str, CollectionRepository]:
    names = {m.link.repository for m in mappings if m.link}
    return {name: CollectionRepository(database.collection(name), uid=uid) for name in names}


def run_import(config_manager: ConfigManager, job: str, file: Optional[str] = None) -> int:
    options = config_manager.load_import_options(job, file=file)
    database = OdbcDatabase(config_manager.database_config)
    importer = Importer(
        options,
        database=database,
        codec=SpreadsheetCodec(),
        repositories=_link_repositories(database, options.mappings, options.uid),
        source_resolver=lambda source: OdbcDatabase.for_source(config_manager.database_config, source),
        temp_prefix=config_manager.processing_params.temp_prefix,
    )
    result = importer.exec()
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
    return 0 if result.error is None else 1


def run_export(config_manager: ConfigManager, job: str,
               skip: Optional[int] = None, limit: Optional[int] = None) -> int:
    options = config_manager.load_export_options(job, skip=skip, limit=limit)
    database = OdbcDatabase(config_manager.database_config)
    exporter = Exporter(
        options,
        repository=CollectionRepository(database.collection(options.schema), uid=options.uid),
        file_storage=LocalFileStorage(config_manager.get_files_dir()),
        codec=SpreadsheetCodec(),
        tmp_dir=config_manager.get_tmp_dir(),
        repositories=_link_repositories(database, options.mappings, options.uid),
    )
    result = exporter.exec()
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI application.

    Args:
        args: Optional command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args is None:
        args = sys.argv[1:]
    parsed = build_parser().parse_args(args)

    config_manager = get_config_manager(parsed.config_path)
    level = (parsed.log_level or config_manager.processing_params.log_level).upper()

    # Set up logging without reconfiguring root if already configured
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, level, logging.WARNING))
    logger = logging.getLogger(__name__)

    try:
        if parsed.command == "import":
            return run_import(config_manager, parsed.job, parsed.file)
        return run_export(config_manager, parsed.job, parsed.skip, parsed.limit)
    except DataMigrateError as e:
        logger.error(f"{parsed.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
