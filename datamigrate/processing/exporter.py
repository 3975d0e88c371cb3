"""
Exporter - the transform/load pipeline writing a repository to a workbook.

    transform   list matching records, resolve links, format sanitized fields
    load        hook dump(rows), project rows onto mapped columns, write the
                workbook to a temporary file, register it with file storage

The temporary workbook is always deleted once load finishes.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config.processing_defaults import ProcessingDefaults
from ..hooks import HookDispatcher
from ..interfaces import (FileStorageInterface, PerformanceMonitorInterface, RepositoryInterface,
                          SpreadsheetCodecInterface)
from ..mapping.field_mapper import FieldMapper
from ..models import ExportOptions, ExportResult, FileRecord, Mapping
from ..utils import FieldPath, random_suffix
from .pipeline import StagePipeline

SCALAR_TYPES = (str, int, float, bool)


def export_columns(mappings: List[Mapping]) -> List[Mapping]:
    """
    Mappings that are exported, ordered by column.

    Mappings without col are skipped. When several mappings share a col the
    one defined last wins.
    """
    by_col: Dict[int, Mapping] = {}
    for mapping in mappings:
        if mapping.col is not None:
            by_col[mapping.col] = mapping
    return [by_col[col] for col in sorted(by_col)]


def cell_value(value: Any) -> Any:
    """
    Value as a workbook cell accepts it.

    Aware datetimes become naive UTC, lists of scalars are joined with ", "
    and any other list or mapping is written as JSON text.
    """
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    if isinstance(value, (list, tuple)) and all(v is None or isinstance(v, SCALAR_TYPES) for v in value):
        return ", ".join(str(v) for v in value if v is not None)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return value


def build_sheet(rows: List[Dict[str, Any]], mappings: List[Mapping]) -> List[List[Any]]:
    """Header row followed by one column-indexed list per record."""
    columns = export_columns(mappings)
    width = columns[-1].col if columns else 0

    header: List[Any] = [None] * width
    for mapping in columns:
        header[mapping.col - 1] = mapping.header

    sheet = [header]
    for row in rows:
        values: List[Any] = [None] * width
        for mapping in columns:
            values[mapping.col - 1] = cell_value(FieldPath(mapping.field).get(row))
        sheet.append(values)
    return sheet


class Exporter:
    """
    Runs one export job.

    Args:
        options: Export job options
        repository: Repository the records are read from
        file_storage: Storage the finished workbook is registered with
        codec: Spreadsheet codec writing the workbook
        tmp_dir: Directory for the temporary workbook
        repositories: Named repositories available to link rules
        monitor: Optional performance monitor
    """

    def __init__(self, options: ExportOptions,
                 repository: RepositoryInterface,
                 file_storage: FileStorageInterface,
                 codec: SpreadsheetCodecInterface,
                 tmp_dir: Union[str, Path] = ProcessingDefaults.TMP_DIR,
                 repositories: Optional[Dict[str, RepositoryInterface]] = None,
                 monitor: Optional[PerformanceMonitorInterface] = None):
        self.logger = logging.getLogger(__name__)
        self.options = options
        self.repository = repository
        self.file_storage = file_storage
        self.codec = codec
        self.tmp_dir = Path(tmp_dir)
        self.monitor = monitor
        self.mapper = FieldMapper(options.mappings, repositories)
        self.hooks = HookDispatcher.resolve(options.hooks)
        self.total = 0

    def exec(self) -> ExportResult:
        pipeline = StagePipeline("etl", self.monitor)
        if self.monitor is not None:
            self.monitor.start_monitoring()
        try:
            rows = pipeline.run_stage('transform', self.transform)
            file_id = pipeline.run_stage('load', self.load, rows)
        finally:
            if self.monitor is not None:
                self.monitor.stop_monitoring()

        self.logger.info(f"Exported {self.total} {self.options.schema} records as file {file_id}")
        return ExportResult(total=self.total, file_id=file_id)

    def transform(self) -> List[Dict[str, Any]]:
        result = self.repository.list(self.options.query, skip=self.options.skip, limit=self.options.limit)
        self.logger.debug(f"Listed {len(result.items)} of {result.total} {self.options.schema} records")
        return [self.mapper.enrich(row) for row in result.items]

    def load(self, rows: List[Dict[str, Any]]) -> str:
        rows = self.hooks.dump(rows)
        self.total = len(rows)
        sheet = build_sheet(rows, self.options.mappings)

        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        path = self.tmp_dir / f"{random_suffix()}{ProcessingDefaults.EXPORT_EXTENSION}"
        try:
            self.codec.dump(str(path), sheet)
            with open(path, 'rb') as stream:
                return self.file_storage.add(FileRecord(
                    stream=stream,
                    filename=f"{self.options.schema}{ProcessingDefaults.EXPORT_EXTENSION}",
                    content_type=ProcessingDefaults.EXPORT_CONTENT_TYPE,
                    metadata={'schema': self.options.schema, 'total': self.total, 'uid': self.options.uid},
                ))
        finally:
            if path.exists():
                os.remove(path)
