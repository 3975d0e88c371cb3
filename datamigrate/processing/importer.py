"""
Importer - the extract/transform/load pipeline.

Moves rows from a spreadsheet or another document collection into a target
repository through two temporary collections:

    initialize  drop stale temporary collections, hook init(primitive)
    extract     source rows -> primitive
    transform   primitive -> mapping, validation -> processed
    load        processed -> hook after(rows) -> target adapter
    end         hook end(summary), drop owned temporary collections

Failures in initialize and extract raise from exec. Later failures are
carried by the returned ImportResult together with the error log.
"""

import logging
from typing import Any, Callable, Dict, Optional

from ..config.processing_defaults import ProcessingDefaults
from ..database.memory_store import MemoryDatabase
from ..database.repository import CollectionRepository
from ..database.target_adapter import TargetAdapter
from ..database.temp_storage import TemporaryCollection, TemporaryStorageManager
from ..exceptions import (ConfigurationError, ErrorThresholdExceeded, SourceReadError,
                          UnsupportedSourceError)
from ..hooks import HookDispatcher
from ..interfaces import (DatabaseInterface, PerformanceMonitorInterface, RepositoryInterface,
                          SpreadsheetCodecInterface)
from ..mapping.field_mapper import FieldMapper
from ..models import DocumentSource, ImportOptions, ImportResult, JobContext, SourceType
from ..monitoring.performance_monitor import PerformanceMonitor
from ..utils import expand_dotted_keys
from ..validation.record_validator import RecordValidator
from .pipeline import StagePipeline

ID_FIELD = ProcessingDefaults.ID_FIELD

SourceResolver = Callable[[DocumentSource], DatabaseInterface]


class Importer:
    """
    Runs one import job.

    Args:
        options: Import job options
        database: Database holding the temporary collections and, for
            store-to-store copies, the raw target collection
        repository: Target repository; defaults to a CollectionRepository over
            the `schema` collection of database
        codec: Spreadsheet codec for spreadsheet sources
        repositories: Named repositories available to link rules
        source_resolver: Returns the database holding a document source
        monitor: Performance monitor; a PerformanceMonitor by default
        temp_prefix: Prefix of generated temporary collection names
    """

    def __init__(self, options: ImportOptions,
                 database: Optional[DatabaseInterface] = None,
                 repository: Optional[RepositoryInterface] = None,
                 codec: Optional[SpreadsheetCodecInterface] = None,
                 repositories: Optional[Dict[str, RepositoryInterface]] = None,
                 source_resolver: Optional[SourceResolver] = None,
                 monitor: Optional[PerformanceMonitorInterface] = None,
                 temp_prefix: str = ProcessingDefaults.TEMP_PREFIX):
        self.logger = logging.getLogger(__name__)
        self.options = options
        self.database = database or MemoryDatabase()
        self.codec = codec
        self.source_resolver = source_resolver
        self.monitor = monitor or PerformanceMonitor()

        self.raw_copy = options.source_type == SourceType.DOCUMENT
        self.repository = repository
        if self.repository is None and not self.raw_copy:
            self.repository = CollectionRepository(self.database.collection(options.schema), uid=options.uid)

        self.target = TargetAdapter(
            repository=self.repository,
            raw_collection=self.database.collection(options.schema) if self.raw_copy else None,
            unique_key=options.unique_key,
            allow_update=options.allow_update,
            raw_copy=self.raw_copy,
        )
        self.mapper = FieldMapper(options.mappings, repositories)
        self.validator = RecordValidator(options.rules, options.mappings)
        self.hooks = HookDispatcher.resolve(options.hooks)

        self.storage = TemporaryStorageManager(self.database, temp_prefix)
        self.primitive: TemporaryCollection = self.storage.allocate(options.primitive)
        self.processed: TemporaryCollection = self.storage.allocate(options.processed)

        self.context = JobContext()
        self._ended = False
        self.pipeline = StagePipeline("etl", self.monitor)

    def exec(self) -> ImportResult:
        """
        Run the whole job.

        Returns:
            ImportResult with counts, the ordered error log, upsert ids and
            the terminal error when the job stopped early

        Raises:
            DataMigrateError: When initialize or extract fails
        """
        self.context = JobContext()
        self._ended = False
        self.pipeline = StagePipeline("etl", self.monitor)
        self.monitor.start_monitoring()
        self.logger.info(f"Import into {self.options.schema} from {self.options.source_type.value} source")

        try:
            self.pipeline.run_stage('initialize', self.initialize)
        except Exception:
            self.monitor.stop_monitoring()
            raise

        try:
            self.pipeline.run_stage('extract', self.extract)
            self._run_to_completion()
        finally:
            self.cleanup()
            metrics = self.monitor.stop_monitoring()

        result = self.context.summary(metrics)
        self.logger.info(f"Import finished: total={result.total} success={result.success} "
                         f"errors={len(result.errors)} aborted={result.aborted}")
        return result

    def _run_to_completion(self) -> None:
        try:
            self.pipeline.run_stage('transform', self.transform)
        except ErrorThresholdExceeded as e:
            self.logger.warning(f"Import aborted: {e}")
            self.context.aborted = True
            self.context.error = e
            return
        except Exception as e:
            self._fail('transform', e)
            return

        try:
            self.pipeline.run_stage('load', self.load)
        except Exception as e:
            self._fail('load', e)
            return

        try:
            self.pipeline.run_stage('end', self.end)
        except Exception as e:
            self._fail('end', e)

    def _fail(self, stage: str, error: Exception) -> None:
        self.logger.error(f"Import {stage} failed: {error}", exc_info=self.logger.isEnabledFor(logging.DEBUG))
        self.context.error = error

    # -- stages ------------------------------------------------------------

    def initialize(self) -> None:
        self.storage.reset(self.primitive)
        self.storage.reset(self.processed)
        self.hooks.init(self.primitive.collection)

    def extract(self) -> None:
        source_type = self.options.source_type
        if source_type == SourceType.SPREADSHEET:
            self._extract_spreadsheet()
        elif source_type == SourceType.DOCUMENT:
            self._extract_document()
        else:
            raise UnsupportedSourceError(source_type.value)

    def _extract_spreadsheet(self) -> None:
        if self.codec is None:
            raise ConfigurationError("Spreadsheet import requires a codec")
        if not self.options.file:
            raise SourceReadError("Spreadsheet import requires a file")

        rows = []
        for sheet in self.codec.parse(self.options.file, self.options.mappings):
            rows.extend(sheet)
        rows = self.hooks.before(rows)

        for row in rows:
            self.primitive.collection.add(expand_dotted_keys(row))
        self.logger.debug(f"Extracted {len(rows)} rows from {self.options.file}")

    def _extract_document(self) -> None:
        source = self.options.source
        if source is None:
            raise ConfigurationError("Document import requires a source")
        if self.source_resolver is None:
            raise ConfigurationError(f"No database available for source domain '{source.domain}'")

        collection = self.source_resolver(source).collection(source.table)
        count = 0
        for row in collection.cursor({}):
            if not source.keep_id:
                row.pop(ID_FIELD, None)
            self.primitive.collection.add(row)
            count += 1
        self.logger.debug(f"Extracted {count} rows from {source.domain}.{source.table}")

    def transform(self) -> None:
        context = self.context
        for row in self.primitive.collection.cursor({}):
            context.total += 1
            has_error = self.parse(row, context.total)

            if has_error:
                self.monitor.record_processing_result(False)
                self._check_threshold(context.total)
                continue

            self.processed.collection.add(row)
            self.monitor.record_processing_result(True)

    def parse(self, row: Dict[str, Any], index: int) -> bool:
        """Map and validate one row in place; True when it produced error entries."""
        try:
            self.mapper.parse(row)
            self.hooks.parse(row)

            entries = self.validator.validate(row)
            entries.extend(self.hooks.valid(row))
        finally:
            self.mapper.strip_scratch(row)

        if entries:
            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.debug(f"Row {index}: {len(entries)} validation errors")
            self.context.add_errors(entries, index)
        return bool(entries)

    def _check_threshold(self, index: int) -> None:
        options = self.options
        error_count = len(self.context.errors)
        if not options.allow_error:
            raise ErrorThresholdExceeded(error_count, row=index)
        if options.allow_error_max is not None and error_count > options.allow_error_max:
            raise ErrorThresholdExceeded(error_count, options.allow_error_max, row=index)

    def load(self) -> None:
        if self.context.errors and not self.options.allow_error:
            self.logger.info("Skipping load: validation errors are not allowed")
            return

        rows = self.processed.collection.find({})
        rows = self.hooks.after(rows)

        # Processed rows share the primitive _id, which is the source _id under keep_id
        keep_id = self.raw_copy and self.options.source.keep_id
        for row in rows:
            if not keep_id:
                row.pop(ID_FIELD, None)
            self.target.add(row, self.context)
            self.context.success += 1

    def end(self) -> None:
        """
        Run the end hook and drop owned temporary collections.

        Safe to call again: the hook runs once per exec and each owned
        collection is dropped once.
        """
        if not self._ended:
            self._ended = True
            self.hooks.end(self.context.summary())
        self.cleanup()

    def cleanup(self) -> None:
        """Drop owned temporary collections; caller-named ones are kept."""
        for handle in (self.primitive, self.processed):
            self.storage.release(handle)

