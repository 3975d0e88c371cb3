"""
Core data models for the datamigrate bulk transfer engine.

This module defines the primary data structures used throughout the system
for mapping rules, job options, job state and job results.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Union
from enum import Enum


class SourceType(Enum):
    """Supported import source types."""
    SPREADSHEET = "spreadsheet"
    DELIMITED = "delimited"
    DOCUMENT = "document"

    @classmethod
    def parse(cls, value: Union[str, "SourceType"]) -> "SourceType":
        """Accept an enum member or its string value ('excel' is kept as an alias)."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        aliases = {"excel": "spreadsheet", "xlsx": "spreadsheet", "csv": "delimited",
                   "mongodb": "document", "collection": "document"}
        return cls(aliases.get(normalized, normalized))


@dataclass
class LinkRule:
    """
    Describes how to fetch a related value for a mapped field.

    Attributes:
        repository: Name of the repository holding the related records
        local: Field of the row holding the reference (defaults to the mapping field)
        foreign: Field of the related record matched against the reference
        select: Optional field of the related record to keep instead of the whole record
    """
    repository: str
    local: Optional[str] = None
    foreign: str = "_id"
    select: Optional[str] = None

    def __post_init__(self):
        if not self.repository:
            raise ValueError("link repository cannot be empty")


@dataclass
class Mapping:
    """
    Declarative rule tying a source field to a destination field.

    Attributes:
        key: Canonical dot-notation field path
        variable: Optional record field name overriding key
        sanitize: Optional name of a sanitize rule applied to the value
        col: Optional 1-based spreadsheet column; absent means not exported
        title: Optional header text for exports (falls back to key)
        link: Optional linked-value rule
    """
    key: str
    variable: Optional[str] = None
    sanitize: Optional[str] = None
    col: Optional[int] = None
    title: Optional[str] = None
    link: Optional[LinkRule] = None

    def __post_init__(self):
        if not self.key:
            raise ValueError("mapping key cannot be empty")
        if self.col is not None:
            self.col = int(self.col)
            if self.col < 1:
                raise ValueError(f"mapping col must be 1-based, got {self.col}")
        if isinstance(self.link, dict):
            self.link = LinkRule(**self.link)

    @property
    def field(self) -> str:
        """Record field name this mapping reads and writes."""
        return self.variable or self.key

    @property
    def header(self) -> str:
        """Header text used for spreadsheet columns."""
        return self.key if self.title is None else self.title

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Mapping":
        """Build a mapping from a plain dict, ignoring unknown keys."""
        known = {"key", "variable", "sanitize", "col", "title", "link"}
        return cls(**{k: v for k, v in data.items() if k in known})


def coerce_mappings(mappings: Optional[List[Union[Mapping, Dict[str, Any]]]]) -> List[Mapping]:
    """Normalize a list of mapping dicts and Mapping objects."""
    return [m if isinstance(m, Mapping) else Mapping.from_dict(m) for m in (mappings or [])]


@dataclass
class DocumentSource:
    """
    Connection details for a document-store import source.

    Attributes:
        domain: Database / connection identifier
        table: Source collection name
        user: Optional credential user
        password: Optional credential password
        keep_id: Keep the source `_id` instead of letting the target assign one
    """
    domain: str
    table: str
    user: Optional[str] = None
    password: Optional[str] = None
    keep_id: bool = False

    def __post_init__(self):
        if not self.domain:
            raise ValueError("document source domain cannot be empty")
        if not self.table:
            raise ValueError("document source table cannot be empty")


@dataclass
class ImportOptions:
    """
    Options controlling a single import job.

    Attributes:
        schema: Name of the target collection / repository
        source_type: Where rows come from (spreadsheet, delimited, document)
        mappings: Field mapping rules
        file: Path to the spreadsheet for spreadsheet sources
        source: Connection details for document sources
        unique_key: Fields that identify an existing target record for upserts
        rules: Validation rule set applied to every row
        allow_error: Continue past invalid rows instead of aborting
        allow_error_max: Maximum tolerated error entries (None = unlimited)
        allow_update: Update records matching unique_key instead of inserting
        primitive: Caller-owned name for the raw-row collection
        processed: Caller-owned name for the processed-row collection
        hooks: Hook object or registered hook name
        uid: Identifier of the user running the job
    """
    schema: str
    source_type: SourceType = SourceType.SPREADSHEET
    mappings: List[Mapping] = field(default_factory=list)
    file: Optional[str] = None
    source: Optional[DocumentSource] = None
    unique_key: List[str] = field(default_factory=list)
    rules: List[Any] = field(default_factory=list)
    allow_error: bool = False
    allow_error_max: Optional[int] = None
    allow_update: bool = False
    primitive: Optional[str] = None
    processed: Optional[str] = None
    hooks: Any = None
    uid: Optional[str] = None

    def __post_init__(self):
        if not self.schema:
            raise ValueError("schema cannot be empty")
        self.source_type = SourceType.parse(self.source_type)
        self.mappings = coerce_mappings(self.mappings)
        if isinstance(self.source, dict):
            self.source = DocumentSource(**self.source)
        if self.allow_error_max is not None and self.allow_error_max < 0:
            raise ValueError("allow_error_max cannot be negative")
        if self.allow_update and not self.unique_key:
            raise ValueError("allow_update requires a unique_key")


@dataclass
class ExportOptions:
    """
    Options controlling a single export job.

    Attributes:
        schema: Name of the source repository
        mappings: Field mapping rules; only those with col are exported
        query: Condition selecting the exported records
        skip: Number of matching records to skip
        limit: Maximum number of records to export (None = all)
        hooks: Hook object or registered hook name
        uid: Identifier of the user running the job
    """
    schema: str
    mappings: List[Mapping] = field(default_factory=list)
    query: Dict[str, Any] = field(default_factory=dict)
    skip: int = 0
    limit: Optional[int] = None
    hooks: Any = None
    uid: Optional[str] = None

    def __post_init__(self):
        if not self.schema:
            raise ValueError("schema cannot be empty")
        self.mappings = coerce_mappings(self.mappings)
        if self.skip < 0:
            raise ValueError("skip cannot be negative")


@dataclass
class ListResult:
    """Page of records returned by a repository list call."""
    items: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0


@dataclass
class FileRecord:
    """
    A file to register with a file storage collaborator.

    Attributes:
        stream: Readable binary stream holding the file content
        filename: Original file name presented to users
        content_type: MIME type of the content
        metadata: Extra attributes stored alongside the file
    """
    stream: Any
    filename: str
    content_type: str = "application/octet-stream"
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class JobContext:
    """
    Mutable state of one import job, threaded through every stage.

    Created at the start of Importer.exec and frozen into an ImportResult
    once the pipeline finishes.
    """
    total: int = 0
    success: int = 0
    errors: List[Any] = field(default_factory=list)
    inserted: List[Any] = field(default_factory=list)
    updated: List[Any] = field(default_factory=list)
    aborted: bool = False
    error: Optional[Exception] = None

    def add_errors(self, entries: List[Any], row: int) -> None:
        """Append validation entries tagged with the originating row index."""
        for entry in entries:
            entry.row = row
            self.errors.append(entry)

    def summary(self, metrics: Optional[Dict[str, Any]] = None) -> "ImportResult":
        """Freeze the current state into an immutable result."""
        return ImportResult(
            total=self.total,
            success=self.success,
            errors=tuple(self.errors),
            error=self.error,
            aborted=self.aborted,
            inserted=tuple(self.inserted),
            updated=tuple(self.updated),
            metrics=dict(metrics or {}),
        )


@dataclass(frozen=True)
class ImportResult:
    """
    Results from an import job.

    Attributes:
        total: Rows seen by the transform stage
        success: Rows written to the target
        errors: Validation entries in encounter order, each tagged with its row
        error: Terminal failure that stopped the job, if any
        aborted: Whether the error threshold stopped the job
        inserted: Identifiers of records inserted by upserts
        updated: Identifiers of records updated by upserts
        metrics: Stage timings and resource usage
    """
    total: int = 0
    success: int = 0
    errors: tuple = ()
    error: Optional[Exception] = None
    aborted: bool = False
    inserted: tuple = ()
    updated: tuple = ()
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def failed(self) -> int:
        """Rows that were seen but not written."""
        return self.total - self.success

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view suitable for JSON output."""
        return {
            "total": self.total,
            "success": self.success,
            "errors": [e.to_dict() if hasattr(e, "to_dict") else e for e in self.errors],
            "error": str(self.error) if self.error else None,
            "aborted": self.aborted,
            "inserted": [str(i) for i in self.inserted],
            "updated": [str(i) for i in self.updated],
        }


@dataclass(frozen=True)
class ExportResult:
    """
    Results from an export job.

    Attributes:
        total: Number of data rows written to the sheet
        file_id: Identifier returned by the file storage
    """
    total: int = 0
    file_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "file_id": self.file_id}
