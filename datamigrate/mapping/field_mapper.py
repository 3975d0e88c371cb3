"""
Field Mapper - applies mapping rules to a single record.

The FieldMapper is the mapping stage of both pipelines. For every mapping, in
list order, it sanitizes the mapped field (remembering the raw value in the
`_original` scratch dict) and resolves linked values from related
repositories. It never validates: sanitize failures leave the field set to
None and are reported later by the RecordValidator, which compares the field
with its `_original` value.
"""

import logging
from typing import Any, Dict, List, Optional

from ..config.processing_defaults import ProcessingDefaults
from ..exceptions import ConfigurationError, SanitizeError
from ..interfaces import RepositoryInterface
from ..models import Mapping
from ..utils import FieldPath
from .sanitizers import sanitize, format_value

ORIGINAL_FIELD = ProcessingDefaults.ORIGINAL_FIELD
RECORD_FIELDS = (ProcessingDefaults.ID_FIELD, ProcessingDefaults.VALID_FIELD,
                 'createAt', 'createBy', 'updateAt', 'updateBy')


def flatten_related(value: Any, foreign: str) -> Any:
    """
    Reduce a linked record to what an export cell can show.

    Bookkeeping fields and the matched foreign field are dropped and nested
    dicts become dotted keys. A record left with one field yields that value;
    lists are flattened item by item.
    """
    if isinstance(value, list):
        return [flatten_related(item, foreign) for item in value]
    if not isinstance(value, dict):
        return value

    flat: Dict[str, Any] = {}
    pending = [('', value)]
    while pending:
        prefix, node = pending.pop()
        for key, item in node.items():
            name = f"{prefix}{key}"
            if not prefix and key in RECORD_FIELDS + (foreign,):
                continue
            if isinstance(item, dict):
                pending.append((f"{name}.", item))
            else:
                flat[name] = item
    if len(flat) == 1:
        return next(iter(flat.values()))
    return dict(sorted(flat.items()))


class FieldMapper:
    """
    Applies sanitize and link rules from a mapping list to records.

    Args:
        mappings: Mapping rules, applied in list order
        repositories: Named repositories available to link rules
    """

    def __init__(self, mappings: List[Mapping],
                 repositories: Optional[Dict[str, RepositoryInterface]] = None):
        self.logger = logging.getLogger(__name__)
        self.mappings = mappings
        self.repositories = repositories or {}
        self._paths = {m.field: FieldPath(m.field) for m in mappings}

        for mapping in mappings:
            if mapping.link and mapping.link.repository not in self.repositories:
                raise ConfigurationError(
                    f"Mapping '{mapping.key}' links to unknown repository '{mapping.link.repository}'")

    def parse(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Import-side mapping: sanitize then resolve links, mapping by mapping.

        Values that fail their sanitizer become None; the raw value stays in
        row['_original'] so validation can report it.
        """
        original = row.setdefault(ORIGINAL_FIELD, {})
        for mapping in self.mappings:
            if mapping.sanitize:
                self._sanitize_field(row, mapping, original)
            if mapping.link:
                self.resolve_link(row, mapping)
        return row

    def enrich(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Export-side mapping: resolve every link, then format every sanitized field.

        Links without select are flattened with flatten_related.

        Formatting never fails; values that cannot be converted are exported as stored.
        """
        row[ORIGINAL_FIELD] = {}
        for mapping in self.mappings:
            if mapping.link:
                self.resolve_link(row, mapping)
                if not mapping.link.select:
                    self._flatten_field(row, mapping)
        for mapping in self.mappings:
            if mapping.sanitize:
                path = self._paths[mapping.field]
                if path.exists(row):
                    path.set(row, format_value(path.get(row), mapping.sanitize))
        return self.strip_scratch(row)

    def _flatten_field(self, row: Dict[str, Any], mapping: Mapping) -> None:
        path = self._paths[mapping.field]
        if path.exists(row):
            path.set(row, flatten_related(path.get(row), mapping.link.foreign))

    def _sanitize_field(self, row: Dict[str, Any], mapping: Mapping, original: Dict[str, Any]) -> None:
        path = self._paths[mapping.field]
        if not path.exists(row):
            return
        raw = path.get(row)
        original[mapping.field] = raw
        try:
            value = sanitize(raw, mapping.sanitize)
        except SanitizeError as e:
            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.debug(f"Sanitize failed for {mapping.field}: {e}")
            value = None
        path.set(row, value)

    def resolve_link(self, row: Dict[str, Any], mapping: Mapping) -> None:
        """
        Replace the mapped field with the related value the link points at.

        A missing reference leaves the row untouched; a reference with no
        matching related record resolves to None.
        """
        link = mapping.link
        reference = FieldPath(link.local or mapping.field).get(row)
        if reference is None:
            return

        repository = self.repositories[link.repository]
        if isinstance(reference, list):
            value = [self._lookup(repository, mapping, item) for item in reference]
        else:
            value = self._lookup(repository, mapping, reference)
        self._paths[mapping.field].set(row, value)

    def _lookup(self, repository: RepositoryInterface, mapping: Mapping, reference: Any) -> Any:
        link = mapping.link
        related = repository.get({link.foreign: reference})
        if not related:
            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.debug(f"No {link.repository} record with {link.foreign}={reference!r} for {mapping.key}")
            return None
        if link.select:
            return FieldPath(link.select).get(related)
        return related

    @staticmethod
    def strip_scratch(row: Dict[str, Any]) -> Dict[str, Any]:
        row.pop(ORIGINAL_FIELD, None)
        return row
