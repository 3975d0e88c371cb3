"""
Target adapter - the write side of the import load stage.

Chooses between three write paths for each loaded row:

- store-to-store copy: raw insert into the target collection, bypassing
  repository rules
- upsert (allow_update): match on {valid: 1, <unique_key fields>} and update
  the existing record or insert a new one
- plain insert through the repository

Upserts read then write without a transaction, so two jobs loading the same
keys at once can both insert.
"""

import logging
from typing import Any, Dict, List, Optional

from ..config.processing_defaults import ProcessingDefaults
from ..exceptions import ConfigurationError
from ..interfaces import CollectionInterface, RepositoryInterface
from ..models import JobContext
from ..utils import FieldPath


class TargetAdapter:
    """
    Writes loaded rows to the destination of an import.

    Args:
        repository: Business repository receiving normal imports
        raw_collection: Collection receiving store-to-store copies
        unique_key: Fields identifying an existing record for upserts
        allow_update: Update matching records instead of inserting
        raw_copy: Write through raw_collection instead of the repository
    """

    def __init__(self, repository: Optional[RepositoryInterface] = None,
                 raw_collection: Optional[CollectionInterface] = None,
                 unique_key: Optional[List[str]] = None,
                 allow_update: bool = False,
                 raw_copy: bool = False):
        self.logger = logging.getLogger(__name__)
        self.repository = repository
        self.raw_collection = raw_collection
        self.unique_key = list(unique_key or [])
        self.allow_update = allow_update
        self.raw_copy = raw_copy

        if raw_copy and raw_collection is None:
            raise ConfigurationError("Store-to-store copy requires a raw target collection")
        if not raw_copy and repository is None:
            raise ConfigurationError("Import requires a target repository")
        if allow_update and not self.unique_key:
            raise ConfigurationError("allow_update requires a unique_key")

    def match_condition(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Upsert match condition for a row."""
        condition = {ProcessingDefaults.VALID_FIELD: ProcessingDefaults.VALID_VALUE}
        for key in self.unique_key:
            condition[key] = FieldPath(key).get(row)
        return condition

    def add(self, row: Dict[str, Any], context: JobContext) -> Any:
        """Write one row; upsert outcomes are recorded on the job context."""
        if self.raw_copy:
            return self.raw_collection.add(row)

        if not self.allow_update:
            return self.repository.add(row)

        condition = self.match_condition(row)
        existing = self.repository.get(condition)
        if existing is not None:
            self.repository.update(condition, row)
            record_id = existing.get(ProcessingDefaults.ID_FIELD)
            context.updated.append(record_id)
            return record_id

        record_id = self.repository.add(row)
        context.inserted.append(record_id)
        return record_id
