"""
Business repository over a document collection.

CollectionRepository is the destination of a normal import and the source of
an export. Every query it runs is scoped to valid records, and every write it
makes stamps the audit fields.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from ..config.processing_defaults import ProcessingDefaults
from ..interfaces import CollectionInterface, RepositoryInterface
from ..models import ListResult

VALID_FIELD = ProcessingDefaults.VALID_FIELD
VALID_VALUE = ProcessingDefaults.VALID_VALUE
INVALID_VALUE = 0


class CollectionRepository(RepositoryInterface):
    """
    Repository applying validity and audit rules to a collection.

    Args:
        collection: Collection holding the records
        uid: Identifier of the acting user, written to createBy / updateBy
    """

    def __init__(self, collection: CollectionInterface, uid: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self.collection = collection
        self.uid = uid

    @property
    def name(self) -> str:
        return self.collection.name

    @staticmethod
    def _scoped(query: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        scoped = {VALID_FIELD: VALID_VALUE}
        scoped.update(query or {})
        return scoped

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def list(self, query: Optional[Dict[str, Any]] = None,
             skip: int = 0, limit: Optional[int] = None) -> ListResult:
        condition = self._scoped(query)
        items = self.collection.find(condition, skip=skip, limit=limit)
        total = self.collection.count(condition)
        return ListResult(items=items, total=total)

    def get(self, condition: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.collection.find_one(self._scoped(condition))

    def add(self, record: Dict[str, Any]) -> Any:
        now = self._now()
        document = dict(record)
        document.setdefault(VALID_FIELD, VALID_VALUE)
        document['createAt'] = now
        document['updateAt'] = now
        document['createBy'] = self.uid
        document['updateBy'] = self.uid
        return self.collection.add(document)

    def update(self, condition: Dict[str, Any], patch: Dict[str, Any]) -> Any:
        """Apply patch to the matching valid records; returns the first updated id or None."""
        patch = {k: v for k, v in patch.items()
                 if k not in (ProcessingDefaults.ID_FIELD, 'createAt', 'createBy')}
        patch['updateAt'] = self._now()
        patch['updateBy'] = self.uid
        updated = self.collection.update(self._scoped(condition), patch)
        if len(updated) > 1:
            self.logger.warning(f"Update condition {condition} matched {len(updated)} records in {self.name}")
        return updated[0] if updated else None

    def remove(self, condition: Dict[str, Any]) -> bool:
        """Soft delete: matching records are flagged invalid, not removed."""
        updated = self.collection.update(self._scoped(condition), {
            VALID_FIELD: INVALID_VALUE,
            'updateAt': self._now(),
            'updateBy': self.uid,
        })
        return bool(updated)

    def get_cursor(self, query: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        return self.collection.cursor(self._scoped(query))
