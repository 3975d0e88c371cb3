"""
Temporary collections for the import pipeline.

An import stages raw rows in a `primitive` collection and parsed rows in a
`processed` collection. Names are either supplied by the caller, in which
case the caller owns the collection and cleanup never drops it, or generated
from the temp prefix and a random suffix, in which case the importer owns it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..config.processing_defaults import ProcessingDefaults
from ..exceptions import StorageError
from ..interfaces import CollectionInterface, DatabaseInterface
from ..utils import random_suffix


@dataclass
class TemporaryCollection:
    """
    Handle on a temporary collection.

    Attributes:
        name: Collection name
        collection: The collection itself
        owned: True when the name was generated and the job must drop it
    """
    name: str
    collection: CollectionInterface
    owned: bool
    released: bool = False


class TemporaryStorageManager:
    """
    Allocates and drops temporary collections in one database.

    Args:
        database: Database holding the temporary collections
        prefix: Prefix of generated names
    """

    def __init__(self, database: DatabaseInterface, prefix: str = ProcessingDefaults.TEMP_PREFIX):
        self.logger = logging.getLogger(__name__)
        self.database = database
        self.prefix = prefix

    def generate_name(self) -> str:
        return f"{self.prefix}{random_suffix(ProcessingDefaults.TEMP_SUFFIX_LENGTH)}"

    def allocate(self, name: Optional[str] = None) -> TemporaryCollection:
        """Handle on a caller-owned collection when name is given, else on a new owned one."""
        owned = not name
        name = name or self.generate_name()
        self.logger.debug(f"Allocated temporary collection {name} (owned={owned})")
        return TemporaryCollection(name=name, collection=self.database.collection(name), owned=owned)

    def drop(self, handle: TemporaryCollection) -> bool:
        """Drop the collection if present, whoever owns it; safe to repeat."""
        try:
            return handle.collection.drop()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to drop temporary collection {handle.name}: {e}")

    def reset(self, handle: TemporaryCollection) -> bool:
        """Drop the collection for a new run; an owned handle can be released again afterwards."""
        dropped = self.drop(handle)
        handle.released = False
        return dropped

    def release(self, handle: TemporaryCollection) -> bool:
        """Drop an owned collection once; caller-owned collections are left in place."""
        if not handle.owned or handle.released:
            return False
        self.drop(handle)
        handle.released = True
        self.logger.debug(f"Released temporary collection {handle.name}")
        return True
