"""
Local file storage for exported workbooks.

Each stored file is copied to `<base_dir>/<id><ext>`, keeping the extension
of its original name, with a `<id>.meta.json` sidecar holding the file name,
content type, size, creation time and metadata.
"""

import json
import logging
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Union

from ..exceptions import StorageError
from ..interfaces import FileStorageInterface
from ..models import FileRecord


class LocalFileStorage(FileStorageInterface):
    """
    File storage backed by a local directory.

    Args:
        base_dir: Directory holding stored files (created if missing)
    """

    def __init__(self, base_dir: Union[str, Path]):
        self.logger = logging.getLogger(__name__)
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def add(self, record: FileRecord) -> str:
        file_id = uuid.uuid4().hex
        stored_name = f"{file_id}{Path(record.filename).suffix.lower()}"
        target = self.base_dir / stored_name
        try:
            with open(target, 'wb') as output:
                shutil.copyfileobj(record.stream, output)
            metadata = {
                'id': file_id,
                'filename': record.filename,
                'stored_name': stored_name,
                'content_type': record.content_type,
                'length': target.stat().st_size,
                'created_at': datetime.now(timezone.utc).isoformat(),
                'metadata': record.metadata,
            }
            with open(self._sidecar(file_id), 'w', encoding='utf-8') as sidecar:
                json.dump(metadata, sidecar, ensure_ascii=False, indent=2, default=str)
        except OSError as e:
            target.unlink(missing_ok=True)
            raise StorageError(f"Failed to store file {record.filename}: {e}")

        self.logger.info(f"Stored {record.filename} as {file_id} ({metadata['length']} bytes)")
        return file_id

    def _sidecar(self, file_id: str) -> Path:
        return self.base_dir / f"{file_id}.meta.json"

    def get_path(self, file_id: str) -> Path:
        path = self.base_dir / self.get_metadata(file_id)['stored_name']
        if not path.exists():
            raise StorageError(f"File not found: {file_id}")
        return path

    def get_metadata(self, file_id: str) -> Dict[str, Any]:
        try:
            with open(self._sidecar(file_id), 'r', encoding='utf-8') as sidecar:
                return json.load(sidecar)
        except FileNotFoundError:
            raise StorageError(f"File not found: {file_id}")
