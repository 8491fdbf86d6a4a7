"""JSON file persistence for collections."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from collection_runner.config import Settings, get_settings
from collection_runner.errors import InvalidImportError
from collection_runner.logging import get_logger
from collection_runner.models import HISTORY_LIMIT, CollectionStructure
from collection_runner.storage.base import CollectionStore

EXPORT_TYPE = "collection-runner-export"
EXPORT_FORMAT = 1
EXPORT_SOURCE = "collection-runner"


@dataclass(slots=True)
class CollectionStats:
    total_collections: int
    total_requests: int
    total_folders: int
    total_environments: int
    total_environment_variables: int


@dataclass(slots=True)
class StorageInfo:
    storage_dir: Path
    collections_file: Path
    collections_count: int
    file_size: int
    last_modified: datetime | None


class JsonCollectionStore(CollectionStore):
    """Persist every collection into a single ``collections.json`` file.

    Each call re-reads the file so several processes pointing at the same
    directory see each other's writes. Whole-file writes go through a temp file
    and ``os.replace``.
    """

    def __init__(
        self,
        storage_dir: Path | str | None = None,
        *,
        settings: Settings | None = None,
        history_limit: int | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        super().__init__(history_limit=history_limit or self.settings.history_limit or HISTORY_LIMIT)
        if storage_dir is None:
            self.storage_dir = Path(self.settings.storage_dir).expanduser()
            self.collections_file = self.settings.collections_path
        else:
            self.storage_dir = Path(storage_dir)
            self.collections_file = self.storage_dir / self.settings.collections_filename
        self._file_lock = threading.RLock()
        self._logger = get_logger(__name__).bind(component="json_store")
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _read(self) -> dict[str, CollectionStructure]:
        if not self.collections_file.exists():
            return {}

        try:
            raw = json.loads(self.collections_file.read_text(encoding="utf-8"))
            return {collection_id: CollectionStructure.from_dict(data) for collection_id, data in raw.items()}
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            self._logger.error(
                "collections_read_failed",
                path=str(self.collections_file),
                error=str(exc),
            )
            return {}

    def _write(self, collections: dict[str, CollectionStructure]) -> None:
        payload = {collection_id: structure.to_dict() for collection_id, structure in collections.items()}
        tmp_path = self.collections_file.with_suffix(".tmp")
        try:
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.collections_file)
        except OSError as exc:
            self._logger.error("collections_write_failed", path=str(self.collections_file), error=str(exc))
            raise

    def get(self, collection_id: str) -> CollectionStructure | None:
        return self._read().get(collection_id)

    def get_all(self) -> dict[str, CollectionStructure]:
        return self._read()

    def save(self, collection_id: str, structure: CollectionStructure) -> None:
        with self._file_lock:
            collections = self._read()
            collections[collection_id] = structure
            self._write(collections)
        self._logger.debug("collection_saved", collection_id=collection_id)

    def delete(self, collection_id: str) -> bool:
        with self.lock(collection_id), self._file_lock:
            collections = self._read()
            deleted = collections.pop(collection_id, None) is not None
            if deleted:
                self._write(collections)
        self.release_lock(collection_id)
        if deleted:
            self._logger.info("collection_deleted", collection_id=collection_id)
        return deleted

    def clear(self) -> None:
        with self._file_lock:
            self._write({})
        self._logger.info("collections_cleared")

    def stats(self) -> CollectionStats:
        collections = self._read()
        return CollectionStats(
            total_collections=len(collections),
            total_requests=sum(len(s.requests) for s in collections.values()),
            total_folders=sum(len(s.folders) for s in collections.values()),
            total_environments=sum(len(s.environments) for s in collections.values()),
            total_environment_variables=sum(
                len(env.data) for s in collections.values() for env in s.environments
            ),
        )

    def storage_info(self) -> StorageInfo:
        file_size = 0
        last_modified: datetime | None = None
        if self.collections_file.exists():
            stat = self.collections_file.stat()
            file_size = stat.st_size
            last_modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

        return StorageInfo(
            storage_dir=self.storage_dir,
            collections_file=self.collections_file,
            collections_count=len(self._read()),
            file_size=file_size,
            last_modified=last_modified,
        )

    def export_to_file(self, path: Path | str) -> Path:
        """Write every collection into a self-describing export file."""

        export_path = Path(path)
        export_path.parent.mkdir(parents=True, exist_ok=True)
        payload: dict[str, Any] = {
            "_type": EXPORT_TYPE,
            "__export_format": EXPORT_FORMAT,
            "__export_date": datetime.now(timezone.utc).isoformat(),
            "__export_source": EXPORT_SOURCE,
            "collections": {cid: structure.to_dict() for cid, structure in self._read().items()},
        }
        export_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        self._logger.info("collections_exported", path=str(export_path))
        return export_path

    def import_from_file(self, path: Path | str) -> int:
        """Merge collections from an export file, replacing ones with the same id."""

        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict) or data.get("_type") != EXPORT_TYPE:
            raise InvalidImportError("Invalid import file format")

        imported = {cid: CollectionStructure.from_dict(raw) for cid, raw in (data.get("collections") or {}).items()}
        with self._file_lock:
            collections = self._read()
            collections.update(imported)
            self._write(collections)

        self._logger.info("collections_imported", path=str(path), count=len(imported))
        return len(imported)

    def backup(self, path: Path | str | None = None) -> Path:
        if path is None:
            stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")
            path = self.storage_dir / "backups" / f"collections-backup-{stamp}.json"
        return self.export_to_file(path)

    def restore(self, path: Path | str) -> int:
        return self.import_from_file(path)
