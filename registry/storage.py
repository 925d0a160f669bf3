"""
NFT Collection Registry - Collection Storage Backend

This module provides JSON-based persistence of collection snapshots with
atomic replacement, checksums and rotating backups.
"""

import hashlib
import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from .exceptions import IntegrityError
from .lifecycle import NFTCollection
from .schema import CollectionSnapshot


class StorageError(Exception):
    """Base storage exception."""
    pass


class JSONStorage:
    """JSON file storage with atomic writes and backups."""

    def __init__(self, file_path: Union[str, Path], backup_count: int = 5):
        self.file_path = Path(file_path)
        self.backup_count = backup_count
        self._lock = RLock()
        self.logger = logging.getLogger(__name__)

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def backup_dir(self) -> Path:
        return self.file_path.parent / 'backups'

    def _calculate_checksum(self, data: bytes) -> str:
        """Calculate SHA-256 checksum of data."""
        return hashlib.sha256(data).hexdigest()

    def _write_file(self, data: Dict[str, Any]) -> bytes:
        """Write data to file atomically and return the bytes written."""
        json_data = json.dumps(data, indent=2, sort_keys=True).encode('utf-8')
        temp_file = self.file_path.with_suffix(self.file_path.suffix + '.tmp')

        try:
            with open(temp_file, 'wb') as f:
                f.write(json_data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_file, self.file_path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StorageError(f"Failed to write file: {e}")

        return json_data

    def _create_backup(self) -> None:
        """Create timestamped backup of current file."""
        if not self.file_path.exists():
            return

        timestamp = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S_%f')
        backup_path = self.backup_dir / f"{self.file_path.stem}_{timestamp}{self.file_path.suffix}"
        backup_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.file_path, backup_path)

        self._cleanup_old_backups()

    def _cleanup_old_backups(self) -> None:
        """Remove old backup files beyond backup_count."""
        for backup_file in self.list_backups()[self.backup_count:]:
            try:
                backup_file.unlink()
            except OSError as e:
                self.logger.warning(f"Failed to remove old backup {backup_file}: {e}")

    def exists(self) -> bool:
        return self.file_path.exists()

    def size(self) -> int:
        if not self.file_path.exists():
            return 0
        return self.file_path.stat().st_size

    def read(self) -> Dict[str, Any]:
        """Read and deserialize data from storage; empty dict when absent."""
        with self._lock:
            if not self.file_path.exists():
                return {}

            try:
                raw = self.file_path.read_bytes()
            except OSError as e:
                raise StorageError(f"Failed to read storage: {e}")

            if not raw:
                return {}

            try:
                return json.loads(raw.decode('utf-8'))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise IntegrityError(f"Invalid JSON data: {e}")

    def write(self, data: Dict[str, Any], create_backup: bool = True) -> str:
        """Write data to storage atomically and return its checksum."""
        with self._lock:
            if create_backup:
                self._create_backup()
            return self._calculate_checksum(self._write_file(data))

    def list_backups(self) -> List[Path]:
        """List backup files, newest first."""
        if not self.backup_dir.exists():
            return []

        pattern = f"{self.file_path.stem}_*{self.file_path.suffix}"
        return sorted(self.backup_dir.glob(pattern), key=lambda p: p.name, reverse=True)

    def restore_backup(self, backup_timestamp: str) -> bool:
        """Restore from a specific backup."""
        backup_path = self.backup_dir / f"{self.file_path.stem}_{backup_timestamp}{self.file_path.suffix}"

        if not backup_path.exists():
            return False

        with self._lock:
            self._create_backup()
            shutil.copy2(backup_path, self.file_path)
            return True


class CollectionStorage:
    """High-level collection storage interface."""

    def __init__(
        self,
        storage_dir: Union[str, Path] = "collection_data",
        state_file: str = "collection.json",
        backup_count: int = 5
    ):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.json_storage = JSONStorage(self.storage_dir / state_file, backup_count=backup_count)
        self.logger = logging.getLogger(__name__)

    def exists(self) -> bool:
        return self.json_storage.exists()

    def load_collection(self, clock: Optional[Callable[[], float]] = None) -> NFTCollection:
        """
        Load the stored collection.

        Raises:
            StorageError: If no collection has been stored
            IntegrityError: If the stored data is malformed or inconsistent
        """
        data = self.json_storage.read()
        if not data:
            raise StorageError(f"No collection stored at {self.json_storage.file_path}")

        try:
            snapshot = CollectionSnapshot.model_validate(data)
        except ValidationError as e:
            raise IntegrityError(f"Invalid collection data: {e}")

        collection = NFTCollection.from_snapshot(snapshot, clock=clock)
        self.logger.debug(f"Loaded collection {collection.symbol} from {self.json_storage.file_path}")
        return collection

    def save_collection(self, collection: NFTCollection, create_backup: bool = True) -> str:
        """Persist a collection and return the file checksum."""
        collection.check_invariants()
        data = collection.snapshot().model_dump(mode='json')
        checksum = self.json_storage.write(data, create_backup=create_backup)
        self.logger.info(f"Saved collection {collection.symbol} ({checksum[:12]})")
        return checksum

    def list_backups(self) -> List[str]:
        """List available backup timestamps, newest first."""
        prefix = f"{self.json_storage.file_path.stem}_"
        return [backup.stem[len(prefix):] for backup in self.json_storage.list_backups()]

    def restore_backup(self, timestamp: str) -> bool:
        return self.json_storage.restore_backup(timestamp)

    def get_storage_info(self) -> Dict[str, Any]:
        return {
            'file_path': str(self.json_storage.file_path),
            'size_bytes': self.json_storage.size(),
            'exists': self.json_storage.exists(),
            'backup_count': len(self.json_storage.list_backups()),
        }
