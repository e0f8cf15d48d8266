"""
Persistent identifier store

Maps a remote content identifier to the last known local path of its file.
The store is global across channels and is the first place the
reconciliation pass looks when an item's canonical file is missing, which is
what makes renames cheap to detect.

Entries are added or replaced, never removed: a stale entry points to a path
that no longer exists and is simply ignored.
"""

import json
import shutil
from pathlib import Path
from typing import Dict, ItemsView, Optional, Union

from ..exceptions import FilesystemError
from ..utils.helpers import atomic_write_text
from ..utils.logger import get_logger


logger = get_logger(__name__)


class IdentifierStore:
    """
    id -> local path map backed by a JSON file

    A store created without a path lives only in memory, which is what tests
    and dry inspections use.
    """

    def __init__(self, entries: Optional[Dict[str, str]] = None, path: Optional[Path] = None):
        self._entries: Dict[str, str] = dict(entries or {})
        self.path = Path(path) if path else None
        self.dirty = False

    @property
    def backup_path(self) -> Optional[Path]:
        return self.path.with_name(self.path.name + '.bak') if self.path else None

    @classmethod
    def load(cls, path: Union[str, Path]) -> "IdentifierStore":
        """
        Load the store, restoring from the backup copy if needed

        A missing or empty store file is restored from '<file>.bak' when that
        exists; otherwise an empty store bound to the path is returned.

        Raises:
            FilesystemError: If the file exists but cannot be read or parsed
        """
        store = cls(path=Path(path))
        source = store.path

        if not source.exists() or source.stat().st_size == 0:
            backup = store.backup_path
            if backup.exists() and backup.stat().st_size > 0:
                logger.warning(f"Identifier store {source} is missing or empty, restoring from {backup}")
                source = backup
            else:
                logger.debug(f"No identifier store at {source}, starting empty")
                return store

        try:
            with open(source, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FilesystemError(f"Failed to read identifier store {source}: {e}",
                                  details={'path': str(source), 'original_error': e}) from e

        if not isinstance(data, dict):
            raise FilesystemError(f"Identifier store {source} is not a JSON object", details={'path': str(source)})

        store._entries = {str(k): str(v) for k, v in data.items() if k and v}
        logger.debug(f"Loaded {len(store)} identifiers from {source}")
        return store

    def save(self) -> None:
        """
        Persist the store

        The current file is copied to the backup first, then the new content
        replaces it atomically.

        Raises:
            FilesystemError: If the file cannot be written
        """
        if self.path is None:
            self.dirty = False
            return

        try:
            if self.path.exists() and self.path.stat().st_size > 0:
                shutil.copy2(self.path, self.backup_path)
            atomic_write_text(self.path, json.dumps(self._entries, indent=2, ensure_ascii=False, sort_keys=True))
        except OSError as e:
            raise FilesystemError(f"Failed to save identifier store {self.path}: {e}",
                                  details={'path': str(self.path), 'original_error': e}) from e

        self.dirty = False
        logger.debug(f"Saved {len(self)} identifiers to {self.path}")

    def get(self, identifier: str) -> Optional[Path]:
        value = self._entries.get(identifier)
        return Path(value) if value else None

    def put(self, identifier: str, path: Union[str, Path]) -> None:
        """Add or replace the path of an identifier"""
        value = str(path)
        if self._entries.get(identifier) != value:
            self._entries[identifier] = value
            self.dirty = True

    def items(self) -> ItemsView[str, str]:
        return self._entries.items()

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def __len__(self) -> int:
        return len(self._entries)
