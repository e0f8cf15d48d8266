"""
Per-channel run state

Each channel keeps three ordered id sets between runs:

- queued: items that still need to be fetched
- saved: items whose file is present locally
- blocked: items that failed permanently and are not retried by default

plus an error flag raised when the channel could not be fully processed
(for example an incomplete remote listing). The error flag suppresses the
playlist rewrite and the cleanup pass, which would otherwise act on partial
information.

The state is saved after every mutating step so an interrupted run leaves a
consistent snapshot behind.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..exceptions import FilesystemError
from ..utils.helpers import atomic_write_text
from ..utils.logger import get_logger


logger = get_logger(__name__)


def _unique(ids: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for identifier in ids:
        if identifier is None:
            continue
        identifier = str(identifier).strip()
        if identifier and identifier not in seen:
            seen.add(identifier)
            result.append(identifier)
    return result


def state_path(data_directory: Union[str, Path], key: str) -> Path:
    """Location of a channel's state file under the data directory"""
    return Path(data_directory) / "channel" / key / f"{key}-state.json"


@dataclass
class ChannelState:
    """
    Mutable run state of one channel

    The id lists behave as ordered sets; use the helper methods to mutate
    them so membership stays consistent.
    """
    key: str
    queued: List[str] = field(default_factory=list)
    saved: List[str] = field(default_factory=list)
    blocked: List[str] = field(default_factory=list)
    error_flag: bool = False
    path: Optional[Path] = None

    @classmethod
    def load(cls, data_directory: Union[str, Path], key: str) -> "ChannelState":
        """
        Load the state of a channel, or a fresh one if none was saved yet

        Raises:
            FilesystemError: If the state file exists but cannot be read
        """
        path = state_path(data_directory, key)
        state = cls(key=key, path=path)
        if not path.exists() or path.stat().st_size == 0:
            return state

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FilesystemError(f"Failed to read state of {key}: {e}",
                                  details={'path': str(path), 'original_error': e}) from e

        state.queued = _unique(data.get('queued') or [])
        state.saved = _unique(data.get('saved') or [])
        state.blocked = _unique(data.get('blocked') or [])
        state.error_flag = bool(data.get('error', False))
        return state

    def normalize(self) -> None:
        """
        Drop blank and duplicate ids and make the sets consistent

        Order matters: queued loses blocked and saved ids first, then an id
        that is both saved and blocked stays blocked only.
        """
        self.queued = _unique(self.queued)
        self.saved = _unique(self.saved)
        self.blocked = _unique(self.blocked)

        blocked = set(self.blocked)
        saved = set(self.saved)
        self.queued = [i for i in self.queued if i not in blocked and i not in saved]
        self.saved = [i for i in self.saved if i not in blocked]
        saved = set(self.saved)
        self.blocked = [i for i in self.blocked if i not in saved]

    def save(self) -> None:
        """
        Normalize and persist the state

        Raises:
            FilesystemError: If the state file cannot be written
        """
        self.normalize()
        if self.path is None:
            return

        document = {
            'key': self.key,
            'queued': self.queued,
            'saved': self.saved,
            'blocked': self.blocked,
            'error': self.error_flag,
        }
        try:
            atomic_write_text(self.path, json.dumps(document, indent=2, ensure_ascii=False))
        except OSError as e:
            raise FilesystemError(f"Failed to save state of {self.key}: {e}",
                                  details={'path': str(self.path), 'original_error': e}) from e

    def queue(self, identifier: str) -> None:
        if identifier not in self.queued:
            self.queued.append(identifier)

    def dequeue(self, identifier: str) -> None:
        if identifier in self.queued:
            self.queued.remove(identifier)

    def mark_saved(self, identifier: str) -> None:
        if identifier not in self.saved:
            self.saved.append(identifier)

    def unsave(self, identifier: str) -> None:
        if identifier in self.saved:
            self.saved.remove(identifier)

    def block(self, identifier: str) -> None:
        self.dequeue(identifier)
        if identifier not in self.blocked:
            self.blocked.append(identifier)

    def unblock(self, identifier: str) -> None:
        if identifier in self.blocked:
            self.blocked.remove(identifier)

    def is_blocked(self, identifier: str) -> bool:
        return identifier in self.blocked

    def __str__(self) -> str:
        return (f"ChannelState({self.key}: {len(self.queued)} queued, {len(self.saved)} saved, "
                f"{len(self.blocked)} blocked{', error' if self.error_flag else ''})")
