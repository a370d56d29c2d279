"""
diagnostics.py — Keyed, clearable message groups for one build run.

A DiagnosticsContext replaces process-wide warning state. Groups are
addressed by key:
  - (Group.PROPERTY_NAME_COLLISION_WARNINGS, destination) for per-file
    collision messages, cleared at the start of each file's check
  - Group.FILTERED_OUTPUT_REFERENCES for reference-loss messages, which
    accumulate across the run until a reporter flushes them

Every operation takes the context lock, so flush() (read + clear) is a
single step even when files are emitted from several threads.
"""

import threading
from enum import Enum
from typing import Dict, Hashable, List, Tuple, Union


class Group(str, Enum):
    PROPERTY_NAME_COLLISION_WARNINGS = 'PropertyNameCollisionWarnings'
    FILTERED_OUTPUT_REFERENCES = 'FilteredOutputReferences'


GroupKey = Union[Group, Tuple[Group, str], Hashable]


def file_group(group: Group, destination: str) -> Tuple[Group, str]:
    """Key for a group scoped to one destination."""
    return (group, destination)


class DiagnosticsContext:
    """Message buckets for one build run."""

    def __init__(self):
        self._groups: Dict[GroupKey, List[str]] = {}
        self._lock = threading.RLock()

    def add(self, key: GroupKey, message: str):
        with self._lock:
            self._groups.setdefault(key, []).append(message)

    def count(self, key: GroupKey) -> int:
        with self._lock:
            return len(self._groups.get(key, []))

    def fetch_messages(self, key: GroupKey) -> List[str]:
        with self._lock:
            return list(self._groups.get(key, []))

    def clear(self, key: GroupKey):
        with self._lock:
            self._groups.pop(key, None)

    def flush(self, key: GroupKey) -> List[str]:
        """Return the group's messages and clear it."""
        with self._lock:
            return self._groups.pop(key, [])

    def keys(self) -> List[GroupKey]:
        with self._lock:
            return [key for key, messages in self._groups.items() if messages]
