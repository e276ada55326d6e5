"""
In-memory node registry.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from threading import Lock, RLock
from typing import Any, Collection, Dict, Iterator, List, Optional

from nodectl.domain import Handle, NodeMetadata, NodeRecord, NodeState
from nodectl.services.errors import DuplicateHandle, InvalidState, UnknownHandle
from nodectl.services.handles import HandleAllocator


@dataclass(slots=True)
class _Entry:
    record: NodeRecord
    # guard: на всю операцию (check -> вызов инстанса -> transition)
    guard: RLock = field(default_factory=RLock)
    # lock: короткий, только чтение/запись state и metadata
    lock: Lock = field(default_factory=Lock)


class NodeRegistry:
    """Thread-safe store mapping handle -> node record.

    - the registry-wide lock covers only the map itself (lookup/insert/remove)
    - every record has its own re-entrant operation lock, so a blocking instance
      call on one handle never holds up another handle
    - state and metadata sit behind a separate short lock: get/records never
      wait for an in-flight instance call, they see the last committed state
    - state changes are compare-and-set under the short lock
    """

    def __init__(self, allocator: Optional[HandleAllocator] = None) -> None:
        self._allocator = allocator or HandleAllocator()
        self._entries: Dict[Handle, _Entry] = {}
        self._lock = RLock()

    # ---------- map ----------

    def insert(self, handle: Handle, instance: Any, state: NodeState = NodeState.SPAWNED) -> None:
        with self._lock:
            if handle in self._entries:
                raise DuplicateHandle(handle)
            self._entries[handle] = _Entry(
                NodeRecord(handle=handle, instance=instance, state=state, metadata=NodeMetadata.from_instance(instance))
            )

    def add(self, instance: Any, state: NodeState = NodeState.SPAWNED) -> Handle:
        """Allocate a fresh handle and insert the instance under it in one step."""
        with self._lock:
            handle = self._allocator.allocate()
            self.insert(handle, instance, state)
            return handle

    def remove(self, handle: Handle) -> None:
        with self._lock:
            if self._entries.pop(handle, None) is None:
                raise UnknownHandle(handle)

    def _entry(self, handle: Handle) -> _Entry:
        with self._lock:
            entry = self._entries.get(handle)
        if entry is None:
            raise UnknownHandle(handle)
        return entry

    # ---------- records ----------

    def get(self, handle: Handle) -> NodeRecord:
        """Consistent snapshot of the record: state and metadata from the same transition."""
        entry = self._entry(handle)
        with entry.lock:
            return replace(entry.record)

    def transition(self, handle: Handle, expected: Collection[NodeState], new_state: NodeState) -> NodeState:
        entry = self._entry(handle)
        with entry.lock:
            current = entry.record.state
            if current not in expected:
                raise InvalidState(handle, current, expected)
            entry.record.state = new_state
            entry.record.metadata = NodeMetadata.from_instance(entry.record.instance)
            return current

    @contextmanager
    def exclusive(self, handle: Handle) -> Iterator[NodeRecord]:
        """Держит блокировку записи на всё время операции (check -> вызов инстанса -> transition)."""
        entry = self._entry(handle)
        with entry.guard:
            yield entry.record

    def handles(self) -> List[Handle]:
        with self._lock:
            return list(self._entries)

    def records(self) -> List[NodeRecord]:
        out: List[NodeRecord] = []
        for handle in self.handles():
            try:
                out.append(self.get(handle))
            except UnknownHandle:
                # удалили между снимком списка и чтением
                continue
        return out

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
