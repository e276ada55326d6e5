from __future__ import annotations
import uuid
from threading import Lock
from typing import Set

from nodectl.domain import Handle


def _gen_handle() -> str:
    return uuid.uuid4().hex


class HandleAllocator:
    """Выдаёт непредсказуемые идентификаторы; ни один не выдаётся повторно за время жизни процесса."""

    def __init__(self) -> None:
        # все выданные handle, включая уже удалённые из реестра: реестр помнит только живые,
        # а handle после cleanup не должен вернуться другому узлу
        self._issued: Set[str] = set()
        self._lock = Lock()

    def allocate(self) -> Handle:
        with self._lock:
            handle = _gen_handle()
            while handle in self._issued:
                handle = _gen_handle()
            self._issued.add(handle)
            return handle

    def issued(self, handle: str) -> bool:
        with self._lock:
            return handle in self._issued
