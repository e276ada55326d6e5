from __future__ import annotations
import logging
import time
from collections import defaultdict
from threading import RLock
from typing import Any, Callable, DefaultDict, List

from nodectl.domain import Event
from nodectl.ports import EventBus

Handler = Callable[[Event], Any]

_log = logging.getLogger("nodectl.bus")


class LocalEventBus(EventBus):
    """
    Простая синхронная шина по префиксам типов событий.
    - subscribe(prefix, handler)
    - publish(event)
    prefix = "" или "*": подписка на всё.
    Обработчики вызываются в потоке публикующего; ошибка подписчика не ломает операцию узла.
    """

    def __init__(self) -> None:
        self._subs: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._lock = RLock()

    def subscribe(self, type_prefix: str, handler: Handler) -> None:
        with self._lock:
            self._subs[type_prefix].append(handler)

    def publish(self, event: Event) -> None:
        with self._lock:
            pairs = [(p, hs[:]) for p, hs in self._subs.items()]
        for prefix, handlers in pairs:
            if prefix in ("*", "") or event.type.startswith(prefix):
                for h in handlers:
                    try:
                        h(event)
                    except Exception:
                        _log.exception("bus.handler_failed", extra={"extra": {"type": event.type}})


def emit(bus: EventBus, type_: str, payload: dict, source: str) -> None:
    bus.publish(Event(type=type_, payload=payload, source=source, ts=time.time()))
