# src/nodectl/services/lifecycle.py
from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from nodectl.domain import Handle, NodeMetadata, NodeRecord, NodeState
from nodectl.ports import EventBus, NodeFactory
from nodectl.services.errors import InvalidState, NodeCtlError, OperationFailed, UnknownHandle
from nodectl.services.eventbus import LocalEventBus, emit
from nodectl.services.registry import NodeRegistry

_log = logging.getLogger("nodectl.lifecycle")

LIVE_STATES: FrozenSet[NodeState] = frozenset(s for s in NodeState if s is not NodeState.CLEANED_UP)

# допустимые исходные состояния для каждой операции
INIT_FROM = frozenset({NodeState.SPAWNED, NodeState.INITIALIZED})
START_FROM = frozenset({NodeState.INITIALIZED, NodeState.STOPPED})
STOP_FROM = frozenset({NodeState.STARTED})
PID_FROM = frozenset({NodeState.STARTED})


def _initial_state(instance: Any) -> NodeState:
    # фабрика может сразу проинициализировать/запустить узел (init/start в конфиге spawn)
    if getattr(instance, "started", False):
        return NodeState.STARTED
    if getattr(instance, "initialized", False):
        return NodeState.INITIALIZED
    return NodeState.SPAWNED


class LifecycleController:
    """
    Оркестрация операций над узлами:
      - проверяет состояние через NodeRegistry (под блокировкой записи)
      - вызывает инстанс, созданный фабрикой
      - любые ошибки инстанса превращает в OperationFailed
      - публикует события node.* в EventBus
    """

    def __init__(self, factory: NodeFactory, registry: Optional[NodeRegistry] = None, bus: Optional[EventBus] = None) -> None:
        self._factory = factory
        self._registry = registry or NodeRegistry()
        self._bus = bus or LocalEventBus()

    @property
    def registry(self) -> NodeRegistry:
        return self._registry

    # ---------- helpers ----------

    def _emit(self, type_: str, handle: Optional[Handle], **payload: Any) -> None:
        emit(self._bus, type_, {"handle": handle, **payload}, "lifecycle")

    def _invoke(self, handle: Optional[Handle], operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        # ошибки самого инстанса (в т.ч. NodeCtlError удалённого узла) всегда OperationFailed;
        # ошибки реестра сюда не попадают, они бросаются вне fn
        try:
            return fn(*args)
        except Exception as e:
            err = OperationFailed.from_exception(e, operation=operation)
            self._emit("node.failed", handle, operation=operation, error=err.message, output=err.output)
            raise err from e

    @staticmethod
    def _require(record: NodeRecord, allowed: FrozenSet[NodeState], operation: str) -> None:
        if record.state not in allowed:
            raise InvalidState(record.handle, record.state, allowed, operation=operation)

    # ---------- operations ----------

    def spawn(self, config: Optional[Dict[str, Any]] = None) -> NodeRecord:
        instance = self._invoke(None, "spawn", self._factory.spawn, dict(config or {}))
        handle = self._registry.add(instance, _initial_state(instance))
        record = self._registry.get(handle)
        self._emit("node.spawned", handle, state=record.state.value)
        return record

    def init(self, handle: Handle, config: Optional[Dict[str, Any]] = None) -> bool:
        with self._registry.exclusive(handle) as rec:
            self._require(rec, INIT_FROM, "init")
            self._invoke(handle, "init", rec.instance.init, dict(config or {}))
            self._registry.transition(handle, INIT_FROM, NodeState.INITIALIZED)
            initialized = rec.metadata.initialized
        self._emit("node.initialized", handle)
        return initialized

    def start(self, handle: Handle) -> NodeMetadata:
        with self._registry.exclusive(handle) as rec:
            self._require(rec, START_FROM, "start")
            self._invoke(handle, "start", rec.instance.start)
            self._registry.transition(handle, START_FROM, NodeState.STARTED)
            meta = rec.metadata
        self._emit("node.started", handle, api_addr=meta.api_addr)
        return meta

    def stop(self, handle: Handle) -> None:
        with self._registry.exclusive(handle) as rec:
            self._require(rec, STOP_FROM, "stop")
            self._invoke(handle, "stop", rec.instance.stop)
            self._registry.transition(handle, STOP_FROM, NodeState.STOPPED)
        self._emit("node.stopped", handle)

    def cleanup(self, handle: Handle) -> None:
        """Идемпотентно: повторный cleanup (или неизвестный handle) это успешный no-op."""
        with ExitStack() as stack:
            try:
                rec = stack.enter_context(self._registry.exclusive(handle))
            except UnknownHandle:
                _log.debug("cleanup.noop", extra={"extra": {"handle": handle}})
                return
            if rec.state is NodeState.CLEANED_UP:
                return
            self._invoke(handle, "cleanup", rec.instance.cleanup)
            self._registry.transition(handle, LIVE_STATES, NodeState.CLEANED_UP)
            self._registry.remove(handle)
        self._emit("node.cleaned", handle)

    def pid(self, handle: Handle) -> int:
        with self._registry.exclusive(handle) as rec:
            self._require(rec, PID_FROM, "pid")
            pid = self._invoke(handle, "pid", rec.instance.pid)
        if not isinstance(pid, int) or pid <= 0:
            raise OperationFailed(f"node {handle} reported no process id", operation="pid")
        return pid

    def version(self, handle: Handle) -> str:
        with self._registry.exclusive(handle) as rec:
            self._require(rec, LIVE_STATES, "version")
            return str(self._invoke(handle, "version", rec.instance.version))

    def status(self, handle: Handle) -> NodeRecord:
        record = self._registry.get(handle)
        self._require(record, LIVE_STATES, "status")
        return record

    def list(self) -> List[NodeRecord]:
        return self._registry.records()

    def teardown(self) -> None:
        """Остановка запущенных узлов и очистка disposable-узлов при завершении процесса."""
        for record in self._registry.records():
            if record.state is NodeState.STARTED:
                try:
                    self.stop(record.handle)
                except NodeCtlError:
                    _log.exception("teardown.stop_failed", extra={"extra": {"handle": record.handle}})
            if record.metadata.disposable:
                try:
                    self.cleanup(record.handle)
                except NodeCtlError:
                    _log.exception("teardown.cleanup_failed", extra={"extra": {"handle": record.handle}})
