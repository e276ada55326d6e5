# src/nodectl/services/control_context.py
from __future__ import annotations
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional

from nodectl.adapters.fs.path_provider import PathProvider
from nodectl.ports import EventBus, NodeFactory
from nodectl.services.lifecycle import LifecycleController
from nodectl.services.registry import NodeRegistry
from nodectl.services.settings import Settings

_CTX: ContextVar[Optional["ControlContext"]] = ContextVar("nodectl_ctx", default=None)
# значение, выставленное в lifespan, не видно задачам запросов, поэтому нужен процессный fallback
_PROCESS_CTX: Optional["ControlContext"] = None


@dataclass(slots=True)
class ControlContext:
    settings: Settings
    paths: PathProvider
    bus: EventBus
    factory: NodeFactory
    registry: NodeRegistry
    lifecycle: LifecycleController


def set_ctx(ctx: ControlContext) -> None:
    """Устанавливает текущий ControlContext (делает доступным через get_ctx)."""
    global _PROCESS_CTX
    _PROCESS_CTX = ctx
    _CTX.set(ctx)


def get_ctx() -> ControlContext:
    """Возвращает текущий ControlContext или бросает ошибку, если не инициализирован."""
    ctx = _CTX.get() or _PROCESS_CTX
    if ctx is None:
        raise RuntimeError("ControlContext is not initialized. Call set_ctx(...) during app bootstrap.")
    return ctx


def clear_ctx() -> None:
    """Очищает текущий контекст (для тестов/завершения)."""
    global _PROCESS_CTX
    _PROCESS_CTX = None
    _CTX.set(None)


@contextmanager
def use_ctx(ctx: ControlContext):
    """Временная подмена контекста (удобно в тестах)."""
    token = _CTX.set(ctx)
    try:
        yield
    finally:
        _CTX.reset(token)
