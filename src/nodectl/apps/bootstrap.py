# src/nodectl/apps/bootstrap.py
from __future__ import annotations
import importlib
import inspect
from threading import RLock
from typing import Any, Callable, Optional

from nodectl.adapters.fs.path_provider import PathProvider
from nodectl.ports import NodeFactory
from nodectl.services.control_context import ControlContext, set_ctx
from nodectl.services.eventbus import LocalEventBus
from nodectl.services.lifecycle import LifecycleController
from nodectl.services.logging import attach_event_logger, setup_logging
from nodectl.services.registry import NodeRegistry
from nodectl.services.settings import Settings


def load_factory(spec: str, **kwargs: Any) -> NodeFactory:
    """
    "package.module:attr" -> экземпляр фабрики.
    attr может быть классом/функцией (вызывается) или готовым объектом с методом spawn.
    Именованные аргументы фильтруются по сигнатуре.
    """
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise ValueError(f"factory must be given as 'module:attr', got {spec!r}")
    target = getattr(importlib.import_module(module_name), attr)
    if hasattr(target, "spawn") and not inspect.isclass(target):
        return target
    factory_fn: Callable[..., NodeFactory] = target
    sig = inspect.signature(factory_fn)
    return factory_fn(**{k: v for k, v in kwargs.items() if k in sig.parameters})


class _CtxHolder:
    _ctx: Optional[ControlContext] = None
    _lock = RLock()

    @classmethod
    def init(cls, settings: Optional[Settings] = None, factory: Optional[NodeFactory] = None) -> ControlContext:
        with cls._lock:
            cls._ctx = cls._build(settings or Settings.from_sources(), factory)
            set_ctx(cls._ctx)  # публикуем
            return cls._ctx

    @classmethod
    def get(cls) -> ControlContext:
        with cls._lock:
            if cls._ctx is None:
                return cls.init()
            return cls._ctx

    @staticmethod
    def _build(settings: Settings, factory: Optional[NodeFactory]) -> ControlContext:
        paths = PathProvider(settings)
        paths.ensure_tree()

        bus = LocalEventBus()
        root_logger = setup_logging(paths, level=settings.log_level)
        attach_event_logger(bus, root_logger.getChild("events"))

        if factory is None:
            factory = load_factory(settings.factory, tmp_root=paths.tmp_dir())

        registry = NodeRegistry()
        lifecycle = LifecycleController(factory, registry=registry, bus=bus)
        return ControlContext(
            settings=settings,
            paths=paths,
            bus=bus,
            factory=factory,
            registry=registry,
            lifecycle=lifecycle,
        )


# ── публичные функции ─────────────────────────────────────────


def init_ctx(settings: Optional[Settings] = None, factory: Optional[NodeFactory] = None) -> ControlContext:
    """Явная инициализация приложения и публикация контекста."""
    return _CtxHolder.init(settings, factory)


def bootstrap_app(settings: Optional[Settings] = None) -> ControlContext:
    """Для точек входа API: переиспользует уже собранный контекст, если он есть."""
    if settings is not None:
        return init_ctx(settings)
    return _CtxHolder.get()
