# src/nodectl/domain/types.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

Handle = str


class NodeState(str, Enum):
    SPAWNED = "spawned"
    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPED = "stopped"
    CLEANED_UP = "cleaned_up"


@dataclass(frozen=True, slots=True)
class Event:
    type: str
    payload: Mapping[str, Any]
    source: str
    ts: float


def _addr(value: Any) -> Optional[str]:
    # адреса у инстанса могут быть multiaddr/URL-объектами
    if value is None:
        return None
    text = str(value)
    return text or None


@dataclass(frozen=True, slots=True)
class NodeMetadata:
    api_addr: Optional[str] = None
    gateway_addr: Optional[str] = None
    grpc_addr: Optional[str] = None
    disposable: bool = False
    path: Optional[str] = None
    initialized: bool = False
    started: bool = False
    clean: bool = False
    env: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_instance(cls, instance: Any) -> "NodeMetadata":
        path = getattr(instance, "path", None)
        return cls(
            api_addr=_addr(getattr(instance, "api_addr", None)),
            gateway_addr=_addr(getattr(instance, "gateway_addr", None)),
            grpc_addr=_addr(getattr(instance, "grpc_addr", None)),
            disposable=bool(getattr(instance, "disposable", False)),
            path=str(path) if path is not None else None,
            initialized=bool(getattr(instance, "initialized", False)),
            started=bool(getattr(instance, "started", False)),
            clean=bool(getattr(instance, "clean", False)),
            env=dict(getattr(instance, "env", None) or {}),
        )


@dataclass(slots=True)
class NodeRecord:
    handle: Handle
    instance: Any
    state: NodeState = NodeState.SPAWNED
    # снимок инстанса на момент последнего перехода, согласован со state
    metadata: NodeMetadata = field(default_factory=NodeMetadata)
