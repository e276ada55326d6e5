from __future__ import annotations
from typing import Any, Dict, Mapping, Optional, Protocol


class NodeInstance(Protocol):
    """Один управляемый узел (демон), созданный фабрикой."""

    api_addr: Optional[Any]
    gateway_addr: Optional[Any]
    grpc_addr: Optional[Any]
    initialized: bool
    started: bool
    disposable: bool
    clean: bool
    path: Optional[str]
    env: Mapping[str, str]

    def init(self, config: Optional[Dict[str, Any]] = None) -> Any: ...
    def start(self) -> Any: ...
    def stop(self) -> Any: ...
    def cleanup(self) -> Any: ...
    def pid(self) -> int: ...
    def version(self) -> str: ...


class NodeFactory(Protocol):
    def spawn(self, config: Optional[Dict[str, Any]] = None) -> NodeInstance: ...
