"""Error taxonomy shared by the registry, the lifecycle controller and the transport."""

from __future__ import annotations

from typing import Iterable, Optional

from nodectl.domain import NodeState


class NodeCtlError(RuntimeError):
    """Base class for all control-plane errors."""

    kind = "error"


class DuplicateHandle(NodeCtlError):
    """Raised when a handle is inserted twice."""

    kind = "duplicate_handle"

    def __init__(self, handle: str) -> None:
        self.handle = handle
        super().__init__(f"handle already registered: {handle}")


class UnknownHandle(NodeCtlError):
    """Raised when a handle has no registry record (never spawned or already cleaned up)."""

    kind = "unknown_handle"

    def __init__(self, handle: str) -> None:
        self.handle = handle
        super().__init__(f"unknown node handle: {handle}")


class InvalidState(NodeCtlError):
    """Raised when an operation is attempted outside its allowed states."""

    kind = "invalid_state"

    def __init__(self, handle: str, current: NodeState, expected: Iterable[NodeState], *, operation: Optional[str] = None) -> None:
        self.handle = handle
        self.current = current
        self.expected = frozenset(expected)
        self.operation = operation
        allowed = ", ".join(sorted(s.value for s in self.expected))
        action = f"cannot {operation} node {handle}" if operation else f"invalid state for node {handle}"
        super().__init__(f"{action}: state is '{current.value}', expected one of [{allowed}]")


class OperationFailed(NodeCtlError):
    """Raised when the underlying factory/instance call fails; carries captured process output."""

    kind = "operation_failed"

    def __init__(self, message: str, *, output: Optional[str] = None, operation: Optional[str] = None) -> None:
        self.message = message
        self.output = output
        self.operation = operation
        # формат ответа endpoint-а: "<stdout> - <message>"
        super().__init__(f"{output} - {message}" if output else message)

    @classmethod
    def from_exception(cls, exc: BaseException, *, operation: Optional[str] = None) -> "OperationFailed":
        output = getattr(exc, "stdout", None) or getattr(exc, "output", None)
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        if isinstance(exc, OperationFailed):
            message = exc.message
        else:
            message = str(exc) or exc.__class__.__name__
        return cls(message, output=output or None, operation=operation)


__all__ = [
    "NodeCtlError",
    "DuplicateHandle",
    "UnknownHandle",
    "InvalidState",
    "OperationFailed",
]
