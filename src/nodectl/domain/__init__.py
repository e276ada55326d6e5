from .types import Handle, NodeState, Event, NodeMetadata, NodeRecord

__all__ = ["Handle", "NodeState", "Event", "NodeMetadata", "NodeRecord"]
