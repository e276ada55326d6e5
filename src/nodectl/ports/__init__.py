from .contracts import EventBus
from .node import NodeFactory, NodeInstance

__all__ = ["EventBus", "NodeFactory", "NodeInstance"]
