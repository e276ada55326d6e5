from .subprocess_node import NodeProcessError, SubprocessNode, SubprocessNodeFactory

__all__ = ["NodeProcessError", "SubprocessNode", "SubprocessNodeFactory"]
