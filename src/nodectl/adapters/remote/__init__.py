from .client import RemoteNode, RemoteNodeClient

__all__ = ["RemoteNode", "RemoteNodeClient"]
