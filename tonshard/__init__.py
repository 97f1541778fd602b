"""Shard routing, pending message tracking and private key sealing."""

__version__ = "0.1.0"
__all__ = ["encoding", "shard", "pending_messages"]