"""Synchronization with the remote estimates service."""

from pyturnout.sync.channel import SyncChannel

__all__ = ["SyncChannel"]
