"""Offline queue and sync client for merchant terminals."""

from .manager import SyncManager, SyncResult
from .store import OfflineStore

__all__ = ["OfflineStore", "SyncManager", "SyncResult"]
