"""
Project record synchronization.

This module provides the components that keep the local cache and the
remote store consistent:
- LocalCacheStore: SQLite cache of every record the client wrote
- HttpRemoteStore / OfflineRemoteStore: clients for the remote records API
- IdentifierGenerator: structured identifiers with local serial fallback
- SyncCoordinator: dual-store reads and writes with tagged results
"""

from .identifier_generator import (
    IdentifierGenerator,
    LocalSerialAllocator,
    RemoteSerialAllocator,
    SerialAllocator,
)
from .local_cache import LocalCacheStore
from .record_merger import merge
from .remote_store import HttpRemoteStore, OfflineRemoteStore, RemoteStore
from .sync_coordinator import SyncCoordinator

__all__ = [
    'HttpRemoteStore',
    'IdentifierGenerator',
    'LocalCacheStore',
    'LocalSerialAllocator',
    'OfflineRemoteStore',
    'RemoteSerialAllocator',
    'RemoteStore',
    'SerialAllocator',
    'SyncCoordinator',
    'merge',
]
