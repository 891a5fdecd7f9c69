"""
Exception types raised by the cache, the remote store and the allocators.

The coordinator catches these at its boundary and reports them inside
SyncResult objects instead of letting them escape to callers.
"""
from typing import List, Optional


class ProjectSyncError(Exception):
    """Base class for every error raised by projectsync."""


class InputValidationError(ProjectSyncError):
    """A required identifier or field is missing or malformed."""


class RemoteUnavailableError(ProjectSyncError):
    """The remote store could not be reached or returned a malformed response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFoundError(ProjectSyncError):
    """The record is absent from both stores."""

    def __init__(self, record_id: str, available_ids: Optional[List[str]] = None):
        super().__init__(f"Project not found: {record_id}")
        self.record_id = record_id
        self.available_ids = available_ids or []


class LocalStorageError(ProjectSyncError):
    """The local cache medium failed to read or write."""


class PartialSyncError(ProjectSyncError):
    """One store accepted a mutation and the other did not."""

    def __init__(
        self,
        message: str,
        local_ok: bool,
        remote_ok: bool,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.local_ok = local_ok
        self.remote_ok = remote_ok
        self.cause = cause
