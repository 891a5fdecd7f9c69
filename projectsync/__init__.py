"""Dual-store project record sync with identifier reconciliation."""

from .config import AppConfig
from .errors import (
    InputValidationError,
    LocalStorageError,
    NotFoundError,
    PartialSyncError,
    ProjectSyncError,
    RemoteUnavailableError,
)
from .models import ClassificationTag, ImportReport, ProjectRecord, Source, Status, SyncResult, TeamMember
from .sync import SyncCoordinator

__version__ = "0.1.0"

__all__ = [
    'AppConfig',
    'ClassificationTag',
    'ImportReport',
    'InputValidationError',
    'LocalStorageError',
    'NotFoundError',
    'PartialSyncError',
    'ProjectRecord',
    'ProjectSyncError',
    'RemoteUnavailableError',
    'Source',
    'Status',
    'SyncCoordinator',
    'SyncResult',
    'TeamMember',
]
