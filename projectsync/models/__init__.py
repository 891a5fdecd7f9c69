"""Models package for projectsync."""

from .classification import ClassificationTag
from .project_record import ProjectRecord
from .sync_result import ImportReport, Source, Status, SyncResult
from .team_member import TeamMember

__all__ = [
    'ClassificationTag',
    'ImportReport',
    'ProjectRecord',
    'Source',
    'Status',
    'SyncResult',
    'TeamMember',
]
