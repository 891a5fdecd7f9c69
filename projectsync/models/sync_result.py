"""
Tagged results returned by every SyncCoordinator operation.

A result says where its value came from and whether the operation fully
reached the remote store, so callers can tell "fully synced" apart from
"local only" without reading logs.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class Source(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


class Status(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class SyncResult(Generic[T]):
    source: Source
    status: Status
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status is Status.OK

    @property
    def degraded(self) -> bool:
        return self.status is Status.DEGRADED

    @property
    def failed(self) -> bool:
        return self.status is Status.FAILED

    @property
    def succeeded(self) -> bool:
        """True when at least one store accepted the operation."""
        return self.status is not Status.FAILED

    @classmethod
    def remote(cls, value: Any = None) -> "SyncResult":
        return cls(Source.REMOTE, Status.OK, value)

    @classmethod
    def local(cls, value: Any = None, error: Optional[Exception] = None) -> "SyncResult":
        """A local-only outcome. Degraded whenever an error explains why the remote was skipped."""
        status = Status.DEGRADED if error is not None else Status.OK
        return cls(Source.LOCAL, status, value, error)

    @classmethod
    def failure(cls, error: Exception, source: Source = Source.LOCAL) -> "SyncResult":
        return cls(source, Status.FAILED, None, error)


@dataclass
class ImportReport:
    """Outcome of importing a snapshot record by record."""
    total: int = 0
    synced: int = 0
    local_only: int = 0
    failed: List[Tuple[int, Exception]] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return self.synced + self.local_only
