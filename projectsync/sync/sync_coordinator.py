"""
Dual-store coordinator for project records.

Every write lands in the local cache first and is then attempted against the
remote store. Reads prefer the remote store and fall back to the cache.
Results are returned as SyncResult objects tagged with their source and
whether the remote store was reached, so a local-only outcome is never
mistaken for a synced one.

Operations run on one asyncio event loop. Each remote call is awaited before
the next step starts; the coordinator never issues concurrent remote requests
for the same record and never retries in the background. Records that failed
to reach the remote store stay local-only until sync_pending() or a later
write pushes them.

Cache reads and writes are blocking SQLite calls and run in a worker thread
(asyncio.to_thread). clear_cache() and clear_all() are synchronous.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..classification.field_classifier import classify_input
from ..config.app_config import AppConfig
from ..errors import (
    InputValidationError,
    LocalStorageError,
    NotFoundError,
    PartialSyncError,
    ProjectSyncError,
    RemoteUnavailableError,
)
from ..models.field_mapping import (
    FIELD_MAP,
    UPDATABLE_COLUMNS,
    drop_empty,
    emails_from_input,
    is_empty,
    map_attributes,
    team_from_input,
    unique_emails,
)
from ..models.project_record import ProjectRecord
from ..models.sync_result import ImportReport, Source, Status, SyncResult
from .identifier_generator import (
    IdentifierGenerator,
    LocalSerialAllocator,
    RemoteSerialAllocator,
)
from .local_cache import LocalCacheStore
from .record_merger import merge
from .remote_store import HttpRemoteStore, OfflineRemoteStore, RemoteStore

logger = logging.getLogger(__name__)

REMOTE_SEARCH_FIELDS = ("project_name", "project_description", "client_name", "tech_stack")
LOCAL_SEARCH_FIELDS = ("projectName", "projectDescription", "clientName", "techStack")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_temporary_id() -> str:
    return str(uuid.uuid4())


def _text_matches(value: Any, term: str) -> bool:
    return isinstance(value, str) and term in value.lower()


def _matches_query(data: Mapping[str, Any], term: str, fields: Sequence[str]) -> bool:
    name, description, client, tech = fields
    if any(_text_matches(data.get(key), term) for key in (name, description, client)):
        return True
    tech_stack = data.get(tech)
    return isinstance(tech_stack, list) and any(_text_matches(item, term) for item in tech_stack)


def _in_date_range(start_value: Any, end_value: Any, start: str, end: str) -> bool:
    if is_empty(start_value) or is_empty(end_value):
        return False
    return str(start_value) >= start and str(end_value) <= end


class SyncCoordinator:
    """
    Orchestrates project reads and writes across the local cache and the remote store.

    This class provides:
    - Durability-first saves with temporary-to-permanent id reconciliation
    - Merged, ordered and by-id reads with local fallback
    - Updates and deletes applied to both stores independently
    - Search and filters over the merged view
    - Snapshot export/import and explicit flushing of local-only records
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        remote: RemoteStore,
        identifiers: Optional[IdentifierGenerator] = None,
        surface_create_failures: bool = False,
        id_factory: Callable[[], str] = _new_temporary_id,
        clock: Callable[[], str] = _utcnow
    ):
        """
        Initialize the coordinator.

        Args:
            cache: Local cache used as the durability baseline
            remote: Authoritative remote store
            identifiers: Structured identifier generator. Defaults to the
                remote counter with the local cache count as fallback.
            surface_create_failures: Attach a PartialSyncError to saves that
                only reached the local cache
            id_factory: Produces temporary ids for new records
            clock: Produces ISO-8601 timestamps
        """
        self.cache = cache
        self.remote = remote
        self.identifiers = identifiers or IdentifierGenerator(
            RemoteSerialAllocator(remote),
            LocalSerialAllocator(cache)
        )
        self.surface_create_failures = surface_create_failures
        self._id_factory = id_factory
        self._clock = clock

    @classmethod
    def from_config(cls, config: AppConfig) -> 'SyncCoordinator':
        """Build a coordinator with its cache, remote store and identifier generator."""
        cache = LocalCacheStore(config.cache.path)
        if config.remote.enabled:
            remote: RemoteStore = HttpRemoteStore(
                endpoint=config.remote.endpoint,
                api_key=config.remote.api_key,
                timeout=config.remote.timeout,
                max_retries=config.remote.max_retries
            )
        else:
            logger.info("Remote store disabled, running from the local cache only")
            remote = OfflineRemoteStore()
        identifiers = IdentifierGenerator(
            RemoteSerialAllocator(remote),
            LocalSerialAllocator(cache),
            prefix=config.identifiers.prefix,
            width=config.identifiers.serial_width
        )
        return cls(cache, remote, identifiers, surface_create_failures=config.surface_create_failures)

    async def __aenter__(self) -> 'SyncCoordinator':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the remote client and the cache."""
        await self.remote.close()
        self.cache.close()
        logger.debug("Sync coordinator closed")

    async def _in_cache(self, operation: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking cache operation in a worker thread."""
        return await asyncio.to_thread(operation, *args)

    # Record construction

    def _build_record(self, data: Mapping[str, Any]) -> ProjectRecord:
        temporary_id = next(
            (data[key] for key in ("temporaryId", "custom_uuid", "uuid") if not is_empty(data.get(key))),
            None
        ) or self._id_factory()

        members = team_from_input(data) or []
        emails = unique_emails(members) if members else (emails_from_input(data) or [])

        attributes = map_attributes(data, FIELD_MAP.values())
        if "assigned_role" not in attributes and not is_empty(data.get("role")):
            attributes["assigned_role"] = data["role"]

        structured_identifier = data.get("structuredIdentifier") or data.get("project_code") or None
        now = self._clock()
        return ProjectRecord(
            temporary_id=str(temporary_id),
            classification_tag=classify_input(data),
            structured_identifier=structured_identifier,
            team_members=members,
            assigned_emails=emails,
            attributes=attributes,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _build_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
        changes = map_attributes(patch, UPDATABLE_COLUMNS)
        members = team_from_input(patch)
        if members is not None:
            changes["team_members"] = [member.to_dict() for member in members]
        emails = unique_emails(members) if members else emails_from_input(patch)
        if emails:
            changes["assigned_to_emails"] = emails
        return drop_empty(changes)

    @staticmethod
    def _reconcile(record: ProjectRecord, row: Mapping[str, Any]) -> None:
        """Merge server-issued id and timestamps into a cached record."""
        record.permanent_id = str(row.get("id") or row.get("uuid"))
        record.created_at = row.get("created_at") or record.created_at
        record.updated_at = row.get("updated_at") or record.updated_at

    @staticmethod
    def _has_id(row: Optional[Mapping[str, Any]]) -> bool:
        return bool(row) and not (is_empty(row.get("id")) and is_empty(row.get("uuid")))

    # Writes

    async def save(self, data: Mapping[str, Any]) -> SyncResult:
        """
        Create a project: cache it, then attempt the remote insert.

        A remote failure is absorbed: the result is the local-only record
        with a DEGRADED status and, unless surface_create_failures is set,
        no error.

        Args:
            data: Project input in UI (camelCase) or column (snake_case) naming

        Returns:
            SyncResult holding the ProjectRecord
        """
        if not isinstance(data, Mapping):
            return SyncResult.failure(InputValidationError("Project data must be a mapping"))

        record = self._build_record(data)
        if not record.structured_identifier:
            try:
                record.structured_identifier = await self.identifiers.generate(record.classification_tag)
            except ProjectSyncError as e:
                logger.error(f"Could not allocate a structured identifier: {e}")

        local_error: Optional[LocalStorageError] = None
        try:
            await self._in_cache(self.cache.put, record)
        except LocalStorageError as e:
            logger.error(f"Error saving project locally: {e}")
            local_error = e

        remote_error: Optional[Exception] = None
        row = None
        try:
            row = await self.remote.insert(record.to_remote_payload())
        except RemoteUnavailableError as e:
            remote_error = e
        if remote_error is None and not self._has_id(row):
            remote_error = RemoteUnavailableError("Remote store returned no created record")

        if remote_error is not None:
            if local_error is not None:
                return SyncResult.failure(local_error)
            logger.warning(f"Project {record.temporary_id} saved locally only: {remote_error}")
            error = None
            if self.surface_create_failures:
                error = PartialSyncError(
                    "Project saved locally only", local_ok=True, remote_ok=False, cause=remote_error
                )
            return SyncResult(Source.LOCAL, Status.DEGRADED, record, error)

        self._reconcile(record, row)
        try:
            await self._in_cache(self.cache.put, record)
        except LocalStorageError as e:
            logger.error(f"Saved project {record.permanent_id} remotely but could not cache it: {e}")
            return SyncResult(Source.REMOTE, Status.DEGRADED, record, PartialSyncError(
                "Project saved remotely but not in the local cache", local_ok=False, remote_ok=True, cause=e
            ))

        logger.info(f"Project {record.temporary_id} synced as {record.permanent_id}")
        return SyncResult.remote(record)

    async def update(self, record_id: Optional[str], patch: Mapping[str, Any]) -> SyncResult:
        """
        Patch a project in both stores.

        The same patch is applied to the cached record whatever the remote
        outcome. When the remote patch fails the result is DEGRADED and
        carries a PartialSyncError: the change exists on this device only.

        Args:
            record_id: Permanent or temporary id of the project
            patch: Fields to change, in either naming

        Returns:
            SyncResult holding the updated ProjectRecord
        """
        if not record_id:
            return SyncResult.failure(InputValidationError("Project id is required for update"))
        if not isinstance(patch, Mapping):
            return SyncResult.failure(InputValidationError("Project patch must be a mapping"))

        changes = self._build_patch(patch)

        remote_error: Optional[Exception] = None
        row = None
        try:
            row = await self.remote.update_by_id(record_id, changes)
        except RemoteUnavailableError as e:
            remote_error = e
        if remote_error is None and not row:
            remote_error = RemoteUnavailableError(f"Remote store has no project {record_id}")
        if remote_error is not None:
            logger.warning(f"Remote update failed, using local fallback: {remote_error}")

        local_error: Optional[LocalStorageError] = None
        local = None
        try:
            local = await self._in_cache(self.cache.get, record_id)
            if local is not None:
                local.apply_patch(changes)
                local.updated_at = (row or {}).get("updated_at") or self._clock()
                await self._in_cache(self.cache.put, local)
        except LocalStorageError as e:
            logger.error(f"Error updating project locally: {e}")
            local_error = e

        if remote_error is None:
            updated = ProjectRecord.from_remote(row)
            if local_error is not None:
                return SyncResult(Source.REMOTE, Status.DEGRADED, updated, PartialSyncError(
                    "Project updated remotely but not in the local cache",
                    local_ok=False, remote_ok=True, cause=local_error
                ))
            return SyncResult.remote(updated)

        if local_error is not None:
            return SyncResult.failure(local_error)
        if local is None:
            return SyncResult.failure(NotFoundError(record_id, await self._available_ids()))
        return SyncResult(Source.LOCAL, Status.DEGRADED, local, PartialSyncError(
            "Database update failed. Changes saved locally only.",
            local_ok=True, remote_ok=False, cause=remote_error
        ))

    async def delete(self, record_id: Optional[str]) -> SyncResult:
        """
        Delete a project from both stores independently.

        The local delete always runs, even when the remote delete failed, so
        the device never keeps a record the caller believes is gone.

        Returns:
            SyncResult whose value is the deleted id
        """
        if not record_id:
            return SyncResult.failure(InputValidationError("Project id is required for delete"))

        remote_error: Optional[RemoteUnavailableError] = None
        remote_deleted = False
        try:
            remote_deleted = await self.remote.delete_by_id(record_id)
        except RemoteUnavailableError as e:
            logger.error(f"Error deleting project {record_id} from remote store: {e}")
            remote_error = e

        local_error: Optional[LocalStorageError] = None
        local_deleted = False
        try:
            local_deleted = await self._in_cache(self.cache.delete, record_id)
        except LocalStorageError as e:
            logger.error(f"Error deleting project {record_id} locally: {e}")
            local_error = e

        if remote_error is None and local_error is None:
            if remote_deleted:
                return SyncResult.remote(record_id)
            if local_deleted:
                return SyncResult.local(record_id)
            return SyncResult.failure(NotFoundError(record_id))

        if remote_error is not None and local_error is not None:
            return SyncResult.failure(local_error)

        if remote_error is not None:
            if not local_deleted:
                return SyncResult.failure(remote_error, source=Source.REMOTE)
            return SyncResult(Source.LOCAL, Status.DEGRADED, record_id, PartialSyncError(
                "Project deleted locally only", local_ok=True, remote_ok=False, cause=remote_error
            ))

        if not remote_deleted:
            return SyncResult.failure(local_error)
        return SyncResult(Source.REMOTE, Status.DEGRADED, record_id, PartialSyncError(
            "Project deleted remotely but not from the local cache",
            local_ok=False, remote_ok=True, cause=local_error
        ))

    async def sync_pending(self) -> SyncResult:
        """
        Push every local-only cached record to the remote store.

        Returns:
            SyncResult whose value is the number of records synced
        """
        try:
            pending = [record for record in await self._in_cache(self.cache.read_all) if not record.is_synced]
        except LocalStorageError as e:
            return SyncResult.failure(e)

        if not pending:
            return SyncResult.remote(0)

        logger.info(f"Syncing {len(pending)} local-only projects")
        synced = 0
        last_error: Optional[Exception] = None
        for record in pending:
            try:
                row = await self.remote.insert(record.to_remote_payload())
            except RemoteUnavailableError as e:
                last_error = e
                logger.debug(f"Project {record.temporary_id} still local-only: {e}")
                continue
            if not self._has_id(row):
                last_error = RemoteUnavailableError("Remote store returned no created record")
                continue
            self._reconcile(record, row)
            try:
                await self._in_cache(self.cache.put, record)
            except LocalStorageError as e:
                last_error = e
                continue
            synced += 1

        if synced < len(pending):
            return SyncResult(Source.LOCAL, Status.DEGRADED, synced, last_error)
        return SyncResult.remote(synced)

    # Reads

    async def get_all(self) -> SyncResult:
        """
        Read every project: remote records merged with local-only ones.

        Falls back to the local cache alone when the remote store is
        unavailable.
        """
        local_error: Optional[LocalStorageError] = None
        local: List[ProjectRecord] = []
        try:
            local = await self._in_cache(self.cache.read_all)
        except LocalStorageError as e:
            logger.error(f"Error retrieving local projects: {e}")
            local_error = e

        try:
            rows = await self.remote.fetch_all()
        except RemoteUnavailableError as e:
            logger.warning(f"Error fetching projects from remote store, using local cache: {e}")
            if local_error is not None:
                return SyncResult.failure(local_error)
            return SyncResult.local(local, e)

        remote = [ProjectRecord.from_remote(row) for row in rows]
        if local_error is not None:
            return SyncResult(Source.REMOTE, Status.DEGRADED, remote, local_error)
        if not remote:
            return SyncResult.local(local)
        return SyncResult.remote(merge(remote, local))

    async def get_all_ordered(self) -> SyncResult:
        """Read projects newest first from the remote store only; empty on failure."""
        try:
            rows = await self.remote.fetch_all_ordered()
        except RemoteUnavailableError as e:
            logger.error(f"Error fetching ordered projects from remote store: {e}")
            return SyncResult(Source.REMOTE, Status.DEGRADED, [], e)
        return SyncResult.remote([ProjectRecord.from_remote(row) for row in rows])

    async def get_by_id(self, record_id: Optional[str]) -> SyncResult:
        """
        Find one project, remote first, then in the local cache.

        A miss in both stores is a FAILED result carrying a NotFoundError
        that lists the ids available locally.
        """
        if not record_id:
            return SyncResult.failure(InputValidationError("No project id provided"))

        remote_error: Optional[RemoteUnavailableError] = None
        row = None
        try:
            row = await self.remote.fetch_by_id(record_id)
        except RemoteUnavailableError as e:
            logger.warning(f"Remote lookup of {record_id} failed, falling back to local cache: {e}")
            remote_error = e
        if row:
            return SyncResult.remote(ProjectRecord.from_remote(row))

        try:
            record = await self._in_cache(self.cache.get, record_id)
        except LocalStorageError as e:
            return SyncResult.failure(e)
        if record is not None:
            return SyncResult.local(record, remote_error)

        logger.warning(f"Project not found in either store: {record_id}")
        return SyncResult.failure(NotFoundError(record_id, await self._available_ids()))

    async def _available_ids(self) -> List[str]:
        try:
            records = await self._in_cache(self.cache.read_all)
            return [record.lookup_id for record in records if record.lookup_id]
        except LocalStorageError:
            return []

    async def _filter(
        self,
        remote_predicate: Callable[[ProjectRecord], bool],
        local_predicate: Callable[[Mapping[str, Any]], bool]
    ) -> SyncResult:
        result = await self.get_all()
        if not result.failed:
            matches = [record for record in result.value if remote_predicate(record)]
            return SyncResult(result.source, result.status, matches, result.error)

        # fall back to the raw cache form and its own field names
        try:
            cached = await self._in_cache(self.cache.read_all)
        except LocalStorageError as e:
            return SyncResult.failure(e)
        raw = [record.to_cache_dict() for record in cached]
        matches = [ProjectRecord.from_cache_dict(data) for data in raw if local_predicate(data)]
        return SyncResult(Source.LOCAL, Status.DEGRADED, matches, result.error)

    async def search(self, query: str) -> SyncResult:
        """Case-insensitive search over name, description, client and tech stack."""
        term = (query or "").lower()
        return await self._filter(
            lambda record: _matches_query(record.attributes, term, REMOTE_SEARCH_FIELDS),
            lambda data: _matches_query(data, term, LOCAL_SEARCH_FIELDS)
        )

    async def filter_by_status(self, status: str) -> SyncResult:
        return await self._filter(
            lambda record: record.attributes.get("status") == status,
            lambda data: data.get("status") == status
        )

    async def filter_by_date_range(self, start: str, end: str) -> SyncResult:
        """Projects starting on or after start and ending on or before end (ISO dates)."""
        return await self._filter(
            lambda record: _in_date_range(
                record.attributes.get("start_date"), record.attributes.get("end_date"), start, end
            ),
            lambda data: _in_date_range(data.get("startDate"), data.get("endDate"), start, end)
        )

    async def list_organizations(self) -> SyncResult:
        try:
            organizations = await self.remote.list_organizations()
        except RemoteUnavailableError as e:
            logger.error(f"Error fetching organizations: {e}")
            return SyncResult(Source.REMOTE, Status.DEGRADED, [], e)
        return SyncResult.remote(organizations)

    async def generate_identifier(self, data: Mapping[str, Any]) -> SyncResult:
        """Classify project input and allocate a structured identifier without saving."""
        if not isinstance(data, Mapping):
            return SyncResult.failure(InputValidationError("Project data must be a mapping"))
        tag = classify_input(data)
        try:
            serial, used_fallback = await self.identifiers.next_serial(tag)
        except ProjectSyncError as e:
            return SyncResult.failure(e)
        identifier = self.identifiers.compose(tag, serial)
        if used_fallback:
            return SyncResult(Source.LOCAL, Status.DEGRADED, identifier)
        return SyncResult.remote(identifier)

    # Snapshots and maintenance

    async def export_snapshot(self) -> SyncResult:
        """Every project from get_all() in cache form, ready to be written out."""
        result = await self.get_all()
        if result.failed:
            return result
        return SyncResult(
            result.source, result.status, [record.to_cache_dict() for record in result.value], result.error
        )

    async def import_snapshot(self, records: Sequence[Mapping[str, Any]]) -> SyncResult:
        """
        Save every record of a snapshot, best-effort.

        A record that fails does not stop the import; it is reported in the
        ImportReport's failed list with its index.
        """
        if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
            return SyncResult.failure(InputValidationError("Invalid data format: expected a list of projects"))

        report = ImportReport(total=len(records))
        for index, data in enumerate(records):
            result = await self.save(data)
            if result.failed:
                logger.warning(f"Import of project #{index} failed: {result.error}")
                report.failed.append((index, result.error))
            elif result.source is Source.REMOTE:
                report.synced += 1
            else:
                report.local_only += 1

        logger.info(f"Imported {report.imported} of {report.total} projects")
        if report.total and not report.imported:
            return SyncResult(Source.LOCAL, Status.FAILED, report, report.failed[0][1])
        if report.local_only or report.failed:
            return SyncResult(Source.LOCAL, Status.DEGRADED, report)
        return SyncResult.remote(report)

    def clear_cache(self) -> SyncResult:
        """Remove every record from the local cache."""
        try:
            removed = self.cache.clear()
        except LocalStorageError as e:
            logger.error(f"Error clearing cache: {e}")
            return SyncResult.failure(e)
        return SyncResult.local(removed)

    def clear_all(self) -> SyncResult:
        """
        Clear all local data: the cache and the local serial counter.

        The remote store has no bulk delete, so remote records are untouched.
        """
        result = self.clear_cache()
        if not result.failed and isinstance(self.identifiers.fallback, LocalSerialAllocator):
            self.identifiers.fallback.reset()
        return result

    async def cache_stats(self) -> SyncResult:
        """Cached and local-only record counts plus remote reachability."""
        try:
            stats = {
                "cached_count": await self._in_cache(self.cache.count),
                "local_only_count": await self._in_cache(self.cache.count_local_only),
            }
        except LocalStorageError as e:
            return SyncResult.failure(e)
        stats["remote"] = self.remote.label
        stats["connected"] = await self.remote.ping()
        return SyncResult.local(stats)
