"""
Tests for structured identifier generation.
"""
import pytest

from projectsync.errors import LocalStorageError, ProjectSyncError
from projectsync.models.classification import ClassificationTag
from projectsync.models.project_record import ProjectRecord
from projectsync.sync.identifier_generator import (
    IdentifierGenerator,
    LocalSerialAllocator,
    RemoteSerialAllocator,
    SerialAllocator,
)


class FixedAllocator(SerialAllocator):
    def __init__(self, serial):
        self.serial = serial

    async def next_serial(self, tag):
        return self.serial


class TestCompose:
    """Test cases for identifier formatting."""

    @pytest.mark.unit
    def test_default_format(self):
        generator = IdentifierGenerator(FixedAllocator(1))
        assert generator.compose(ClassificationTag.AI, 1) == "WV-AI-0001"
        assert generator.compose(ClassificationTag.UI_UX, 42) == "WV-UX-0042"

    @pytest.mark.unit
    def test_custom_prefix_and_width(self):
        generator = IdentifierGenerator(FixedAllocator(1), prefix="PX", width=6)
        assert generator.compose(ClassificationTag.WEB_DEV, 7) == "PX-WD-000007"

    @pytest.mark.unit
    def test_serial_wider_than_padding(self):
        generator = IdentifierGenerator(FixedAllocator(1))
        assert generator.compose(ClassificationTag.OTHER, 12345) == "WV-OT-12345"


class TestRemoteAllocation:
    """Test cases for the remote counter."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generate_from_remote_counter(self, remote, cache):
        generator = IdentifierGenerator(RemoteSerialAllocator(remote), LocalSerialAllocator(cache))

        first = await generator.generate(ClassificationTag.AI)
        second = await generator.generate(ClassificationTag.AI)
        other = await generator.generate(ClassificationTag.DEVOPS)

        assert (first, second, other) == ("WV-AI-0001", "WV-AI-0002", "WV-DO-0001")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_falsy_remote_serial_is_one(self, remote):
        async def no_serial(classification):
            return None

        remote.next_serial_number = no_serial
        assert await RemoteSerialAllocator(remote).next_serial(ClassificationTag.AI) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_next_serial_reports_primary(self, remote, cache):
        generator = IdentifierGenerator(RemoteSerialAllocator(remote), LocalSerialAllocator(cache))
        assert await generator.next_serial(ClassificationTag.AI) == (1, False)


class TestLocalFallback:
    """Test cases for the local best-effort allocator."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_falls_back_when_remote_unavailable(self, remote, cache):
        remote.offline = True
        cache.put(ProjectRecord(temporary_id="a"))
        cache.put(ProjectRecord(temporary_id="b"))
        generator = IdentifierGenerator(RemoteSerialAllocator(remote), LocalSerialAllocator(cache))

        assert await generator.next_serial(ClassificationTag.AI) == (3, True)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sequential_fallback_serials_do_not_repeat(self, remote, cache):
        remote.offline = True
        generator = IdentifierGenerator(RemoteSerialAllocator(remote), LocalSerialAllocator(cache))

        identifiers = [await generator.generate(ClassificationTag.WEB_DEV) for _ in range(3)]

        assert identifiers == ["WV-WD-0001", "WV-WD-0002", "WV-WD-0003"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fallback_follows_cache_growth(self, cache):
        allocator = LocalSerialAllocator(cache)
        assert await allocator.next_serial(ClassificationTag.AI) == 1

        for temporary_id in ("a", "b", "c"):
            cache.put(ProjectRecord(temporary_id=temporary_id))

        assert await allocator.next_serial(ClassificationTag.AI) == 4

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reset_forgets_last_issued(self, cache):
        allocator = LocalSerialAllocator(cache)
        await allocator.next_serial(ClassificationTag.AI)
        await allocator.next_serial(ClassificationTag.AI)

        allocator.reset()

        assert await allocator.next_serial(ClassificationTag.AI) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_fallback_propagates(self, remote):
        remote.offline = True
        generator = IdentifierGenerator(RemoteSerialAllocator(remote))

        with pytest.raises(ProjectSyncError):
            await generator.generate(ClassificationTag.AI)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_both_allocators_failing_raises(self, remote, cache):
        remote.offline = True

        def broken_count():
            raise LocalStorageError("disk gone")

        cache.count = broken_count
        generator = IdentifierGenerator(RemoteSerialAllocator(remote), LocalSerialAllocator(cache))

        with pytest.raises(LocalStorageError):
            await generator.generate(ClassificationTag.AI)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_serial_rejected(self):
        generator = IdentifierGenerator(FixedAllocator(-1))

        with pytest.raises(ProjectSyncError):
            await generator.next_serial(ClassificationTag.AI)
