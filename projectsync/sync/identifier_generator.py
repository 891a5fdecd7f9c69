"""
Structured project identifiers.

An identifier is a fixed prefix, the classification code and a zero-padded
serial number, e.g. ``WV-AI-0001``. The serial comes from the remote
counter; when the remote store cannot provide one, a local best-effort
allocator derives it from the number of cached records.

The local allocator is not atomic across processes: two instances that fall
back at the same time read the same cache count and hand out the same
identifier. Only the remote counter is safe for multi-instance use.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from ..errors import ProjectSyncError
from ..models.classification import ClassificationTag
from .local_cache import LocalCacheStore
from .remote_store import RemoteStore

logger = logging.getLogger(__name__)


class SerialAllocator(ABC):

    @abstractmethod
    async def next_serial(self, tag: ClassificationTag) -> int:
        """Return the next serial number for the given classification."""


class RemoteSerialAllocator(SerialAllocator):
    """Serials from the remote store's atomic counter."""

    def __init__(self, remote: RemoteStore):
        self.remote = remote

    async def next_serial(self, tag: ClassificationTag) -> int:
        serial = await self.remote.next_serial_number(tag.value)
        return serial or 1


class LocalSerialAllocator(SerialAllocator):
    """
    Best-effort serials from the local cache: cached record count plus one.

    Never hands out a serial lower than the last one it issued, so
    sequential calls in one process do not repeat. Concurrent processes
    sharing nothing but the remote store can still collide.
    """

    def __init__(self, cache: LocalCacheStore):
        self.cache = cache
        self._last_issued = 0

    async def next_serial(self, tag: ClassificationTag) -> int:
        cached = await asyncio.to_thread(self.cache.count)
        serial = max(cached + 1, self._last_issued + 1)
        self._last_issued = serial
        return serial

    def reset(self) -> None:
        self._last_issued = 0


class IdentifierGenerator:
    """Builds structured identifiers from a classification tag and a serial number."""

    DEFAULT_PREFIX = "WV"
    DEFAULT_WIDTH = 4

    def __init__(
        self,
        primary: SerialAllocator,
        fallback: Optional[SerialAllocator] = None,
        prefix: Optional[str] = None,
        width: Optional[int] = None
    ):
        self.primary = primary
        self.fallback = fallback
        self.prefix = prefix or self.DEFAULT_PREFIX
        self.width = width or self.DEFAULT_WIDTH

    def compose(self, tag: ClassificationTag, serial: int) -> str:
        return f"{self.prefix}-{tag.code}-{serial:0{self.width}d}"

    async def next_serial(self, tag: ClassificationTag) -> Tuple[int, bool]:
        """
        Allocate a serial number, falling back to the local allocator on any failure.

        Args:
            tag: Classification of the project

        Returns:
            Tuple of (serial, used_fallback)

        Raises:
            ProjectSyncError: If neither allocator could provide a serial
        """
        used_fallback = False
        try:
            serial = await self.primary.next_serial(tag)
        except ProjectSyncError as e:
            if self.fallback is None:
                raise
            logger.warning(f"Serial number fetch failed, using local fallback: {e}")
            serial = await self.fallback.next_serial(tag)
            used_fallback = True

        if serial < 1:
            raise ProjectSyncError(f"Invalid serial number {serial} for {tag.value}")
        return serial, used_fallback

    async def generate(self, tag: ClassificationTag) -> str:
        """Allocate a serial and compose the identifier for a classification."""
        serial, _ = await self.next_serial(tag)
        return self.compose(tag, serial)
