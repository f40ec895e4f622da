"""Two-tier blob cache with in-flight request coalescing.

Lookup order is memory, then disk, then network. Concurrent ``get`` calls
for the same identifier share one in-flight task, which performs both the
disk lookup and the network fetch, so a cold identifier is downloaded at
most once no matter how many callers ask for it.

All failures degrade to a cache miss: fetch errors are logged and ``get``
returns ``None``, disk errors are logged and ignored. Image loading must
never take the feed down with it.

The in-flight table and the memory tier are only touched from the event
loop, between awaits, which serialises every mutation. Disk I/O runs in
worker threads so lookups for different identifiers proceed in parallel;
writes and resets share one lock so no write lands after a clear.
"""

from __future__ import annotations

import asyncio
import base64
import functools
import io
import os
import shutil
from collections import OrderedDict
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from PIL import Image

from newsfeed.errors import FetchError

if TYPE_CHECKING:
    from newsfeed.config import ImageCacheSettings
    from newsfeed.protocols import BlobFetcherProtocol

log = structlog.get_logger()


def cache_filename(identifier: str) -> str:
    """Return the disk-tier filename for ``identifier``.

    URL-safe base64 of the UTF-8 bytes (``/`` becomes ``_``, ``+`` becomes
    ``-``), padding kept.
    """
    return base64.urlsafe_b64encode(identifier.encode("utf-8")).decode("ascii")


def reencode_jpeg(data: bytes, quality: int) -> bytes:
    """Decode image bytes with Pillow and re-encode them as JPEG.

    Raises ``OSError`` (including ``PIL.UnidentifiedImageError``) when the
    bytes are not a decodable image.
    """
    with Image.open(io.BytesIO(data)) as image:
        converted = image if image.mode in ("RGB", "L") else image.convert("RGB")
        out = io.BytesIO()
        converted.save(out, format="JPEG", quality=quality)
    return out.getvalue()


class MemoryTier:
    """LRU blob store bounded by entry count and total bytes."""

    def __init__(self, count_limit: int, byte_limit: int) -> None:
        self.count_limit = count_limit
        self.byte_limit = byte_limit
        self._entries: OrderedDict[str, bytes] = OrderedDict()
        self._total_bytes = 0

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    def get(self, key: str) -> bytes | None:
        data = self._entries.get(key)
        if data is not None:
            # Move to end (most recently used)
            self._entries.move_to_end(key)
        return data

    def put(self, key: str, data: bytes) -> None:
        old = self._entries.pop(key, None)
        if old is not None:
            self._total_bytes -= len(old)

        if len(data) > self.byte_limit:
            log.debug("memory_tier_skip_oversized", key=key, size=len(data))
            return

        self._entries[key] = data
        self._total_bytes += len(data)

        while len(self._entries) > self.count_limit or self._total_bytes > self.byte_limit:
            evicted_key, evicted = self._entries.popitem(last=False)
            self._total_bytes -= len(evicted)
            log.debug("memory_tier_evicted", key=evicted_key)

    def clear(self) -> None:
        self._entries.clear()
        self._total_bytes = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class DiskTier:
    """One file per blob under ``directory``. Every operation is best-effort.

    Methods are synchronous and meant to be run via ``asyncio.to_thread``.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, identifier: str) -> Path:
        return self.directory / cache_filename(identifier)

    def ensure_directory(self) -> bool:
        """Create the storage directory if absent. Returns False on failure."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError:
            log.debug("disk_tier_mkdir_error", directory=str(self.directory), exc_info=True)
            return False
        return True

    def read(self, identifier: str) -> bytes | None:
        try:
            return self.path_for(identifier).read_bytes()
        except FileNotFoundError:
            return None
        except OSError:
            log.debug("disk_tier_read_error", identifier=identifier, exc_info=True)
            return None

    def write(self, identifier: str, data: bytes) -> None:
        if not self.ensure_directory():
            return
        path = self.path_for(identifier)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError:
            log.debug("disk_tier_write_error", identifier=identifier, exc_info=True)

    def reset(self) -> None:
        """Delete the storage directory and recreate it empty."""
        shutil.rmtree(self.directory, ignore_errors=True)
        self.ensure_directory()


class ResourceCache:
    """Memory + disk cache for remote blobs, keyed by source URL.

    Construct once at startup and share by reference.
    """

    def __init__(self, fetcher: BlobFetcherProtocol, settings: ImageCacheSettings) -> None:
        self._fetcher = fetcher
        self._memory = MemoryTier(settings.count_limit, settings.byte_limit)
        self._disk = DiskTier(Path(settings.directory).expanduser())
        self._reencode_quality = settings.reencode_quality
        self._inflight: dict[str, asyncio.Task[bytes | None]] = {}
        # Bumped by clear(); loads started under an older value store nothing.
        self._clear_generation = 0
        # Held around disk writes and resets so a write never lands after a clear.
        self._disk_lock = asyncio.Lock()

    async def get(self, identifier: str | None) -> bytes | None:
        """Return the blob for ``identifier``, or ``None`` if it cannot be had."""
        if not identifier:
            return None

        data = self._memory.get(identifier)
        if data is not None:
            log.debug("cache_hit", tier="memory", identifier=identifier)
            return data

        task = self._inflight.get(identifier)
        if task is None:
            task = asyncio.create_task(self._load(identifier))
            task.add_done_callback(functools.partial(_log_load_crash, identifier))
            self._inflight[identifier] = task
        else:
            log.debug("cache_request_coalesced", identifier=identifier)

        # Cancelling one waiter must not cancel the load shared with the others.
        return await asyncio.shield(task)

    async def _load(self, identifier: str) -> bytes | None:
        generation = self._clear_generation
        current = asyncio.current_task()
        try:
            data = await asyncio.to_thread(self._disk.read, identifier)
            if data is not None:
                log.debug("cache_hit", tier="disk", identifier=identifier)
                if generation == self._clear_generation:
                    self._memory.put(identifier, data)
                return data

            log.debug("cache_miss_fetching", identifier=identifier)
            try:
                data = await self._fetcher.fetch_blob(identifier)
            except FetchError as exc:
                log.warning("cache_fetch_failed", identifier=identifier, **exc.to_dict())
                return None

            if generation != self._clear_generation:
                log.debug("cache_store_skipped_after_clear", identifier=identifier)
                return data
            self._memory.put(identifier, data)
            async with self._disk_lock:
                if generation == self._clear_generation:
                    await asyncio.to_thread(self._persist, identifier, data)
            return data
        finally:
            # Settled either way; the next get() for this identifier starts fresh.
            # clear() may already have handed the slot to a newer load.
            if self._inflight.get(identifier) is current:
                del self._inflight[identifier]

    def _persist(self, identifier: str, data: bytes) -> None:
        if self._reencode_quality is not None:
            try:
                data = reencode_jpeg(data, self._reencode_quality)
            except (OSError, ValueError, Image.DecompressionBombError):
                log.debug("cache_reencode_error", identifier=identifier, exc_info=True)
                return
        self._disk.write(identifier, data)

    def clear_memory(self) -> None:
        """Drop the memory tier only; the disk tier is untouched."""
        self._memory.clear()

    async def clear(self) -> None:
        """Empty both tiers. The storage directory is recreated for later writes.

        Loads already in flight still answer their waiters but store nothing,
        and later ``get`` calls start new loads instead of joining them.
        """
        self._clear_generation += 1
        self._inflight.clear()
        count = len(self._memory)
        self._memory.clear()
        async with self._disk_lock:
            await asyncio.to_thread(self._disk.reset)
        log.info("cache_cleared", memory_entries=count, directory=str(self._disk.directory))


def _log_load_crash(identifier: str, task: asyncio.Task[bytes | None]) -> None:
    """Report a load that died of something other than FetchError.

    Runs even when every waiter has been cancelled and nobody awaits the task.
    """
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("cache_load_crashed", identifier=identifier, exc_info=exc)
