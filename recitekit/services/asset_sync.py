"""Mirror a remote model repository tree into a local directory."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import quote

import httpx

from ..errors import FileFetchError, FilesystemError, SyncError
from ..metrics import ASSET_FILES_DOWNLOADED, ASSET_SYNC_COUNTER, ASSET_SYNC_DURATION
from .manifest import EntryKind, ManifestEntry, ManifestResolver

LOGGER = logging.getLogger("recitekit.sync")

CHUNK_SIZE = 1 << 20


@dataclass(frozen=True)
class SyncProgress:
    completed_units: int
    total_units: int
    weight: float

    @property
    def fraction(self) -> float:
        if self.total_units <= 0:
            return self.weight
        return self.completed_units / self.total_units * self.weight


ProgressSink = Callable[[SyncProgress], None]


class AssetSynchronizer:
    """Sequentially downloads every file of a repository tree.

    The tree is assembled in a hidden staging directory beside the destination
    and swapped into place only after every entry succeeded; any failure removes
    the staging directory and leaves the destination as it was. Each file is
    streamed to a temporary file and moved with ``os.replace``. Progress is
    reported once per top-level manifest entry.
    """

    def __init__(self, client: httpx.AsyncClient, resolver: Optional[ManifestResolver] = None) -> None:
        self._client = client
        self.resolver = resolver or ManifestResolver(client)

    def file_url(self, repo: str, path: str) -> str:
        return f"{self.resolver.endpoint}/{repo}/resolve/{self.resolver.revision}/{quote(path)}"

    async def sync(
        self,
        repo: str,
        destination_root: Path,
        progress_sink: Optional[ProgressSink] = None,
        weight: float = 1.0,
    ) -> None:
        destination_root = Path(destination_root)
        start_time = time.perf_counter()
        LOGGER.info("Syncing %s into %s", repo, destination_root)
        try:
            staging = self._make_staging(destination_root)
            try:
                entries = await self.resolver.list_tree(repo)
                total = len(entries)
                if total == 0:
                    self._report(progress_sink, SyncProgress(0, 0, weight))
                for completed, entry in enumerate(entries, start=1):
                    await self._sync_entry(repo, entry, staging)
                    self._report(progress_sink, SyncProgress(completed, total, weight))
                self._commit(staging, destination_root)
            finally:
                shutil.rmtree(staging, ignore_errors=True)
        except SyncError as exc:
            ASSET_SYNC_COUNTER.labels(status="error").inc()
            ASSET_SYNC_DURATION.observe(time.perf_counter() - start_time)
            LOGGER.error("Sync of %s aborted: %s", repo, exc)
            raise
        ASSET_SYNC_COUNTER.labels(status="success").inc()
        ASSET_SYNC_DURATION.observe(time.perf_counter() - start_time)
        LOGGER.info("Sync of %s completed", repo)

    async def _sync_entry(self, repo: str, entry: ManifestEntry, root: Path) -> None:
        if entry.kind is EntryKind.FILE:
            await self.download_file(repo, entry.path, root)
        elif entry.kind is EntryKind.DIRECTORY:
            for child in await self.resolver.list_tree(repo, entry.path):
                await self._sync_entry(repo, child, root)

    async def download_file(self, repo: str, path: str, root: Path) -> Path:
        destination = self._destination(root, path)
        self._ensure_dir(destination.parent)
        LOGGER.debug("Downloading %s", path)
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=destination.parent, prefix=f".{destination.name}.", suffix=".part"
            )
        except OSError as exc:
            raise FilesystemError(f"Cannot create temp file for {path}: {exc}") from exc
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                await self._stream_into(repo, path, handle)
            os.replace(tmp_path, destination)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise FilesystemError(f"Cannot write {path}: {exc}") from exc
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        ASSET_FILES_DOWNLOADED.inc()
        return destination

    async def _stream_into(self, repo: str, path: str, handle) -> None:
        url = self.file_url(repo, path)
        try:
            async with self._client.stream("GET", url, follow_redirects=True) as resp:
                resp.raise_for_status()
                async for chunk in resp.aiter_bytes(CHUNK_SIZE):
                    handle.write(chunk)
        except httpx.HTTPStatusError as exc:
            raise FileFetchError(f"Download failed for {path}: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FileFetchError(f"Download failed for {path}: {exc}") from exc

    @staticmethod
    def _destination(root: Path, path: str) -> Path:
        resolved_root = root.resolve()
        destination = (root / path).resolve()
        if destination == resolved_root or resolved_root not in destination.parents:
            raise FilesystemError(f"Entry path escapes destination: {path}")
        return destination

    def _make_staging(self, destination_root: Path) -> Path:
        self._ensure_dir(destination_root.parent)
        try:
            return Path(
                tempfile.mkdtemp(
                    dir=destination_root.parent,
                    prefix=f".{destination_root.name}.",
                    suffix=".staging",
                )
            )
        except OSError as exc:
            raise FilesystemError(f"Cannot create staging directory for {destination_root}: {exc}") from exc

    @staticmethod
    def _commit(staging: Path, destination_root: Path) -> None:
        """Swap the completed staging tree in place of ``destination_root``."""
        backup = staging.with_name(staging.name + ".old")
        try:
            if destination_root.exists():
                os.replace(destination_root, backup)
            try:
                os.replace(staging, destination_root)
            except OSError:
                if backup.exists():
                    os.replace(backup, destination_root)
                raise
        except OSError as exc:
            raise FilesystemError(f"Cannot move synced tree into {destination_root}: {exc}") from exc
        shutil.rmtree(backup, ignore_errors=True)

    @staticmethod
    def _ensure_dir(path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Cannot create directory {path}: {exc}") from exc

    @staticmethod
    def _report(sink: Optional[ProgressSink], progress: SyncProgress) -> None:
        if sink is not None:
            sink(progress)
