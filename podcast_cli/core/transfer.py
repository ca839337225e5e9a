"""
Executes download intents over HTTP across a bounded pool of async workers,
resuming interrupted transfers with byte-range requests.
"""

import asyncio
import logging
import os
from collections.abc import Iterable
from pathlib import Path

import aiofiles
import aiohttp
from rich.markup import escape
from rich.progress import TaskID

from podcast_cli.cli.progress_manager import ProgressManager
from podcast_cli.exceptions import (
    AlreadyExistsError,
    FilesystemError,
    NetworkError,
    PodcastCliError,
)
from podcast_cli.models.episode import DownloadIntent, TransferResult, TransferStatus
from podcast_cli.utils.path import create_dir

from .partitioner import detect_parallelism, partition

log = logging.getLogger(__name__)

_NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


def _partial_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return 0
    except OSError as e:
        raise FilesystemError(f"Could not inspect '{path}': {e}") from e


class TransferEngine:
    """
    Downloads episodes with per-intent failure isolation.

    ``run`` partitions intents into per-worker batches; an engine-wide semaphore
    keeps the number of active workers at ``parallelism`` even when several
    batches (e.g. one per refreshed subscription) run at once.
    """

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(
        self,
        session: aiohttp.ClientSession,
        progress_manager: ProgressManager | None = None,
        parallelism: int | None = None,
        max_attempts: int = 3,
        base_delay: float = 1.5,
    ):
        self.session = session
        self.progress_manager = progress_manager
        self.parallelism = detect_parallelism(parallelism)
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._slots = asyncio.Semaphore(self.parallelism)

    async def run(self, intents: Iterable[DownloadIntent]) -> list[TransferResult]:
        """Executes every intent and returns one result per intent, in input order."""
        batches = partition(list(intents), self.parallelism)
        if not batches:
            return []
        log.debug(
            f"Running {sum(len(b) for b in batches)} transfers on "
            f"{len(batches)} workers (parallelism {self.parallelism})."
        )
        per_worker = await asyncio.gather(*(self._worker(batch) for batch in batches))
        return [result for results in per_worker for result in results]

    async def _worker(self, batch: list[DownloadIntent]) -> list[TransferResult]:
        """Processes one batch sequentially, reusing a single progress bar."""
        async with self._slots:
            task_id = None
            if self.progress_manager:
                task_id = self.progress_manager.add_worker_bar(batch[0].title)
            results = []
            try:
                for intent in batch:
                    results.append(await self.transfer(intent, task_id))
            finally:
                if self.progress_manager and task_id is not None:
                    self.progress_manager.finish_worker(task_id)
            return results

    async def transfer(
        self, intent: DownloadIntent, task_id: TaskID | None = None
    ) -> TransferResult:
        """
        Downloads a single intent. Failures are logged and returned in the
        result, never raised, so sibling transfers keep going.
        """
        title = escape(intent.title)
        try:
            written = await self._download(intent, task_id)
        except AlreadyExistsError as e:
            if self.progress_manager and task_id is not None:
                self.progress_manager.skip_item(task_id, intent.title)
            log.info(f"  [yellow]○ Skipping:[/] [dim]{title}[/dim] (already exists)")
            return TransferResult(intent, TransferStatus.SKIPPED, error=e)
        except PodcastCliError as e:
            self._finish_bar(task_id, success=False)
            log.error(f"  [red]✗ Failed:[/] {title} ({escape(str(e))})")
            return TransferResult(intent, TransferStatus.FAILED, error=e)
        except Exception as e:
            self._finish_bar(task_id, success=False)
            log.error(
                f"  [red]✗ An unexpected error occurred for '{title}': {e}[/red]",
                exc_info=log.getEffectiveLevel() == logging.DEBUG,
            )
            return TransferResult(intent, TransferStatus.FAILED, error=e)

        self._finish_bar(task_id, success=True)
        log.debug(f"Finished '{intent.title}' ({written} bytes this run).")
        return TransferResult(intent, TransferStatus.COMPLETED, bytes_written=written)

    def _finish_bar(self, task_id: TaskID | None, success: bool) -> None:
        if self.progress_manager and task_id is not None:
            self.progress_manager.finish_item(task_id, success=success)

    async def _download(self, intent: DownloadIntent, task_id: TaskID | None) -> int:
        destination = intent.destination_path
        partial = intent.partial_path

        if await asyncio.to_thread(destination.exists):
            raise AlreadyExistsError(f"File already exists: {destination}")
        try:
            create_dir(destination.parent)
        except OSError as e:
            raise FilesystemError(f"Could not create '{destination.parent}': {e}") from e

        total = await self._probe_size(intent)

        written = 0
        last_exception = None
        for attempt in range(1, self.max_attempts + 1):
            offset = await asyncio.to_thread(_partial_size, partial)
            if self.progress_manager and task_id is not None:
                self.progress_manager.begin_item(task_id, intent.title, total, offset)
            try:
                written += await self._stream(intent, offset, task_id)
                break
            except aiohttp.ClientResponseError as e:
                if e.status < 500:
                    raise NetworkError(
                        f"HTTP {e.status} for {intent.source_url}"
                    ) from e
                last_exception = e
            except _NETWORK_ERRORS as e:
                last_exception = e
            log.debug(
                f"Download attempt {attempt}/{self.max_attempts} for "
                f"'{intent.title}' failed: {last_exception}. Retrying..."
            )
            if attempt < self.max_attempts:
                await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))
        else:
            raise NetworkError(
                f"Giving up after {self.max_attempts} attempts: {last_exception}"
            ) from last_exception

        try:
            await asyncio.to_thread(os.replace, partial, destination)
        except OSError as e:
            raise FilesystemError(f"Could not finalize '{destination}': {e}") from e
        return written

    async def _probe_size(self, intent: DownloadIntent) -> int | None:
        """Reads Content-Length with a HEAD request, for sizing the progress bar."""
        try:
            async with self.session.head(
                intent.source_url, allow_redirects=True
            ) as response:
                if response.ok and response.content_length:
                    return response.content_length
        except _NETWORK_ERRORS as e:
            log.debug(f"HEAD request for '{intent.title}' failed: {e}")
        return intent.expected_size_bytes

    async def _stream(
        self, intent: DownloadIntent, offset: int, task_id: TaskID | None
    ) -> int:
        """
        Streams the body into the partial file, appending from ``offset`` when the
        server honors the range request. Returns the number of bytes written.
        """
        headers = {"Range": f"bytes={offset}-"} if offset else {}
        async with self.session.get(
            intent.source_url, headers=headers, allow_redirects=True
        ) as response:
            if offset and response.status == 416:
                log.debug(f"Nothing left to fetch for '{intent.title}' at {offset}.")
                return 0
            response.raise_for_status()

            mode = "wb"
            if offset and response.status == 206:
                mode = "ab"
            elif offset:
                log.warning(
                    f"[yellow]Server ignored the resume request for "
                    f"'{escape(intent.title)}', restarting from the beginning.[/yellow]"
                )
                if self.progress_manager and task_id is not None:
                    self.progress_manager.restart_item(task_id)

            written = 0
            try:
                async with aiofiles.open(intent.partial_path, mode) as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        written += len(chunk)
                        if self.progress_manager and task_id is not None:
                            self.progress_manager.advance(task_id, len(chunk))
            except _NETWORK_ERRORS:
                raise
            except OSError as e:
                raise FilesystemError(
                    f"Could not write '{intent.partial_path}': {e}"
                ) from e
            return written
