import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Protocol, Sequence

from app.config import DEFAULT_TREE_LIMIT, POLL_INTERVAL_SECONDS
from app.errors import ResultsFetchError, ScanFailed, TransportError
from app.models import (
    ErrorInfo,
    FileDebtRecord,
    Repository,
    ScanJob,
    ScanOutcome,
    ScanResults,
    ScanStarted,
    ScanStatus,
)
from app.services.hierarchy import build_hierarchy, count_leaves
from app.services.metrics import aggregate, rank_by_score
from app.services.pruning import hidden_children, prune_tree

logger = logging.getLogger(__name__)


class ScanSource(Protocol):
    """What the controller needs from the scanner; ScannerClient implements it."""

    async def start_scan(self, repository_id: int) -> ScanStarted: ...

    async def get_scan_status(self, scan_id: int) -> ScanJob: ...

    async def get_scan_results(self, scan_id: int) -> ScanResults: ...

    async def get_repository(self, repository_id: int) -> Repository: ...

    async def list_repositories(self) -> List[Repository]: ...


@dataclass
class ScanHandle:
    """
    One observed scan: its ids, the latest polled snapshot, the outcome the
    consumer reads, and the cancellation event that stops polling.
    """

    scan_id: int
    repository_id: int
    latest: Optional[ScanJob] = None
    outcome: ScanOutcome = field(init=False)
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)

    def __post_init__(self) -> None:
        self.outcome = ScanOutcome(repository_id=self.repository_id, scan_id=self.scan_id)

    def cancel(self) -> None:
        self.cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()


def process_records(
    records: Sequence[FileDebtRecord],
    outcome: ScanOutcome,
    limit: int = DEFAULT_TREE_LIMIT,
) -> ScanOutcome:
    """Fill the summary and both trees of `outcome` from the scanner's records."""
    summary = aggregate(records)
    tree = build_hierarchy(records)
    pruned = prune_tree(tree, limit)

    # No await between these assignments: readers see all of them or none.
    outcome.summary = summary
    outcome.tree = tree
    outcome.pruned_tree = pruned
    outcome.hidden_count = count_leaves(tree) - count_leaves(pruned)
    outcome.hidden_children = hidden_children(tree, pruned)
    outcome.files = rank_by_score(records)
    outcome.error = None
    return outcome


class ScanLifecycleController:
    """
    Drives scans from submission to a terminal state.

    A controller belongs to one consumer session. It owns the currently
    selected scan (`current`) plus the progress flags shown next to it;
    `reset()` clears the selection and cancels its polling, `aclose()`
    does the same when the session goes away. Scans tracked through
    separate handles never share an outcome, so a failing scan cannot
    disturb another one.
    """

    def __init__(
        self,
        source: ScanSource,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        tree_limit: int = DEFAULT_TREE_LIMIT,
    ):
        self._source = source
        self.poll_interval = poll_interval
        self.tree_limit = tree_limit

        self._handle: Optional[ScanHandle] = None
        self._task: Optional[asyncio.Task] = None
        self.current: Optional[ScanOutcome] = None
        self.is_scanning = False
        self.status_message: Optional[str] = None

    @property
    def handle(self) -> Optional[ScanHandle]:
        return self._handle

    def reset(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._handle = None
        self._task = None
        self.current = None
        self.is_scanning = False
        self.status_message = None

    async def aclose(self) -> None:
        task = self._task
        self.reset()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _select(self, handle: ScanHandle) -> ScanHandle:
        self._handle = handle
        self.current = handle.outcome
        return handle

    def _set_status(self, handle: ScanHandle, message: str) -> None:
        # Only the selected scan drives the visible progress text.
        if handle is self._handle:
            self.status_message = message

    async def list_repositories(self) -> List[Repository]:
        """Repositories known to the scanner. Raises TransportError."""
        return await self._source.list_repositories()

    async def submit(self, repository_id: int) -> ScanHandle:
        """Start a scan for a repository and select it. Raises TransportError."""
        self.reset()
        self.is_scanning = True
        self.status_message = "Starting scan..."
        try:
            started = await self._source.start_scan(repository_id)
        except TransportError:
            self.is_scanning = False
            self.status_message = "Failed to start scan"
            raise

        logger.info(f"Scan {started.scan_id} submitted for repository {repository_id}")
        handle = self._select(ScanHandle(scan_id=started.scan_id, repository_id=repository_id))
        self.status_message = "Analyzing..."
        return handle

    def cancel(self, handle: ScanHandle) -> None:
        handle.cancel()
        if handle is self._handle and self._task is not None and not self._task.done():
            self._task.cancel()

    async def _wait(self, handle: ScanHandle) -> bool:
        """Sleep one poll interval; True when cancelled before it elapsed."""
        if handle.is_cancelled:
            return True
        try:
            await asyncio.wait_for(handle.cancelled.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def observe(self, handle: ScanHandle) -> AsyncIterator[ScanJob]:
        """
        Poll the scan status until it reaches a terminal state.

        Yields one snapshot per poll, the terminal one included, then stops.
        Polls never overlap, and nothing is polled after the handle is
        cancelled or the consumer closes the iterator. A transport error
        ends the sequence by raising TransportError; it is not retried.
        """
        while not handle.is_cancelled:
            if await self._wait(handle):
                return

            job = await self._source.get_scan_status(handle.scan_id)
            if handle.is_cancelled:
                return

            handle.latest = job
            yield job

            if job.status.is_terminal:
                logger.info(f"Scan {handle.scan_id} finished with status {job.status.value}")
                return

    async def _load_results(self, handle: ScanHandle) -> None:
        self._set_status(handle, "Loading results...")
        try:
            results = await self._source.get_scan_results(handle.scan_id)
        except TransportError as e:
            raise ResultsFetchError(str(e), status_code=e.status_code) from e

        if handle.is_cancelled:
            return
        process_records(results.metrics, handle.outcome, self.tree_limit)
        logger.info(
            f"Scan {handle.scan_id}: processed {len(results.metrics)} file(s), "
            f"{handle.outcome.hidden_count} file(s) hidden"
        )

    async def _drive(self, handle: ScanHandle) -> None:
        if handle.latest is None or not handle.latest.status.is_terminal:
            async for job in self.observe(handle):
                handle.outcome.job = job
                self._set_status(handle, job.status.value)

        job = handle.latest
        if handle.is_cancelled or job is None:
            return
        if job.status is ScanStatus.FAILED:
            raise ScanFailed(job)
        await self._load_results(handle)

    async def follow(self, handle: ScanHandle) -> ScanOutcome:
        """
        Observe a submitted scan to its end and process its results.

        Failures are recorded on the outcome rather than raised: the outcome
        ends up with either a summary and tree, or an error, never both.
        """
        outcome = handle.outcome
        try:
            await self._drive(handle)
        except ScanFailed as e:
            outcome.error = ErrorInfo(kind="scan_failed", message=str(e))
            self._set_status(handle, "Scan failed")
        except ResultsFetchError as e:
            outcome.error = ErrorInfo(kind="results_fetch", message=str(e))
            self._set_status(handle, "Failed to load results")
        except TransportError as e:
            outcome.error = ErrorInfo(kind="transport", message=str(e))
            self._set_status(handle, "Error polling scan")
        else:
            if outcome.is_ready:
                self._set_status(handle, "Completed")
        finally:
            if handle is self._handle:
                self.is_scanning = False
        return outcome

    def start_follow(self, handle: ScanHandle) -> asyncio.Task:
        """Follow the selected scan in the background of the running loop."""
        task = asyncio.create_task(self.follow(handle))
        if handle is self._handle:
            self._task = task
        return task

    async def track(self, repository_id: int) -> ScanOutcome:
        return await self.follow(await self.submit(repository_id))

    async def resume(self, repository_id: int) -> ScanOutcome:
        """
        Select a repository and pick up its latest scan: load the results of
        a completed one, keep polling one still in flight, or report a
        failed one.
        """
        self.reset()
        return await self._resume(repository_id)

    def start_resume(self, repository_id: int) -> asyncio.Task:
        """Like `resume`, but in the background of the running loop."""
        self.reset()
        self._task = asyncio.create_task(self._resume(repository_id))
        return self._task

    async def _resume(self, repository_id: int) -> ScanOutcome:
        self.status_message = "Loading details..."
        try:
            repository = await self._source.get_repository(repository_id)
        except TransportError as e:
            self.current = ScanOutcome(
                repository_id=repository_id,
                error=ErrorInfo(kind="transport", message=str(e)),
            )
            self.status_message = "Error loading repo"
            return self.current

        if not repository.scans:
            self.current = ScanOutcome(repository_id=repository_id)
            self.status_message = "No scans yet"
            return self.current

        latest = repository.scans[0]
        handle = self._select(
            ScanHandle(scan_id=latest.id, repository_id=repository_id, latest=latest)
        )
        handle.outcome.job = latest
        self.status_message = latest.status.value
        self.is_scanning = not latest.status.is_terminal
        return await self.follow(handle)
