"""Resource teardown coordinator.

Deletes every resource of one deployment, rank by rank, with bounded
concurrency inside a rank and dependency-aware blocking across ranks.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Iterable, Optional, Union

from ..adapters.errors import AdapterError, ResourceNotFoundError
from ..adapters.registry import ResourceAdapterSet
from ..aws.client import DEFAULT_CALL_TIMEOUT
from ..models.deletion_task import DeletionTask, TaskOutcome
from ..models.identity import DeploymentIdentity
from ..models.teardown_report import TeardownReport
from ..utils.logging import log_event
from .planner import TeardownPlan, TeardownPlanner

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
CANCELLED_REASON = "Run cancelled before the task started"


def normalize_regions(regions: Union[str, Iterable[str], None]) -> list[str]:
    """Split, strip and de-duplicate a region list, keeping its order.

    Raises:
        ValueError: If no region remains
    """
    if regions is None:
        raw: list[str] = []
    elif isinstance(regions, str):
        raw = regions.split(",")
    else:
        raw = list(regions)

    result: list[str] = []
    for region in raw:
        region = region.strip()
        if region and region not in result:
            result.append(region)

    if not result:
        raise ValueError("At least one region is required")
    return result


class _WorkerPool:
    """Thread pool that can abandon workers stuck in a timed-out call.

    A blocking SDK call cannot be interrupted. ``replace`` leaves the old
    executor's threads to finish in the background and starts a fresh one.
    """

    def __init__(self, max_workers: int) -> None:
        self.max_workers = max_workers
        self._executor = self._new_executor()

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="teardown")

    def submit(self, fn: Callable[..., None], *args) -> Future:
        return self._executor.submit(fn, *args)

    def replace(self) -> None:
        logger.debug("Replacing worker pool after a call timeout")
        self._executor.shutdown(wait=False)
        self._executor = self._new_executor()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


class TeardownCoordinator:
    """Ordered, dependency-aware deletion of one deployment's resources.

    Tasks run rank by rank. Within a rank, tasks are independent and run on a
    bounded thread pool; the next rank starts only when every task of the
    current rank is terminal. A failed task blocks its dependents, while
    unrelated branches keep going. Adapter errors never escape: they are
    recorded on the task.

    Attributes:
        adapters: Resource adapter set
        max_workers: Concurrent deletions per rank
        call_timeout: Seconds a single delete call may run before it is failed
    """

    def __init__(
        self,
        adapters: ResourceAdapterSet,
        max_workers: int = DEFAULT_MAX_WORKERS,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        poll_interval: float = 0.05,
    ) -> None:
        """Initialize the coordinator.

        Args:
            adapters: Resource adapter set used for listing and deleting
            max_workers: Size of the per-run worker pool (>= 1)
            call_timeout: Per-call timeout in seconds (> 0)
            poll_interval: How often in-flight calls are checked for timeouts

        Raises:
            ValueError: If max_workers or call_timeout is out of range
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if call_timeout <= 0:
            raise ValueError("call_timeout must be positive")

        self.adapters = adapters
        self.max_workers = max_workers
        self.call_timeout = call_timeout
        self.poll_interval = poll_interval

    def teardown(
        self,
        identity: Union[str, DeploymentIdentity],
        regions: Union[str, Iterable[str]],
        cancel_event: Optional[threading.Event] = None,
        dry_run: bool = False,
    ) -> TeardownReport:
        """Delete every resource belonging to a deployment.

        Args:
            identity: Deployment prefix
            regions: Regions to cover, home region first
            cancel_event: Set to stop starting new tasks (optional)
            dry_run: Discover and plan only; tasks stay pending

        Returns:
            TeardownReport with one task per discovered resource

        Raises:
            InvalidIdentityError: If the identity is empty or malformed
            ValueError: If no region is given
        """
        identity = DeploymentIdentity.parse(identity)
        regions = normalize_regions(regions)
        cancel_event = cancel_event or threading.Event()

        report = TeardownReport(identity=identity.prefix, regions=regions, dry_run=dry_run)
        logger.info(f"Starting teardown {report.run_id} for '{identity}' in {', '.join(regions)}")

        plan = TeardownPlanner(self.adapters).plan(identity, regions)
        for task in plan.tasks:
            report.add_task(task)
        for error in plan.discovery_errors:
            report.add_discovery_error(error)

        if not dry_run:
            self._execute_plan(plan, report, cancel_event)

        report.finish()
        self._log_summary(report)
        return report

    def _execute_plan(self, plan: TeardownPlan, report: TeardownReport, cancel_event: threading.Event) -> None:
        started: dict[str, float] = {}
        pool = _WorkerPool(self.max_workers)
        try:
            for rank_tasks in plan.ranks():
                self._run_rank(rank_tasks, plan, report, pool, cancel_event, started)
        finally:
            pool.shutdown()

        if cancel_event.is_set():
            report.cancelled = True

    def _run_rank(
        self,
        tasks: list[DeletionTask],
        plan: TeardownPlan,
        report: TeardownReport,
        pool: _WorkerPool,
        cancel_event: threading.Event,
        started: dict[str, float],
    ) -> None:
        """Run one rank, never handing the pool more tasks than it has free workers.

        Every submitted task starts right away, so its timeout clock starts
        when it is handed over. A timed-out call keeps its thread busy; the
        pool is replaced so the rest of the run gets a full set of workers.
        """
        queue = deque(tasks)
        in_flight: dict[Future, DeletionTask] = {}

        while queue or in_flight:
            while queue and len(in_flight) < self.max_workers:
                task = queue.popleft()
                if self._admit(task, plan, report, cancel_event):
                    started[task.task_id] = time.monotonic()
                    in_flight[pool.submit(self._execute, task, report, cancel_event, started)] = task

            if not in_flight:
                continue

            done, _ = wait(in_flight, timeout=self.poll_interval, return_when=FIRST_COMPLETED)
            for future in done:
                self._after_terminal(report, plan, in_flight.pop(future))

            abandoned = False
            now = time.monotonic()
            for future, task in list(in_flight.items()):
                if now - started[task.task_id] <= self.call_timeout:
                    continue

                timed_out = self._finish(
                    report,
                    task,
                    lambda t: t.mark_failed(
                        "Timeout", f"Delete call did not finish within {self.call_timeout:g} seconds"
                    ),
                )
                if timed_out or task.outcome.is_terminal:
                    del in_flight[future]
                    abandoned = abandoned or timed_out
                    self._after_terminal(report, plan, task)

            if abandoned:
                pool.replace()

    def _admit(
        self,
        task: DeletionTask,
        plan: TeardownPlan,
        report: TeardownReport,
        cancel_event: threading.Event,
    ) -> bool:
        """Return whether a pending task may start, blocking it otherwise."""
        if task.outcome != TaskOutcome.PENDING:
            return False
        if cancel_event.is_set():
            self._block(report, plan, task, CANCELLED_REASON)
            return False

        blocker = self._unclean_predecessor(task, report)
        if blocker:
            self._block(report, plan, task, f"Blocked by {blocker.outcome.value} task {blocker.task_id}")
            return False
        return True

    def _execute(
        self,
        task: DeletionTask,
        report: TeardownReport,
        cancel_event: threading.Event,
        started: dict[str, float],
    ) -> None:
        """Run one deletion on a worker thread; never raises."""
        if cancel_event.is_set():
            report.record(task, lambda t: t.mark_blocked(CANCELLED_REASON))
            return

        def start(t: DeletionTask) -> None:
            t.mark_running()
            started[t.task_id] = time.monotonic()

        report.record(task, start)

        try:
            adapter = self.adapters.get(task.kind)
            adapter.delete(task.resource)
        except ResourceNotFoundError as e:
            logger.info(f"{task.task_id} already deleted: {e.message}")
            self._finish(report, task, lambda t: t.mark_not_found())
        except AdapterError as e:
            self._finish(report, task, lambda t: t.mark_failed(e.code, e.message))
        except Exception as e:
            logger.exception(f"Unexpected error deleting {task.task_id}")
            self._finish(report, task, lambda t: t.mark_failed(type(e).__name__, str(e) or repr(e)))
        else:
            self._finish(report, task, lambda t: t.mark_succeeded())

    def _finish(self, report: TeardownReport, task: DeletionTask, update: Callable[[DeletionTask], None]) -> bool:
        """Apply a terminal update if the task is still running.

        A call that outlives its timeout reports back after the coordinator
        already failed the task; that late result is dropped.
        """
        applied = []

        def guarded(t: DeletionTask) -> None:
            if t.outcome == TaskOutcome.RUNNING:
                update(t)
                applied.append(True)

        report.record(task, guarded)
        if not applied:
            logger.debug(f"Discarding late result for {task.task_id} ({task.outcome.value})")
        return bool(applied)

    def _unclean_predecessor(self, task: DeletionTask, report: TeardownReport) -> Optional[DeletionTask]:
        for predecessor_id in sorted(task.predecessors):
            predecessor = report.get_task(predecessor_id)
            if predecessor is not None and not predecessor.outcome.is_clean:
                return predecessor
        return None

    def _block(self, report: TeardownReport, plan: TeardownPlan, task: DeletionTask, reason: str) -> None:
        report.record(task, lambda t: t.mark_blocked(reason))
        self._after_terminal(report, plan, task)

    def _after_terminal(self, report: TeardownReport, plan: TeardownPlan, task: DeletionTask) -> None:
        """Emit the task event and block dependents of an unclean outcome."""
        self._log_task(report, task)

        if task.outcome.is_clean or not task.outcome.is_terminal:
            return

        reason = f"Blocked by {task.outcome.value} task {task.task_id}"
        for dependent_id in sorted(plan.resolver.dependents(task.task_id)):
            dependent = report.get_task(dependent_id)
            if dependent is None or dependent.outcome != TaskOutcome.PENDING:
                continue
            report.record(dependent, lambda t: t.mark_blocked(reason))
            self._log_task(report, dependent)

    def _log_task(self, report: TeardownReport, task: DeletionTask) -> None:
        level = logging.INFO if task.outcome.is_clean else logging.WARNING
        message = f"{task.task_id}: {task.outcome.value}"
        if task.error_message:
            message = f"{message} ({task.error_message})"

        log_event(
            logger,
            "teardown.task",
            level=level,
            message=message,
            run_id=report.run_id,
            task_id=task.task_id,
            kind=task.kind.label,
            region=task.resource.region,
            resource_id=task.resource.resource_id,
            outcome=task.outcome.value,
            error_code=task.error_code,
            error_message=task.error_message,
            duration_seconds=task.duration_seconds,
        )

    def _log_summary(self, report: TeardownReport) -> None:
        log_event(
            logger,
            "teardown.summary",
            level=logging.INFO,
            message=f"Teardown {report.run_id} finished: {report.status.value}",
            run_id=report.run_id,
            identity=report.identity,
            regions=report.regions,
            status=report.status.value,
            dry_run=report.dry_run,
            cancelled=report.cancelled,
            counts=report.counts(),
            discovery_errors=len(report.discovery_errors),
            duration_seconds=report.duration_seconds,
        )


def teardown(
    identity: Union[str, DeploymentIdentity],
    regions: Union[str, Iterable[str]],
    adapters: ResourceAdapterSet,
    max_workers: int = DEFAULT_MAX_WORKERS,
    call_timeout: float = DEFAULT_CALL_TIMEOUT,
    cancel_event: Optional[threading.Event] = None,
    dry_run: bool = False,
) -> TeardownReport:
    """Delete every resource of a deployment and return the report.

    Args:
        identity: Deployment prefix
        regions: Regions, home region first
        adapters: Resource adapter set
        max_workers: Concurrent deletions per rank
        call_timeout: Per-call timeout in seconds
        cancel_event: Optional cancellation signal
        dry_run: Plan only

    Returns:
        TeardownReport
    """
    coordinator = TeardownCoordinator(adapters, max_workers=max_workers, call_timeout=call_timeout)
    return coordinator.teardown(identity, regions, cancel_event=cancel_event, dry_run=dry_run)
