"""Asynchronous split jobs: submission, progress, cancellation and expiry.

:class:`JobStore` is the only shared mutable structure. A store-level lock
guards the id map, every :class:`JobRecord` carries its own lock for field
updates, and cancellation travels through a per-job :class:`threading.Event`
that workers poll between partitions.
"""

from __future__ import annotations

import time
import uuid
from concurrent.futures import Executor
from dataclasses import dataclass, field
from pathlib import Path
from threading import Event, Lock, Thread
from typing import Any, Callable, Dict, List, Optional

from .archive import package
from .exceptions import (
    JobNotFoundError,
    JobNotReadyError,
    SplitCancelled,
    SplitTimeoutError,
    SplitWranglerError,
)
from .models import JobProgress, JobStatus
from .storage import TempStorage
from .types import ExecutionResult, OutputArtifact, PartitionFailure
from .utils import get_logger

LOGGER = get_logger("splitwrangler.jobs")

ARCHIVE_NAME = "split_results.zip"
PARTIAL_ARCHIVE_NAME = "split_results_partial.zip"


@dataclass
class JobRecord:
    """State of one split job. Mutate only while holding :attr:`lock`."""

    operation_id: str
    strategy: str
    created_at: float
    max_duration_seconds: Optional[float] = None
    status: JobStatus = JobStatus.PENDING
    progress_percentage: int = 0
    current_step: str = "Queued"
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    deadline: Optional[float] = None
    completed_partitions: int = 0
    total_partitions: int = 0
    artifacts: List[OutputArtifact] = field(default_factory=list)
    failures: List[PartitionFailure] = field(default_factory=list)
    error: Optional[Dict[str, Any]] = None
    archive_path: Optional[Path] = None
    workspace: Optional[Path] = None
    packaging: bool = False
    lock: Lock = field(default_factory=Lock, repr=False)
    cancel_event: Event = field(default_factory=Event, repr=False)
    done_event: Event = field(default_factory=Event, repr=False)

    def is_expired(self, now: float, retention_seconds: float) -> bool:
        return self.finished_at is not None and self.finished_at + retention_seconds <= now

    def snapshot(self, now: float) -> JobProgress:
        with self.lock:
            remaining = None
            if (
                self.status is JobStatus.RUNNING
                and self.started_at is not None
                and self.completed_partitions
                and self.total_partitions
            ):
                elapsed = now - self.started_at
                per_partition = elapsed / self.completed_partitions
                remaining = int(per_partition * (self.total_partitions - self.completed_partitions) * 1000)
            return JobProgress(
                operation_id=self.operation_id,
                status=self.status,
                progress_percentage=self.progress_percentage,
                current_step=self.current_step,
                estimated_time_remaining_ms=remaining,
                processed_partitions=self.completed_partitions,
                total_partitions=self.total_partitions,
                output_files_created=len(self.artifacts),
                strategy=self.strategy,
                created_at=self.created_at,
                finished_at=self.finished_at,
                error=self.error,
                failures=[failure.to_dict() for failure in self.failures],
            )


class JobStore:
    """In-memory map of operation ids to job records."""

    def __init__(self) -> None:
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = Lock()

    def add(self, record: JobRecord) -> None:
        with self._lock:
            self._jobs[record.operation_id] = record

    def get(self, operation_id: str) -> Optional[JobRecord]:
        with self._lock:
            return self._jobs.get(operation_id)

    def remove(self, operation_id: str) -> Optional[JobRecord]:
        with self._lock:
            return self._jobs.pop(operation_id, None)

    def purge_expired(self, now: float, retention_seconds: float) -> List[JobRecord]:
        """Drop terminal records older than ``retention_seconds`` and return them."""

        with self._lock:
            expired = [
                record for record in self._jobs.values() if record.is_expired(now, retention_seconds)
            ]
            for record in expired:
                del self._jobs[record.operation_id]
        return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


class JobHandle:
    """Worker-side view of a running job."""

    def __init__(self, tracker: "JobTracker", record: JobRecord) -> None:
        self._tracker = tracker
        self._record = record

    @property
    def operation_id(self) -> str:
        return self._record.operation_id

    @property
    def workspace(self) -> Path:
        if self._record.workspace is None:
            raise RuntimeError("Job workspace has not been created")
        return self._record.workspace

    def checkpoint(self) -> None:
        """Raise if the job was cancelled or has run out of time."""

        record = self._record
        if record.cancel_event.is_set():
            raise SplitCancelled(strategy=record.strategy)
        if record.deadline is not None and self._tracker.clock() > record.deadline:
            raise SplitTimeoutError(
                f"Operation exceeded its {record.max_duration_seconds:g}s time budget",
                strategy=record.strategy,
                partition_index=record.completed_partitions + 1,
            )

    def set_step(self, step: str) -> None:
        with self._record.lock:
            self._record.current_step = step

    def report_progress(self, completed: int, total: int) -> None:
        with self._record.lock:
            self._record.completed_partitions = completed
            self._record.total_partitions = total
            self._record.progress_percentage = int(completed * 100 / total) if total else 0
            self._record.current_step = f"Processed {completed} of {total} partitions"

    def add_artifact(self, artifact: OutputArtifact) -> None:
        with self._record.lock:
            self._record.artifacts.append(artifact)


Work = Callable[[JobHandle], Optional[ExecutionResult]]


class JobTracker:
    """Runs split work on an executor and tracks its lifecycle.

    Jobs move ``PENDING -> RUNNING -> COMPLETED | FAILED | CANCELLED``. A
    pending job can be cancelled directly; a running one stops at its next
    checkpoint. Terminal jobs and their workspaces are kept for
    ``retention_seconds`` and then purged.
    """

    def __init__(
        self,
        executor: Executor,
        *,
        store: Optional[JobStore] = None,
        storage: Optional[TempStorage] = None,
        retention_seconds: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.executor = executor
        self.store = store if store is not None else JobStore()
        self.storage = storage if storage is not None else TempStorage(clock=clock)
        self.retention_seconds = retention_seconds
        self.clock = clock
        self._sweeper: Optional[Thread] = None
        self._sweeper_stop = Event()

    # ------------------------------------------------------------------
    # Submission and execution
    # ------------------------------------------------------------------
    def submit(
        self,
        work: Work,
        *,
        strategy: str,
        max_duration_seconds: Optional[float] = None,
    ) -> str:
        """Register a PENDING job and schedule ``work`` on the executor."""

        record = JobRecord(
            operation_id=str(uuid.uuid4()),
            strategy=strategy,
            created_at=self.clock(),
            max_duration_seconds=max_duration_seconds,
        )
        self.store.add(record)
        LOGGER.info("Queued split job %s (%s)", record.operation_id, strategy)
        self.executor.submit(self._run, record, work)
        return record.operation_id

    def _run(self, record: JobRecord, work: Work) -> None:
        with record.lock:
            if record.status is not JobStatus.PENDING:
                return
            record.status = JobStatus.RUNNING
            record.started_at = self.clock()
            record.current_step = "Splitting"
            if record.max_duration_seconds:
                record.deadline = record.started_at + record.max_duration_seconds

        handle = JobHandle(self, record)
        try:
            record.workspace = self.storage.create_temp(prefix=f"job_{record.operation_id[:8]}_")
            result = work(handle)
            if result is not None and result.failures:
                with record.lock:
                    record.failures = list(result.failures)
            with record.lock:
                # Past this point a cancel request can no longer stop the job.
                handle.checkpoint()
                if not record.artifacts:
                    raise SplitWranglerError("No output documents were produced", strategy=record.strategy)
                record.packaging = True
                record.current_step = "Packaging"
            archive_path = package(record.artifacts, record.workspace / ARCHIVE_NAME)
        except SplitCancelled:
            LOGGER.info("Split job %s cancelled", record.operation_id)
            self._finish(record, JobStatus.CANCELLED, step="Cancelled")
        except SplitWranglerError as exc:
            LOGGER.warning("Split job %s failed: %s", record.operation_id, exc.message)
            self._finish(record, JobStatus.FAILED, step="Failed", error=exc.context())
        except Exception as exc:
            LOGGER.exception("Split job %s failed unexpectedly", record.operation_id)
            error = SplitWranglerError(f"Unexpected error: {exc}", strategy=record.strategy)
            self._finish(record, JobStatus.FAILED, step="Failed", error=error.context())
        else:
            self._finish(record, JobStatus.COMPLETED, step="Completed", archive_path=archive_path)

    def _finish(
        self,
        record: JobRecord,
        status: JobStatus,
        *,
        step: str,
        error: Optional[Dict[str, Any]] = None,
        archive_path: Optional[Path] = None,
    ) -> None:
        with record.lock:
            record.status = status
            record.current_step = step
            record.finished_at = self.clock()
            record.error = error
            if archive_path is not None:
                record.archive_path = archive_path
            if status is JobStatus.COMPLETED:
                record.progress_percentage = 100
            workspace = record.workspace
        if workspace is not None:
            self.storage.schedule_cleanup(workspace, self.retention_seconds)
        record.done_event.set()
        LOGGER.info(
            "Split job %s finished with status %s (%d artifacts)",
            record.operation_id,
            status.value,
            len(record.artifacts),
        )

    # ------------------------------------------------------------------
    # Caller surface
    # ------------------------------------------------------------------
    def _require(self, operation_id: str) -> JobRecord:
        record = self.store.get(operation_id)
        if record is None:
            raise JobNotFoundError(operation_id)
        if record.is_expired(self.clock(), self.retention_seconds):
            self.store.remove(operation_id)
            if record.workspace is not None:
                self.storage.remove(record.workspace)
            raise JobNotFoundError(operation_id)
        return record

    def get_progress(self, operation_id: str) -> JobProgress:
        return self._require(operation_id).snapshot(self.clock())

    def get_result(self, operation_id: str) -> Path:
        """Return the archive for a finished job.

        Completed jobs return their archive. Cancelled jobs that finished some
        partitions are packaged on demand from what was produced.
        """

        record = self._require(operation_id)
        with record.lock:
            status = record.status
            if status is JobStatus.COMPLETED and record.archive_path is not None:
                return record.archive_path
            if status is JobStatus.CANCELLED and record.artifacts and record.workspace is not None:
                if record.archive_path is None:
                    record.archive_path = package(
                        record.artifacts, record.workspace / PARTIAL_ARCHIVE_NAME
                    )
                return record.archive_path
        raise JobNotReadyError(operation_id, status.value)

    def get_artifacts(self, operation_id: str) -> List[OutputArtifact]:
        record = self._require(operation_id)
        with record.lock:
            return list(record.artifacts)

    def cancel(self, operation_id: str) -> bool:
        """Request cancellation.

        Returns ``False`` when the job already finished or is packaging its
        outputs, since it will then complete regardless.
        """

        record = self._require(operation_id)
        with record.lock:
            if record.status is JobStatus.PENDING:
                record.status = JobStatus.CANCELLED
                record.current_step = "Cancelled"
                record.finished_at = self.clock()
                record.cancel_event.set()
                record.done_event.set()
                LOGGER.info("Split job %s cancelled before start", operation_id)
                return True
            if record.status is JobStatus.RUNNING and not record.packaging:
                record.cancel_event.set()
                record.current_step = "Cancelling"
                LOGGER.info("Cancellation requested for split job %s", operation_id)
                return True
        return False

    def wait(self, operation_id: str, timeout: Optional[float] = None) -> JobProgress:
        record = self._require(operation_id)
        record.done_event.wait(timeout)
        return record.snapshot(self.clock())

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------
    def purge_expired(self) -> int:
        expired = self.store.purge_expired(self.clock(), self.retention_seconds)
        for record in expired:
            if record.workspace is not None:
                self.storage.remove(record.workspace)
        self.storage.purge_expired()
        if expired:
            LOGGER.info("Purged %d expired split jobs", len(expired))
        return len(expired)

    def start_sweeper(self, interval_seconds: float) -> None:
        """Purge expired jobs every ``interval_seconds`` on a daemon thread."""

        if self._sweeper is not None:
            return

        def _sweep() -> None:
            while not self._sweeper_stop.wait(interval_seconds):
                try:
                    self.purge_expired()
                except Exception:  # pragma: no cover
                    LOGGER.exception("Expired job sweep failed")

        self._sweeper = Thread(target=_sweep, name="splitwrangler-sweeper", daemon=True)
        self._sweeper.start()

    def shutdown(self, wait: bool = True) -> None:
        self._sweeper_stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None
        self.executor.shutdown(wait=wait)


__all__ = ["JobRecord", "JobStore", "JobHandle", "JobTracker", "JobStatus"]
