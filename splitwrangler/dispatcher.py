"""Top-level routing of split requests to planners, the executor and the job tracker."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .archive import package, unique_names
from .backends import PDFBackend, PypdfBackend, SourceDocument
from .config import SplitSettings
from .exceptions import (
    FileTooLargeError,
    InvalidSplitRequestError,
    PartitionExtractionError,
    SplitTimeoutError,
    SplitWranglerError,
)
from .executor import SplitExecutor
from .jobs import ARCHIVE_NAME, JobHandle, JobTracker
from .models import (
    BatchSplitResponse,
    FailurePolicy,
    JobProgress,
    PreviewResponse,
    PreviewResult,
    SectionType,
    SplitOutputFile,
    SplitRequest,
    SplitResponse,
    SplitStrategy,
)
from .planners import Planner, estimate_page_sizes, registry
from .storage import TempStorage
from .types import ExecutionResult, OutputArtifact, SplitPlan
from .utils import format_file_size, get_logger

LOGGER = get_logger("splitwrangler.dispatcher")

BYTES_PER_MB = 1024 * 1024

NAMING_PLACEHOLDERS = ["{original}", "{index}", "{range}", "{title}", "{chapter}", "{type}", "{timestamp}"]


@dataclass
class SplitOutcome:
    """Result of a synchronous split: the response and the archive it describes."""

    response: SplitResponse
    archive_path: Path
    artifacts: List[OutputArtifact] = field(default_factory=list)


class StrategyDispatcher:
    """Entry point for synchronous, asynchronous, batch and preview splits."""

    def __init__(
        self,
        *,
        settings: Optional[SplitSettings] = None,
        backend: Optional[PDFBackend] = None,
        storage: Optional[TempStorage] = None,
        tracker: Optional[JobTracker] = None,
        planners: Optional[Mapping[SplitStrategy, Planner]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or SplitSettings()
        self.backend: PDFBackend = backend or PypdfBackend()
        self.storage = storage if storage is not None else TempStorage(self.settings.workspace_root, clock=clock)
        self._owns_tracker = tracker is None
        if tracker is None:
            tracker = JobTracker(
                ThreadPoolExecutor(max_workers=self.settings.max_workers, thread_name_prefix="splitwrangler"),
                storage=self.storage,
                retention_seconds=self.settings.job_retention_seconds,
                clock=clock,
            )
            tracker.start_sweeper(self.settings.sweep_interval_seconds)
        self.tracker = tracker
        self.executor = SplitExecutor(
            self.backend, failure_policy=FailurePolicy(self.settings.failure_policy)
        )
        self.clock = clock
        self._planners: Dict[SplitStrategy, Planner] = dict(planners or {})

    # ------------------------------------------------------------------
    # Planning helpers
    # ------------------------------------------------------------------
    def planner_for(self, strategy: SplitStrategy) -> Planner:
        planner = self._planners.get(strategy)
        if planner is None:
            planner = registry.create(strategy, self.settings)
            self._planners[strategy] = planner
        return planner

    def _validate(self, request: SplitRequest) -> None:
        if not request.source:
            raise InvalidSplitRequestError("Source document is empty", strategy=request.strategy.value)
        if len(request.source) > self.settings.max_upload_bytes:
            raise FileTooLargeError(
                f"Source document is {format_file_size(len(request.source))}; "
                f"the limit is {self.settings.max_upload_mb} MB",
                strategy=request.strategy.value,
            )

    def _purge_expired(self) -> None:
        self.tracker.purge_expired()
        if self.storage is not self.tracker.storage:
            self.storage.purge_expired()

    def _load(self, request: SplitRequest) -> SourceDocument:
        return self.backend.load(
            request.source, file_name=request.original_filename, password=request.password
        )

    def _plan(self, document: SourceDocument, request: SplitRequest) -> SplitPlan:
        plan = self.planner_for(request.strategy).plan(document, request)
        if not plan.partitions:
            raise InvalidSplitRequestError("Split plan is empty", strategy=plan.strategy)
        return plan

    def _failure_policy(self, request: SplitRequest) -> FailurePolicy:
        return request.failure_policy or FailurePolicy(self.settings.failure_policy)

    def _max_duration(self, request: SplitRequest) -> Optional[float]:
        return request.max_duration_seconds or self.settings.job_timeout_seconds

    def _deadline_checkpoint(self, request: SplitRequest, started: float) -> Optional[Callable[[], None]]:
        budget = self._max_duration(request)
        if not budget:
            return None

        def checkpoint() -> None:
            if self.clock() - started > budget:
                raise SplitTimeoutError(
                    f"Operation exceeded its {budget:g}s time budget",
                    strategy=request.strategy.value,
                )

        return checkpoint

    @staticmethod
    def _build_response(
        request: SplitRequest,
        result: ExecutionResult,
        elapsed_ms: int,
    ) -> SplitResponse:
        names = unique_names(artifact.file_name for artifact in result.artifacts)
        output_files = [
            SplitOutputFile(
                file_name=name,
                page_count=artifact.page_count,
                file_size_bytes=artifact.size_bytes,
                page_ranges=artifact.page_ranges,
            )
            for artifact, name in zip(result.artifacts, names)
        ]
        if result.success:
            message = f"Split into {len(output_files)} documents"
        else:
            message = (
                f"Split into {len(output_files)} documents; "
                f"{len(result.failures)} partitions failed"
            )
        return SplitResponse(
            success=result.success,
            message=message,
            output_files=output_files,
            total_output_files=len(output_files),
            processing_time_ms=elapsed_ms,
            original_file_name=request.original_filename,
            split_strategy=request.strategy.value,
            failures=[failure.to_dict() for failure in result.failures],
        )

    # ------------------------------------------------------------------
    # Caller surface
    # ------------------------------------------------------------------
    def split(self, request: SplitRequest) -> SplitOutcome:
        """Run a split on the calling thread and package the outputs."""

        self._purge_expired()
        started = self.clock()
        perf_start = time.perf_counter()
        self._validate(request)
        LOGGER.info(
            "Starting %s split of %s (%d bytes)",
            request.strategy.value,
            request.original_filename,
            len(request.source),
        )

        workspace = self.storage.create_temp(prefix="split_")
        try:
            with self._load(request) as document:
                plan = self._plan(document, request)
                result = self.executor.execute(
                    document,
                    plan,
                    workspace / "parts",
                    failure_policy=self._failure_policy(request),
                    checkpoint=self._deadline_checkpoint(request, started),
                )
            if not result.artifacts:
                raise PartitionExtractionError(
                    "No output documents were produced", strategy=plan.strategy
                )
            archive_path = package(result.artifacts, workspace / ARCHIVE_NAME)
        except Exception:
            self.storage.remove(workspace)
            raise
        self.storage.schedule_cleanup(workspace, self.settings.job_retention_seconds)

        elapsed_ms = int((time.perf_counter() - perf_start) * 1000)
        response = self._build_response(request, result, elapsed_ms)
        LOGGER.info(
            "Finished %s split of %s: %d documents in %d ms",
            request.strategy.value,
            request.original_filename,
            response.total_output_files,
            elapsed_ms,
        )
        return SplitOutcome(response=response, archive_path=archive_path, artifacts=result.artifacts)

    def submit_async(self, request: SplitRequest) -> str:
        """Queue ``request`` as a tracked job and return its operation id.

        Only the request itself is checked here. Loading and planning happen
        on the worker, so a bad range or a missing outline fails the job
        instead of raising.
        """

        self._purge_expired()
        self._validate(request)
        policy = self._failure_policy(request)

        def work(handle: JobHandle) -> ExecutionResult:
            handle.set_step("Planning")
            with self._load(request) as document:
                plan = self._plan(document, request)
                handle.report_progress(0, len(plan))
                return self.executor.execute(
                    document,
                    plan,
                    handle.workspace / "parts",
                    failure_policy=policy,
                    checkpoint=handle.checkpoint,
                    progress_callback=handle.report_progress,
                    artifact_callback=handle.add_artifact,
                )

        return self.tracker.submit(
            work,
            strategy=request.strategy.value,
            max_duration_seconds=self._max_duration(request),
        )

    def submit_split(self, request: SplitRequest, *, asynchronous: bool = False) -> SplitOutcome | str:
        if asynchronous:
            return self.submit_async(request)
        return self.split(request)

    def preview_split(self, request: SplitRequest) -> PreviewResponse:
        """Plan ``request`` and estimate its outputs without writing anything."""

        self._purge_expired()
        self._validate(request)
        with self._load(request) as document:
            plan = self._plan(document, request)
            sizes = estimate_page_sizes(document)

        names = unique_names(partition.suggested_file_name for partition in plan)
        results = []
        for partition, name in zip(plan, names):
            estimated = sum(sizes[page - 1] for page in partition.page_numbers())
            results.append(
                PreviewResult(
                    output_file_name=name,
                    page_ranges=partition.page_ranges,
                    page_count=partition.page_count,
                    estimated_file_size_mb=round(estimated / BYTES_PER_MB, 3),
                    title=partition.title,
                )
            )
        return PreviewResponse(
            success=True,
            message=f"Split would produce {len(results)} documents",
            split_strategy=plan.strategy,
            preview_results=results,
            total_pages=plan.total_pages,
            estimated_output_files=len(results),
        )

    def split_batch(self, requests: Sequence[SplitRequest]) -> BatchSplitResponse:
        """Split several documents in turn; a failed request does not stop the rest.

        The batch only reports. Each archive is discarded as soon as its
        response is collected.
        """

        perf_start = time.perf_counter()
        responses: List[SplitResponse] = []
        for request in requests:
            try:
                outcome = self.split(request)
                self.storage.remove(outcome.archive_path.parent)
                responses.append(outcome.response)
            except SplitWranglerError as exc:
                LOGGER.warning("Batch split of %s failed: %s", request.original_filename, exc.message)
                responses.append(
                    SplitResponse(
                        success=False,
                        message=exc.message,
                        original_file_name=request.original_filename,
                        split_strategy=request.strategy.value,
                        error=exc.context(),
                    )
                )

        completed = sum(1 for response in responses if response.success)
        failed = len(responses) - completed
        return BatchSplitResponse(
            success=failed == 0,
            message=(
                f"Batch split completed: {completed} succeeded, {failed} failed "
                "(report only; outputs are not kept)"
            ),
            results=responses,
            total_processing_time_ms=int((time.perf_counter() - perf_start) * 1000),
            completed_jobs=completed,
            failed_jobs=failed,
        )

    def get_progress(self, operation_id: str) -> JobProgress:
        self._purge_expired()
        return self.tracker.get_progress(operation_id)

    def get_result(self, operation_id: str) -> Path:
        self._purge_expired()
        return self.tracker.get_result(operation_id)

    def cancel(self, operation_id: str) -> bool:
        self._purge_expired()
        return self.tracker.cancel(operation_id)

    def capabilities(self) -> Dict[str, Any]:
        return {
            "supportedStrategies": [s.value for s in SplitStrategy if registry.get(s) is not None],
            "supportedSectionTypes": [section.value for section in SectionType],
            "failurePolicies": [policy.value for policy in FailurePolicy],
            "maxFileSizeMB": self.settings.max_upload_mb,
            "defaultFileSizeThresholdMB": self.settings.default_threshold_mb,
            "jobRetentionSeconds": self.settings.job_retention_seconds,
            "namingPlaceholders": NAMING_PLACEHOLDERS,
            "namingPatterns": [
                "{original}_{range}.pdf",
                "{original}_part_{index}.pdf",
                "split_{timestamp}_{index}.pdf",
                "chapter_{index}_{title}.pdf",
            ],
            "features": {
                "asyncProcessing": True,
                "progressTracking": True,
                "cancellation": True,
                "preview": True,
                "batchProcessing": True,
                "bookmarkPreservation": True,
                "metadataPreservation": True,
            },
        }

    def close(self) -> None:
        """Stop the tracker this dispatcher created; a tracker passed in is left running."""

        if self._owns_tracker:
            self.tracker.shutdown(wait=False)


def build_default_dispatcher(settings: Optional[SplitSettings] = None) -> StrategyDispatcher:
    """Create a dispatcher wired from ``settings`` (the environment by default)."""

    settings = settings or SplitSettings.from_env()
    logging.getLogger("splitwrangler").setLevel(settings.log_level)

    return StrategyDispatcher(settings=settings)


__all__ = ["StrategyDispatcher", "SplitOutcome", "build_default_dispatcher", "NAMING_PLACEHOLDERS"]
