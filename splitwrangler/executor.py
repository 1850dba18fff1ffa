"""Execution of split plans through a PDF backend."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

from .backends.base import PDFBackend, SourceDocument
from .exceptions import PartitionExtractionError
from .models import FailurePolicy
from .types import ExecutionResult, OutputArtifact, Partition, PartitionFailure, SplitPlan
from .utils import get_logger

LOGGER = get_logger("splitwrangler.executor")

Checkpoint = Callable[[], None]
ProgressCallback = Callable[[int, int], None]
ArtifactCallback = Callable[[OutputArtifact], None]


class SplitExecutor:
    """Produces one output document per partition, strictly in plan order."""

    def __init__(
        self,
        backend: PDFBackend,
        *,
        failure_policy: FailurePolicy = FailurePolicy.ABORT,
    ) -> None:
        self.backend = backend
        self.failure_policy = failure_policy

    def execute(
        self,
        document: SourceDocument,
        plan: SplitPlan,
        workspace: Path,
        *,
        failure_policy: Optional[FailurePolicy] = None,
        checkpoint: Optional[Checkpoint] = None,
        progress_callback: Optional[ProgressCallback] = None,
        artifact_callback: Optional[ArtifactCallback] = None,
    ) -> ExecutionResult:
        """
        Extract and serialize every partition of ``plan`` into ``workspace``.

        Args:
            document: Loaded source document the plan was computed for
            plan: Partitions to produce
            workspace: Directory receiving the serialized outputs
            failure_policy: Overrides the executor's default policy
            checkpoint: Called before each partition; may raise to stop work
            progress_callback: Called with ``(completed, total)`` after each partition
            artifact_callback: Called with each artifact as soon as it is written

        Raises:
            PartitionExtractionError: Under ``ABORT``, for the first failing partition.

        Returns:
            ExecutionResult with artifacts in plan order.
        """

        policy = failure_policy or self.failure_policy
        workspace = Path(workspace)
        workspace.mkdir(parents=True, exist_ok=True)

        artifacts: List[OutputArtifact] = []
        failures: List[PartitionFailure] = []
        total = len(plan)
        LOGGER.info(
            "Executing %s plan: %d partitions over %d pages", plan.strategy, total, plan.total_pages
        )

        for completed, partition in enumerate(plan, start=1):
            if checkpoint:
                checkpoint()

            try:
                artifact = self._produce(document, plan, partition, workspace)
            except PartitionExtractionError as error:
                if policy is FailurePolicy.ABORT:
                    raise
                LOGGER.warning("Partition %d failed: %s", partition.sequence_index, error.message)
                failures.append(
                    PartitionFailure(
                        sequence_index=partition.sequence_index,
                        page_ranges=partition.page_ranges,
                        error=error.message,
                        retryable=error.retryable,
                    )
                )
            else:
                artifacts.append(artifact)
                if artifact_callback:
                    artifact_callback(artifact)

            if progress_callback:
                progress_callback(completed, total)

        return ExecutionResult(success=not failures, artifacts=artifacts, failures=failures)

    def _produce(
        self,
        document: SourceDocument,
        plan: SplitPlan,
        partition: Partition,
        workspace: Path,
    ) -> OutputArtifact:
        pages = partition.page_numbers()
        destination = workspace / f"{partition.sequence_index:04d}_{partition.suggested_file_name}"
        try:
            handle = self.backend.extract_pages(
                document,
                [page - 1 for page in pages],
                preserve_bookmarks=plan.preserve_bookmarks,
                preserve_metadata=plan.preserve_metadata,
                title_suffix=f" - Pages {partition.page_ranges}",
            )
            produced = self.backend.count_pages(handle)
            if produced != len(pages):
                raise PartitionExtractionError(
                    f"Partition {partition.sequence_index} produced {produced} pages, expected {len(pages)}",
                    strategy=plan.strategy,
                    partition_index=partition.sequence_index,
                    page_range=partition.page_ranges,
                )
            data = self.backend.save(handle)
            destination.write_bytes(data)
        except PartitionExtractionError:
            raise
        except Exception as exc:
            raise PartitionExtractionError(
                f"Failed to extract partition {partition.sequence_index} "
                f"(pages {partition.page_ranges}): {exc}",
                strategy=plan.strategy,
                partition_index=partition.sequence_index,
                page_range=partition.page_ranges,
            ) from exc

        LOGGER.debug(
            "Wrote partition %d (%s) to %s", partition.sequence_index, partition.page_ranges, destination.name
        )
        return OutputArtifact(
            file_name=partition.suggested_file_name,
            page_count=len(pages),
            size_bytes=len(data),
            content_handle=destination,
            sequence_index=partition.sequence_index,
            page_ranges=partition.page_ranges,
        )


__all__ = ["SplitExecutor", "Checkpoint", "ProgressCallback", "ArtifactCallback"]
