"""Planner that packs consecutive pages under a size threshold."""

from __future__ import annotations

from typing import List, Sequence

from ..backends.base import SourceDocument
from ..models import SplitRequest, SplitStrategy
from ..types import Partition, SplitPlan, compress_pages
from ..utils import get_logger
from .base import Planner, register_planner

LOGGER = get_logger("splitwrangler.planners.file_size")

BYTES_PER_MB = 1024 * 1024


def estimate_page_sizes(document: SourceDocument) -> List[float]:
    """Spread the document size over its pages, weighted by stream sizes when known."""

    total_pages = document.total_page_count
    costs = document.page_costs()
    if not costs or len(costs) != total_pages:
        return [document.size_bytes / total_pages] * total_pages
    scale = document.size_bytes / sum(costs)
    return [cost * scale for cost in costs]


def partition_by_size(page_sizes: Sequence[float], threshold_bytes: float) -> List[List[int]]:
    """Greedily group 1-indexed pages so each group stays under ``threshold_bytes``.

    A page that alone exceeds the threshold becomes its own group; no group is
    ever empty and every page appears exactly once, in order.
    """

    if threshold_bytes <= 0:
        raise ValueError("threshold_bytes must be positive")

    groups: List[List[int]] = []
    current: List[int] = []
    current_size = 0.0
    for page, size in enumerate(page_sizes, start=1):
        if current and current_size + size > threshold_bytes:
            groups.append(current)
            current, current_size = [], 0.0
        current.append(page)
        current_size += size
    if current:
        groups.append(current)
    return groups


@register_planner(SplitStrategy.FILE_SIZE)
class SizeThresholdPlanner(Planner):
    default_pattern = "{original}_part_{index}.pdf"

    def plan(self, document: SourceDocument, request: SplitRequest) -> SplitPlan:
        threshold_mb = request.file_size_threshold_mb or self.settings.default_threshold_mb
        sizes = estimate_page_sizes(document)
        groups = partition_by_size(sizes, threshold_mb * BYTES_PER_MB)
        LOGGER.debug(
            "Planned %d size partitions for %d pages at %.2f MB",
            len(groups),
            document.total_page_count,
            threshold_mb,
        )

        partitions = []
        for index, pages in enumerate(groups, start=1):
            selection = compress_pages(pages)
            partitions.append(
                Partition(
                    sequence_index=index,
                    page_selection=selection,
                    suggested_file_name=self.file_name(request, index=index, selection=selection),
                )
            )
        return self.build_plan(document, request, partitions)
