"""Planner for named, flexible page selections."""

from __future__ import annotations

from typing import List

from ..backends.base import SourceDocument
from ..exceptions import InvalidSplitRequestError
from ..models import PageSelection, SplitRequest, SplitStrategy
from ..ranges import parse_selection, validate_pages
from ..types import Partition, SplitPlan, compress_pages
from .base import Planner, register_planner


def resolve_selection(selection: PageSelection, total_pages: int) -> List[int]:
    """Return ``(pages | ranges) - exclude_pages`` in ascending order."""

    pages = set(validate_pages(selection.pages, total_pages=total_pages))
    for spec in selection.ranges:
        for page_range in parse_selection(spec, total_pages=total_pages):
            pages.update(page_range.pages())
    pages.difference_update(validate_pages(selection.exclude_pages, total_pages=total_pages))
    return sorted(pages)


@register_planner(SplitStrategy.FLEXIBLE_SELECTION)
class SelectionPlanner(Planner):
    default_pattern = "{original}_{title}.pdf"

    def plan(self, document: SourceDocument, request: SplitRequest) -> SplitPlan:
        if not request.page_selections:
            raise InvalidSplitRequestError(
                "At least one page selection is required",
                strategy=self.strategy.value,
            )

        partitions = []
        for index, selection in enumerate(request.page_selections, start=1):
            pages = resolve_selection(selection, document.total_page_count)
            if not pages:
                raise InvalidSplitRequestError(
                    f"Page selection '{selection.name}' does not contain any pages",
                    strategy=self.strategy.value,
                    partition_index=index,
                )
            ranges = compress_pages(pages)
            partitions.append(
                Partition(
                    sequence_index=index,
                    page_selection=ranges,
                    suggested_file_name=self.file_name(
                        request, index=index, selection=ranges, title=selection.name
                    ),
                    title=selection.name,
                )
            )
        return self.build_plan(document, request, partitions)
