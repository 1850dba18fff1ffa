"""Planner for explicit page range splits."""

from __future__ import annotations

from ..backends.base import SourceDocument
from ..models import SplitRequest, SplitStrategy
from ..ranges import parse_selection
from ..types import PageRange, Partition, SplitPlan
from ..utils import base_name, build_output_filename
from .base import Planner, register_planner


@register_planner(SplitStrategy.PAGE_RANGES)
class PageRangePlanner(Planner):
    """One partition per requested range string, kept in the order given.

    Overlapping ranges are not merged, so a page listed twice ends up in two
    outputs. An empty range list splits the document into single pages.
    """

    def plan(self, document: SourceDocument, request: SplitRequest) -> SplitPlan:
        total = document.total_page_count
        if request.page_ranges:
            selections = [parse_selection(spec, total_pages=total) for spec in request.page_ranges]
        else:
            selections = [[PageRange(page, page)] for page in range(1, total + 1)]

        original = base_name(request.original_filename)
        partitions = []
        for index, selection in enumerate(selections, start=1):
            partitions.append(
                Partition(
                    sequence_index=index,
                    page_selection=selection,
                    suggested_file_name=self.file_name(
                        request,
                        index=index,
                        selection=selection,
                        default=build_output_filename(original, selection),
                    ),
                )
            )
        return self.build_plan(document, request, partitions)
