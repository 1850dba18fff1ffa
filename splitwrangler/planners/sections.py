"""Planners that split on document structure: outline entries or annotations."""

from __future__ import annotations

from typing import List, Tuple

from ..backends.base import SourceDocument
from ..exceptions import NoStructureFoundError
from ..models import SectionType, SplitRequest, SplitStrategy
from ..types import OutlineEntry, PageRange, Partition, SplitPlan
from ..utils import get_logger
from .base import Planner, register_planner

LOGGER = get_logger("splitwrangler.planners.sections")

FRONT_MATTER_TITLE = "front_matter"


def select_entries(document: SourceDocument, section_type: SectionType) -> List[OutlineEntry]:
    """Return the structure entries that qualify as boundaries for ``section_type``."""

    if section_type is SectionType.ANNOTATIONS:
        return document.annotation_markers()

    outline = document.outline
    if section_type is SectionType.CHAPTERS:
        return [entry for entry in outline if entry.depth == 0]
    if section_type is SectionType.SECTIONS:
        return [entry for entry in outline if entry.depth <= 1]
    return list(outline)


def section_boundaries(entries: List[OutlineEntry]) -> List[Tuple[int, str]]:
    """Collapse entries into ``(page, title)`` boundaries sorted by page.

    Several entries targeting the same page produce a single boundary titled
    after the first of them.
    """

    boundaries: dict[int, str] = {}
    for entry in sorted(entries, key=lambda item: item.page_number):
        boundaries.setdefault(entry.page_number, entry.title)
    return sorted(boundaries.items())


@register_planner(SplitStrategy.SECTION)
class SectionPlanner(Planner):
    default_pattern = "{original}_{title}.pdf"

    def section_type(self, request: SplitRequest) -> SectionType:
        return request.section_type

    def plan(self, document: SourceDocument, request: SplitRequest) -> SplitPlan:
        section_type = self.section_type(request)
        entries = select_entries(document, section_type)
        if not entries:
            raise NoStructureFoundError(
                f"Document has no {section_type.value} to split on",
                strategy=self.strategy.value,
            )

        total = document.total_page_count
        boundaries = section_boundaries(entries)
        spans: List[Tuple[int, int, str, str]] = []
        if boundaries[0][0] > 1:
            spans.append((1, boundaries[0][0] - 1, FRONT_MATTER_TITLE, FRONT_MATTER_TITLE))
        for position, (start, title) in enumerate(boundaries):
            end = boundaries[position + 1][0] - 1 if position + 1 < len(boundaries) else total
            spans.append((start, end, title, section_type.value))

        partitions = []
        for index, (start, end, title, kind) in enumerate(spans, start=1):
            selection = [PageRange(start, end)]
            partitions.append(
                Partition(
                    sequence_index=index,
                    page_selection=selection,
                    suggested_file_name=self.file_name(
                        request, index=index, selection=selection, title=title, kind=kind
                    ),
                    title=title or None,
                    label=kind,
                )
            )
        LOGGER.debug(
            "Planned %d %s partitions from %d entries", len(partitions), section_type.value, len(entries)
        )
        return self.build_plan(document, request, partitions)


@register_planner(SplitStrategy.CHAPTER_BASED)
class ChapterPlanner(SectionPlanner):
    """Section planner fixed to top-level outline entries."""

    default_pattern = "chapter_{index}_{title}.pdf"

    def section_type(self, request: SplitRequest) -> SectionType:
        return SectionType.CHAPTERS
