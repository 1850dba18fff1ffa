from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import pytest

from splitwrangler.config import SplitSettings
from splitwrangler.exceptions import (
    InvalidSplitRequestError,
    NoStructureFoundError,
    RangeOutOfBoundsError,
    UnsupportedStrategyError,
)
from splitwrangler.models import (
    ContentAwareConfig,
    PageSelection,
    SectionType,
    SplitRequest,
    SplitStrategy,
)
from splitwrangler.planners import (
    ChapterPlanner,
    ContentAwarePlanner,
    PageRangePlanner,
    Planner,
    PlannerRegistry,
    SectionPlanner,
    SelectionPlanner,
    SizeThresholdPlanner,
    estimate_page_sizes,
    partition_by_size,
    registry,
)
from splitwrangler.types import PageFeatures


def _request(data: bytes, **fields) -> SplitRequest:
    fields.setdefault("original_filename", "report.pdf")
    return SplitRequest(source=data, **fields)


def _ranges(plan) -> List[str]:
    return [partition.page_ranges for partition in plan]


# Page ranges


def test_page_range_plan_matches_requested_ranges(load, pdf_10: bytes) -> None:
    request = _request(pdf_10, page_ranges=["1-3", "4-6", "7-10"])
    plan = PageRangePlanner().plan(load(pdf_10), request)

    assert _ranges(plan) == ["1-3", "4-6", "7-10"]
    assert [partition.page_count for partition in plan] == [3, 3, 4]
    assert [partition.suggested_file_name for partition in plan] == [
        "report_pages_1-3.pdf",
        "report_pages_4-6.pdf",
        "report_pages_7-10.pdf",
    ]
    assert plan.strategy == "pageRanges"
    assert plan.total_pages == 10


def test_page_range_plan_keeps_overlaps(load, pdf_10: bytes) -> None:
    plan = PageRangePlanner().plan(load(pdf_10), _request(pdf_10, page_ranges=["1-5", "3-7"]))

    assert _ranges(plan) == ["1-5", "3-7"]
    assert plan.planned_page_count == 10


def test_empty_range_list_splits_into_single_pages(load, pdf_5: bytes) -> None:
    plan = PageRangePlanner().plan(load(pdf_5), _request(pdf_5))

    assert _ranges(plan) == ["1", "2", "3", "4", "5"]
    assert plan.partitions[0].suggested_file_name == "report_page_1.pdf"


def test_page_range_plan_with_comma_selection(load, pdf_10: bytes) -> None:
    plan = PageRangePlanner().plan(load(pdf_10), _request(pdf_10, page_ranges=["1-3,7"]))

    assert plan.partitions[0].page_numbers() == [1, 2, 3, 7]
    assert plan.partitions[0].suggested_file_name == "report_pages_1-3_7.pdf"


def test_page_range_plan_applies_pattern(load, pdf_10: bytes) -> None:
    request = _request(pdf_10, page_ranges=["1-2", "3"], file_name_pattern="{original}_{index}_{range}")
    plan = PageRangePlanner().plan(load(pdf_10), request)

    assert [partition.suggested_file_name for partition in plan] == ["report_1_1-2.pdf", "report_2_3.pdf"]


def test_page_range_plan_rejects_reversed_range(load, pdf_10: bytes) -> None:
    with pytest.raises(RangeOutOfBoundsError):
        PageRangePlanner().plan(load(pdf_10), _request(pdf_10, page_ranges=["3-1"]))


# File size


def test_partition_by_size_groups_greedily() -> None:
    assert partition_by_size([1, 1, 1, 1, 1], 2) == [[1, 2], [3, 4], [5]]
    assert partition_by_size([5, 1, 1], 2) == [[1], [2, 3]]
    assert partition_by_size([1, 1], 10) == [[1, 2]]


def test_partition_by_size_rejects_non_positive_threshold() -> None:
    with pytest.raises(ValueError):
        partition_by_size([1, 2], 0)


@dataclass
class _StubDocument:
    total_page_count: int
    size_bytes: int
    costs: Optional[List[int]] = None

    def page_costs(self) -> Optional[List[int]]:
        return self.costs


def test_estimate_page_sizes_scales_costs_to_document_size() -> None:
    assert estimate_page_sizes(_StubDocument(4, 400)) == [100.0] * 4
    assert estimate_page_sizes(_StubDocument(2, 300, costs=[1, 2])) == [100.0, 200.0]
    assert estimate_page_sizes(_StubDocument(2, 300, costs=[1])) == [150.0, 150.0]


def test_estimate_page_sizes_weights_pages_with_content(load, make_pdf) -> None:
    document = load(make_pdf(3, contents={2: b"0 0 m 100 100 l S " * 50}))

    sizes = estimate_page_sizes(document)

    assert sizes[1] == pytest.approx(document.size_bytes)
    assert sizes[0] == 0 and sizes[2] == 0


def test_size_threshold_plan(load, pdf_10: bytes) -> None:
    per_page_mb = len(pdf_10) / 10 / (1024 * 1024)
    request = _request(pdf_10, strategy=SplitStrategy.FILE_SIZE, file_size_threshold_mb=per_page_mb * 3.5)
    plan = SizeThresholdPlanner().plan(load(pdf_10), request)

    assert _ranges(plan) == ["1-3", "4-6", "7-9", "10"]
    assert [partition.suggested_file_name for partition in plan] == [
        "report_part_1.pdf",
        "report_part_2.pdf",
        "report_part_3.pdf",
        "report_part_4.pdf",
    ]


def test_size_threshold_plan_uses_default_threshold(load, pdf_10: bytes) -> None:
    plan = SizeThresholdPlanner(SplitSettings()).plan(
        load(pdf_10), _request(pdf_10, strategy=SplitStrategy.FILE_SIZE)
    )

    assert _ranges(plan) == ["1-10"]


# Sections


def test_chapters_split_on_top_level_entries(load, outline_pdf: bytes) -> None:
    request = _request(outline_pdf, strategy=SplitStrategy.SECTION)
    plan = SectionPlanner().plan(load(outline_pdf), request)

    assert _ranges(plan) == ["1-3", "4-7", "8-10"]
    assert [partition.title for partition in plan] == ["Introduction", "Methods", "Results"]
    assert plan.partitions[0].suggested_file_name == "report_Introduction.pdf"
    assert {partition.label for partition in plan} == {"chapters"}


def test_sections_include_second_level(load, outline_pdf: bytes) -> None:
    request = _request(outline_pdf, strategy=SplitStrategy.SECTION, section_type=SectionType.SECTIONS)
    plan = SectionPlanner().plan(load(outline_pdf), request)

    assert _ranges(plan) == ["1", "2-3", "4", "5-7", "8-10"]


def test_bookmarks_use_every_entry(load, outline_pdf: bytes) -> None:
    request = _request(outline_pdf, strategy=SplitStrategy.SECTION, section_type=SectionType.BOOKMARKS)
    plan = SectionPlanner().plan(load(outline_pdf), request)

    assert _ranges(plan) == ["1", "2-3", "4", "5", "6-7", "8-10"]


def test_pages_before_first_entry_become_front_matter(load, make_pdf) -> None:
    data = make_pdf(10, outline=[("A", 3, 0), ("B", 3, 0), ("C", 6, 0)])
    plan = SectionPlanner().plan(load(data), _request(data, strategy=SplitStrategy.SECTION))

    assert _ranges(plan) == ["1-2", "3-5", "6-10"]
    assert [partition.title for partition in plan] == ["front_matter", "A", "C"]
    assert plan.partitions[0].suggested_file_name == "report_front_matter.pdf"


def test_annotations_split_at_markup(load, annotated_pdf: bytes) -> None:
    request = _request(annotated_pdf, strategy=SplitStrategy.SECTION, section_type=SectionType.ANNOTATIONS)
    plan = SectionPlanner().plan(load(annotated_pdf), request)

    assert _ranges(plan) == ["1-2", "3-6", "7-10"]
    assert [partition.title for partition in plan] == ["front_matter", "Review needed", "Key result"]


def test_missing_outline_raises_recoverable_error(load, pdf_10: bytes) -> None:
    with pytest.raises(NoStructureFoundError) as excinfo:
        SectionPlanner().plan(load(pdf_10), _request(pdf_10, strategy=SplitStrategy.SECTION))

    assert excinfo.value.recoverable is True
    assert excinfo.value.strategy == "documentSection"


def test_chapter_planner_ignores_section_type(load, outline_pdf: bytes) -> None:
    request = _request(
        outline_pdf, strategy=SplitStrategy.CHAPTER_BASED, section_type=SectionType.BOOKMARKS
    )
    plan = ChapterPlanner().plan(load(outline_pdf), request)

    assert _ranges(plan) == ["1-3", "4-7", "8-10"]
    assert [partition.suggested_file_name for partition in plan] == [
        "chapter_1_Introduction.pdf",
        "chapter_2_Methods.pdf",
        "chapter_3_Results.pdf",
    ]


# Content aware


class _StubAnalyzer:
    def __init__(self, blank=(), landscape_from: Optional[int] = None) -> None:
        self.blank = set(blank)
        self.landscape_from = landscape_from

    def page_features(self, document, page_number: int) -> PageFeatures:
        landscape = self.landscape_from is not None and page_number >= self.landscape_from
        return PageFeatures(
            page_number=page_number,
            width=300 if landscape else 200,
            height=200 if landscape else 300,
            text_length=0 if page_number in self.blank else 120,
        )


def _content_request(data: bytes, **config) -> SplitRequest:
    return _request(
        data,
        strategy=SplitStrategy.CONTENT_AWARE,
        content_config=ContentAwareConfig(**config),
    )


def test_content_aware_splits_after_blank_and_on_layout_change(load, pdf_10: bytes) -> None:
    planner = ContentAwarePlanner(analyzer=_StubAnalyzer(blank=[4], landscape_from=8))
    plan = planner.plan(load(pdf_10), _content_request(pdf_10))

    assert _ranges(plan) == ["1-4", "5-7", "8-10"]
    assert [partition.label for partition in plan] == ["content", "blank_separator", "layout_change"]
    assert plan.partitions[2].suggested_file_name == "report_layout_change_3.pdf"


def test_content_aware_respects_minimum_partition_size(load, pdf_10: bytes) -> None:
    planner = ContentAwarePlanner(analyzer=_StubAnalyzer(blank=[4], landscape_from=8))
    plan = planner.plan(load(pdf_10), _content_request(pdf_10, min_partition_pages=4))

    assert _ranges(plan) == ["1-4", "5-10"]


def test_content_aware_signals_can_be_disabled(load, pdf_10: bytes) -> None:
    planner = ContentAwarePlanner(analyzer=_StubAnalyzer(blank=[4], landscape_from=8))
    plan = planner.plan(load(pdf_10), _content_request(pdf_10, detect_layout_changes=False))

    assert _ranges(plan) == ["1-4", "5-10"]


def test_leading_blank_pages_do_not_split(load, pdf_10: bytes) -> None:
    planner = ContentAwarePlanner(analyzer=_StubAnalyzer(blank=[1, 2]))
    plan = planner.plan(load(pdf_10), _content_request(pdf_10))

    assert _ranges(plan) == ["1-10"]


def test_content_aware_without_boundaries_keeps_one_partition(load, pdf_10: bytes) -> None:
    plan = ContentAwarePlanner().plan(load(pdf_10), _content_request(pdf_10))

    assert _ranges(plan) == ["1-10"]
    assert plan.partitions[0].suggested_file_name == "report_content_1.pdf"


# Flexible selection


def test_selection_combines_pages_and_ranges_minus_exclusions(load, pdf_10: bytes) -> None:
    request = _request(
        pdf_10,
        strategy=SplitStrategy.FLEXIBLE_SELECTION,
        page_selections=[
            PageSelection(name="Summary", pages=[1, 2], ranges=["5-6"], exclude_pages=[2]),
            PageSelection(name="Appendix", ranges=["9-10"]),
        ],
    )
    plan = SelectionPlanner().plan(load(pdf_10), request)

    assert _ranges(plan) == ["1,5-6", "9-10"]
    assert [partition.suggested_file_name for partition in plan] == ["report_Summary.pdf", "report_Appendix.pdf"]


def test_selection_requires_selections(load, pdf_10: bytes) -> None:
    with pytest.raises(InvalidSplitRequestError):
        SelectionPlanner().plan(load(pdf_10), _request(pdf_10, strategy=SplitStrategy.FLEXIBLE_SELECTION))


def test_selection_that_excludes_everything_is_rejected(load, pdf_10: bytes) -> None:
    request = _request(
        pdf_10,
        strategy=SplitStrategy.FLEXIBLE_SELECTION,
        page_selections=[PageSelection(name="Nothing", pages=[3], exclude_pages=[3])],
    )
    with pytest.raises(InvalidSplitRequestError) as excinfo:
        SelectionPlanner().plan(load(pdf_10), request)

    assert excinfo.value.partition_index == 1


def test_selection_rejects_pages_outside_document(load, pdf_10: bytes) -> None:
    request = _request(
        pdf_10,
        strategy=SplitStrategy.FLEXIBLE_SELECTION,
        page_selections=[PageSelection(name="Far", pages=[11])],
    )
    with pytest.raises(RangeOutOfBoundsError):
        SelectionPlanner().plan(load(pdf_10), request)


# Registry


def test_every_strategy_has_a_planner() -> None:
    assert set(registry.strategies()) == set(SplitStrategy)


def test_registry_rejects_duplicates() -> None:
    local = PlannerRegistry()
    local.register(SplitStrategy.PAGE_RANGES, PageRangePlanner)

    with pytest.raises(ValueError):
        local.register(SplitStrategy.PAGE_RANGES, PageRangePlanner)


def test_registry_create_unknown_strategy() -> None:
    with pytest.raises(UnsupportedStrategyError) as excinfo:
        PlannerRegistry().create(SplitStrategy.FILE_SIZE)

    assert excinfo.value.strategy == "fileSize"


def test_registry_passes_options_to_planner() -> None:
    analyzer = _StubAnalyzer()
    planner = registry.create(SplitStrategy.CONTENT_AWARE, SplitSettings(), analyzer=analyzer)

    assert isinstance(planner, Planner)
    assert planner.analyzer is analyzer
