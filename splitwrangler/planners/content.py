"""Content-aware planning: split where blank separators or layout changes occur."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Protocol, Sequence, Tuple

from ..backends.base import SourceDocument
from ..config import SplitSettings
from ..models import ContentAwareConfig, SplitRequest, SplitStrategy
from ..types import PageFeatures, PageRange, Partition, SplitPlan
from ..utils import get_logger
from .base import Planner, register_planner

LOGGER = get_logger("splitwrangler.planners.content")

BLANK_SEPARATOR = "blank_separator"
LAYOUT_CHANGE = "layout_change"
CONTENT = "content"


class ContentAnalyzer(Protocol):
    def page_features(self, document: SourceDocument, page_number: int) -> PageFeatures:
        """Return layout and content signals for the 1-indexed ``page_number``."""


class HeuristicContentAnalyzer:
    """Reads page geometry, rotation, text and image presence through pypdf."""

    def page_features(self, document: SourceDocument, page_number: int) -> PageFeatures:
        page = document.page(page_number - 1)
        box = page.mediabox
        try:
            text = page.extract_text() or ""
        except Exception as exc:  # pragma: no cover
            LOGGER.debug("Text extraction failed on page %d: %s", page_number, exc)
            text = ""

        contents = page.get_contents()
        content_bytes = len(contents.get_data().strip()) if contents is not None else 0

        return PageFeatures(
            page_number=page_number,
            width=float(box.width),
            height=float(box.height),
            rotation=int(page.rotation or 0),
            text_length=len(text.strip()),
            content_bytes=content_bytes,
            has_images=self._has_images(page),
        )

    @staticmethod
    def _has_images(page) -> bool:
        resources = page.get("/Resources")
        if resources is None:
            return False
        xobjects = resources.get_object().get("/XObject")
        if xobjects is None:
            return False
        for xobject in xobjects.get_object().values():
            if xobject.get_object().get("/Subtype") == "/Image":
                return True
        return False


def layout_changed(previous: PageFeatures, current: PageFeatures, tolerance: float) -> bool:
    if previous.is_landscape != current.is_landscape:
        return True
    if previous.rotation % 360 != current.rotation % 360:
        return True
    return (
        abs(previous.width - current.width) > tolerance
        or abs(previous.height - current.height) > tolerance
    )


def detect_boundaries(
    features: Sequence[PageFeatures], config: ContentAwareConfig
) -> List[Tuple[int, str]]:
    """Return ``(page_number, signal)`` pairs where a new partition starts.

    A run of blank pages stays with the content before it; the next non-blank
    page opens a new partition. Leading blank pages never create a boundary.
    """

    boundaries: List[Tuple[int, str]] = []
    previous: Optional[PageFeatures] = None
    seen_content = False
    after_blank = False

    for current in features:
        if config.detect_blank_pages and current.is_blank:
            after_blank = after_blank or seen_content
            continue

        signal = None
        if after_blank:
            signal = BLANK_SEPARATOR
        elif (
            config.detect_layout_changes
            and previous is not None
            and layout_changed(previous, current, config.layout_tolerance)
        ):
            signal = LAYOUT_CHANGE
        if signal is not None and current.page_number > 1:
            boundaries.append((current.page_number, signal))

        previous = current
        seen_content = True
        after_blank = False
    return boundaries


def enforce_min_pages(
    boundaries: Sequence[Tuple[int, str]], total_pages: int, min_pages: int
) -> List[Tuple[int, str]]:
    """Drop boundaries that would leave a partition shorter than ``min_pages``."""

    kept: List[Tuple[int, str]] = []
    start = 1
    for page, signal in boundaries:
        if page - start >= min_pages:
            kept.append((page, signal))
            start = page
    while kept and total_pages - kept[-1][0] + 1 < min_pages:
        kept.pop()
    return kept


@register_planner(SplitStrategy.CONTENT_AWARE)
class ContentAwarePlanner(Planner):
    """Splits a document at detected content boundaries.

    When nothing qualifies, the whole document becomes a single partition.
    """

    default_pattern = "{original}_{type}_{index}.pdf"

    def __init__(
        self,
        settings: Optional[SplitSettings] = None,
        analyzer: Optional[ContentAnalyzer] = None,
    ) -> None:
        super().__init__(settings)
        self.analyzer = analyzer or HeuristicContentAnalyzer()

    def plan(self, document: SourceDocument, request: SplitRequest) -> SplitPlan:
        config = request.content_config
        total = document.total_page_count
        features = [
            replace(
                self.analyzer.page_features(document, page_number),
                blank_content_bytes=config.blank_content_bytes,
            )
            for page_number in range(1, total + 1)
        ]
        boundaries = enforce_min_pages(
            detect_boundaries(features, config), total, config.min_partition_pages
        )
        if not boundaries:
            LOGGER.info("No content boundaries detected; keeping %d pages together", total)

        starts = [(1, CONTENT)] + boundaries
        partitions = []
        for index, (start, signal) in enumerate(starts, start=1):
            end = starts[index][0] - 1 if index < len(starts) else total
            selection = [PageRange(start, end)]
            partitions.append(
                Partition(
                    sequence_index=index,
                    page_selection=selection,
                    suggested_file_name=self.file_name(
                        request, index=index, selection=selection, kind=signal
                    ),
                    label=signal,
                )
            )
        return self.build_plan(document, request, partitions)
