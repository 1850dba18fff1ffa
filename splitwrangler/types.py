"""
Type definitions and dataclasses for splitwrangler.

This module defines the data structures passed between planners, the
executor and the archive packager.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Sequence


@dataclass(frozen=True)
class PageRange:
    """Represents an inclusive, 1-indexed page range."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1 or self.end < 1:
            raise ValueError("Page numbers must be positive integers")
        if self.start > self.end:
            raise ValueError("Page range start must be less than or equal to end")

    @property
    def page_count(self) -> int:
        return self.end - self.start + 1

    def pages(self) -> range:
        return range(self.start, self.end + 1)

    def spec(self) -> str:
        """Return the range as it would be written by a user, e.g. ``3-5``."""

        if self.start == self.end:
            return str(self.start)
        return f"{self.start}-{self.end}"

    def label(self) -> str:
        """Return a filename-friendly label for the range."""

        if self.start == self.end:
            return f"page_{self.start}"
        return f"pages_{self.start}-{self.end}"


def selection_spec(selection: Sequence[PageRange]) -> str:
    """Render a page selection as a comma separated range expression."""

    return ",".join(page_range.spec() for page_range in selection)


def compress_pages(pages: Sequence[int]) -> List[PageRange]:
    """Collapse ascending page numbers into contiguous :class:`PageRange` values."""

    ranges: List[PageRange] = []
    start: Optional[int] = None
    previous: Optional[int] = None
    for page in pages:
        if start is None:
            start = previous = page
            continue
        if page == previous + 1:
            previous = page
            continue
        ranges.append(PageRange(start, previous))
        start = previous = page
    if start is not None:
        ranges.append(PageRange(start, previous))
    return ranges


@dataclass(frozen=True)
class OutlineEntry:
    """A single outline (bookmark) entry flattened from the outline tree.

    Attributes:
        title: Bookmark title as stored in the PDF
        page_number: 1-indexed target page
        depth: Nesting level, 0 for top-level entries
    """

    title: str
    page_number: int
    depth: int = 0


@dataclass(frozen=True)
class PageFeatures:
    """Layout and content signals for one page, used by content-aware planning."""

    page_number: int
    width: float
    height: float
    rotation: int = 0
    text_length: int = 0
    content_bytes: int = 0
    has_images: bool = False
    blank_content_bytes: int = 32

    @property
    def is_blank(self) -> bool:
        return (
            self.text_length == 0
            and not self.has_images
            and self.content_bytes <= self.blank_content_bytes
        )

    @property
    def is_landscape(self) -> bool:
        width, height = self.width, self.height
        if self.rotation % 180:
            width, height = height, width
        return width > height


@dataclass
class Partition:
    """
    A set of source pages destined for one output document.

    Attributes:
        sequence_index: 1-based position of the partition within its plan
        page_selection: Ordered, non-empty list of page ranges
        suggested_file_name: File name proposed by the planner
        title: Optional human-readable title (bookmark, selection name)
        label: Optional planner-specific tag, e.g. the content signal
    """

    sequence_index: int
    page_selection: List[PageRange]
    suggested_file_name: str
    title: Optional[str] = None
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.page_selection:
            raise ValueError("Partition page selection must not be empty")

    def page_numbers(self) -> List[int]:
        """Return selected pages in order, each page at most once."""

        seen: set[int] = set()
        pages: List[int] = []
        for page_range in self.page_selection:
            for page in page_range.pages():
                if page not in seen:
                    seen.add(page)
                    pages.append(page)
        return pages

    @property
    def page_count(self) -> int:
        return len(self.page_numbers())

    @property
    def page_ranges(self) -> str:
        return selection_spec(self.page_selection)


@dataclass
class SplitPlan:
    """Ordered partitions produced by a planner prior to execution."""

    strategy: str
    partitions: List[Partition]
    original_filename: str
    total_pages: int
    preserve_bookmarks: bool = True
    preserve_metadata: bool = True

    def __iter__(self) -> Iterator[Partition]:
        return iter(self.partitions)

    def __len__(self) -> int:
        return len(self.partitions)

    @property
    def planned_page_count(self) -> int:
        return sum(partition.page_count for partition in self.partitions)


@dataclass
class OutputArtifact:
    """A serialized output document produced from one partition."""

    file_name: str
    page_count: int
    size_bytes: int
    content_handle: Path
    sequence_index: int
    page_ranges: str = ""

    def read_bytes(self) -> bytes:
        return Path(self.content_handle).read_bytes()


@dataclass
class PartitionFailure:
    """Describes a partition that could not be produced."""

    sequence_index: int
    page_ranges: str
    error: str
    retryable: bool = True

    def to_dict(self) -> dict:
        return {
            "partitionIndex": self.sequence_index,
            "pageRanges": self.page_ranges,
            "error": self.error,
            "retryable": self.retryable,
        }


@dataclass
class ExecutionResult:
    """
    Result of executing a split plan.

    Attributes:
        success: True when every partition produced an artifact
        artifacts: Artifacts in plan order
        failures: Partitions that failed under batch-tolerant execution
    """

    success: bool
    artifacts: List[OutputArtifact] = field(default_factory=list)
    failures: List[PartitionFailure] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return sum(artifact.page_count for artifact in self.artifacts)

    def __str__(self) -> str:
        if self.success:
            return f"ExecutionResult(success=True, artifacts={len(self.artifacts)})"
        return (
            f"ExecutionResult(success=False, artifacts={len(self.artifacts)}, "
            f"failures={len(self.failures)})"
        )


__all__ = [
    "PageRange",
    "OutlineEntry",
    "PageFeatures",
    "Partition",
    "SplitPlan",
    "OutputArtifact",
    "PartitionFailure",
    "ExecutionResult",
    "compress_pages",
    "selection_spec",
]
