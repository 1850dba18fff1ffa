"""Backend protocol for PDF operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from ..types import OutlineEntry


@dataclass
class SourceDocument:
    """Represents a loaded PDF document with backend-specific helpers."""

    total_page_count: int
    size_bytes: int
    original_filename: str

    @property
    def outline(self) -> List[OutlineEntry]:
        """Depth-annotated flattening of the outline tree, in document order."""
        raise NotImplementedError

    def annotation_markers(self) -> List[OutlineEntry]:
        """Pages carrying markup annotations, one entry per annotation."""
        raise NotImplementedError

    def page(self, index: int) -> object:
        raise NotImplementedError

    def page_costs(self) -> Optional[List[int]]:
        """Relative byte weight of each page, or ``None`` when unavailable."""
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> "SourceDocument":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class PDFBackend(Protocol):
    """Protocol defining backend operations for PDF reading/writing."""

    def load(
        self,
        data: bytes,
        *,
        file_name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> SourceDocument:
        """Parse ``data`` and return a backend document wrapper."""

    def extract_pages(
        self,
        document: SourceDocument,
        indices: Sequence[int],
        *,
        preserve_bookmarks: bool = True,
        preserve_metadata: bool = True,
        title_suffix: str = "",
    ) -> object:
        """Build a new in-memory document holding the 0-indexed ``indices``."""

    def count_pages(self, handle: object) -> int:
        """Return the number of pages held by an extracted handle."""

    def save(self, handle: object) -> bytes:
        """Serialize a handle returned by :meth:`extract_pages`."""
