"""pypdf backend implementation for splitwrangler."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from ..exceptions import EncryptedPDFError, InvalidPDFError
from ..types import OutlineEntry
from ..utils import get_logger
from .base import PDFBackend, SourceDocument

LOGGER = get_logger("splitwrangler.backends.pypdf")

MARKUP_ANNOTATIONS = {
    "/Text",
    "/FreeText",
    "/Highlight",
    "/Underline",
    "/StrikeOut",
    "/Squiggly",
}


def _stream_length(obj: Any) -> int:
    # pypdf drops /Length from parsed streams, so measure the data itself.
    resolved = obj.get_object() if hasattr(obj, "get_object") else obj
    if not hasattr(resolved, "get_data"):
        return 0
    return len(resolved.get_data())


@dataclass
class PypdfDocument(SourceDocument):
    reader: PdfReader
    stream: io.BytesIO
    _outline_cache: Optional[List[OutlineEntry]] = field(default=None, repr=False)
    _closed: bool = field(default=False, repr=False)

    @property
    def outline(self) -> List[OutlineEntry]:
        if self._outline_cache is None:
            entries: List[OutlineEntry] = []
            try:
                self._walk_outline(self.reader.outline, 0, entries)
            except PdfReadError as exc:
                LOGGER.warning("Ignoring unreadable outline in %s: %s", self.original_filename, exc)
            self._outline_cache = entries
        return self._outline_cache

    def _walk_outline(self, items: Sequence[Any], depth: int, entries: List[OutlineEntry]) -> None:
        # A nested list holds the children of the item preceding it.
        for item in items:
            if isinstance(item, list):
                self._walk_outline(item, depth + 1, entries)
                continue
            page_index = self.reader.get_destination_page_number(item)
            if page_index is None or page_index < 0:
                continue
            title = str(getattr(item, "title", "") or "").strip()
            entries.append(OutlineEntry(title=title, page_number=page_index + 1, depth=depth))

    def annotation_markers(self) -> List[OutlineEntry]:
        markers: List[OutlineEntry] = []
        for index, page in enumerate(self.reader.pages):
            annotations = page.get("/Annots")
            if annotations is None:
                continue
            for annotation in annotations.get_object():
                obj = annotation.get_object()
                subtype = str(obj.get("/Subtype", ""))
                if subtype not in MARKUP_ANNOTATIONS:
                    continue
                title = obj.get("/Contents") or obj.get("/T") or f"{subtype.lstrip('/')} note"
                markers.append(OutlineEntry(title=str(title).strip(), page_number=index + 1))
        return markers

    def page(self, index: int) -> Any:
        return self.reader.pages[index]

    def page_costs(self) -> Optional[List[int]]:
        costs: List[int] = []
        try:
            for page in self.reader.pages:
                cost = 0
                contents = page.get("/Contents")
                if contents is not None:
                    contents = contents.get_object()
                    parts = contents if isinstance(contents, list) else [contents]
                    cost += sum(_stream_length(part) for part in parts)
                resources = page.get("/Resources")
                resources = resources.get_object() if resources is not None else None
                xobjects = resources.get("/XObject") if resources is not None else None
                if xobjects is not None:
                    cost += sum(_stream_length(xobject) for xobject in xobjects.get_object().values())
                costs.append(cost)
        except Exception as exc:  # pragma: no cover
            LOGGER.debug("Could not estimate page weights for %s: %s", self.original_filename, exc)
            return None
        if not any(costs):
            return None
        return costs

    def copy_metadata(self, writer: PdfWriter, *, title_suffix: str = "") -> None:
        metadata_dict: Dict[str, str] = {}
        metadata = self.reader.metadata

        if metadata and metadata.title:
            title = metadata.title
            if title_suffix:
                title = f"{title}{title_suffix}"
            metadata_dict["/Title"] = title
        if metadata and metadata.author:
            metadata_dict["/Author"] = metadata.author
        if metadata and metadata.subject:
            metadata_dict["/Subject"] = metadata.subject
        if metadata and metadata.creator:
            metadata_dict["/Creator"] = metadata.creator

        metadata_dict.setdefault("/Producer", "splitwrangler")
        writer.add_metadata(metadata_dict)

    def close(self) -> None:
        if not self._closed:
            self.stream.close()
            self._closed = True


class PypdfBackend(PDFBackend):
    """Backend implementation that uses `pypdf` under the hood."""

    def load(
        self,
        data: bytes,
        *,
        file_name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> PypdfDocument:
        name = file_name or "document.pdf"
        if not data:
            raise InvalidPDFError(f"Uploaded file is empty: {name}")

        stream = io.BytesIO(data)
        try:
            reader = PdfReader(stream)
        except PdfReadError as exc:
            raise InvalidPDFError(f"Corrupted or invalid PDF file: {name}. Error: {exc}") from exc
        except Exception as exc:
            raise InvalidPDFError(f"Unexpected error reading PDF: {name}. Error: {exc}") from exc

        if reader.is_encrypted:
            if password:
                if reader.decrypt(password) == 0:
                    raise EncryptedPDFError("Failed to decrypt PDF with supplied password.")
            else:
                raise EncryptedPDFError("PDF is encrypted. Supply a password to process this file.")

        try:
            page_count = len(reader.pages)
        except PdfReadError as exc:
            raise InvalidPDFError(f"Unable to read page tree of {name}. Error: {exc}") from exc
        if page_count == 0:
            raise InvalidPDFError(f"PDF has no pages: {name}")

        return PypdfDocument(
            total_page_count=page_count,
            size_bytes=len(data),
            original_filename=name,
            reader=reader,
            stream=stream,
        )

    def extract_pages(
        self,
        document: PypdfDocument,
        indices: Sequence[int],
        *,
        preserve_bookmarks: bool = True,
        preserve_metadata: bool = True,
        title_suffix: str = "",
    ) -> PdfWriter:
        writer = PdfWriter()
        placed: Dict[int, int] = {}
        for index in indices:
            writer.add_page(document.page(index))
            placed.setdefault(index, len(writer.pages) - 1)

        if preserve_metadata:
            document.copy_metadata(writer, title_suffix=title_suffix)
        if preserve_bookmarks:
            self._copy_outline(writer, document, placed)
        return writer

    def _copy_outline(self, writer: PdfWriter, document: PypdfDocument, placed: Dict[int, int]) -> None:
        """Recreate outline entries whose target page was copied, keeping nesting."""

        stack: List[Tuple[int, Any]] = []
        for entry in document.outline:
            new_index = placed.get(entry.page_number - 1)
            if new_index is None:
                continue
            while stack and stack[-1][0] >= entry.depth:
                stack.pop()
            parent = stack[-1][1] if stack else None
            item = writer.add_outline_item(entry.title or f"Page {new_index + 1}", new_index, parent=parent)
            stack.append((entry.depth, item))

    def count_pages(self, handle: PdfWriter) -> int:
        return len(handle.pages)

    def save(self, handle: PdfWriter) -> bytes:
        buffer = io.BytesIO()
        handle.write(buffer)
        return buffer.getvalue()


__all__ = ["PypdfBackend", "PypdfDocument", "MARKUP_ANNOTATIONS"]
