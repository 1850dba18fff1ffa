"""Utility helpers shared by splitwrangler modules."""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Optional, Sequence

from .types import PageRange

DEFAULT_BASE_NAME = "document"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_TITLE_LENGTH = 80


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False
    return logger


def format_file_size(size_bytes: float) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "500.0 B")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"


def safe_filename(filename: Optional[str], default: str) -> str:
    """Return a filesystem-safe filename derived from user input."""

    if not filename:
        return default

    candidate = Path(filename).name
    return candidate or default


def base_name(original_filename: Optional[str]) -> str:
    """Return the stem of ``original_filename`` made safe for output names."""

    stem = Path(safe_filename(original_filename, DEFAULT_BASE_NAME)).stem
    return sanitize_component(stem) or DEFAULT_BASE_NAME


def sanitize_component(value: str) -> str:
    """Reduce ``value`` to a short string usable inside a file name."""

    cleaned = _UNSAFE_CHARS.sub("_", value.strip())
    cleaned = re.sub(r"_+", "_", cleaned).strip("._")
    return cleaned[:_MAX_TITLE_LENGTH]


def range_label(selection: Sequence[PageRange]) -> str:
    """Return ``1-3_7`` style labels for the ``{range}`` placeholder."""

    return "_".join(page_range.spec() for page_range in selection)


def build_output_filename(base: str, selection: Sequence[PageRange]) -> str:
    """Construct the default filename for a page-range partition."""

    safe_base = base.replace(" ", "_")
    if len(selection) == 1:
        suffix = selection[0].label()
    else:
        suffix = f"pages_{range_label(selection)}"
    return f"{safe_base}_{suffix}.pdf"


def ensure_pdf_suffix(file_name: str) -> str:
    if file_name.lower().endswith(".pdf"):
        return file_name
    return f"{file_name}.pdf"


def render_file_name(
    pattern: Optional[str],
    *,
    default: str,
    original: str,
    index: int,
    selection: Sequence[PageRange] = (),
    title: Optional[str] = None,
    kind: Optional[str] = None,
) -> str:
    """Render a naming template into a safe ``.pdf`` file name.

    Supported placeholders are ``{original}``, ``{index}``, ``{range}``,
    ``{title}`` (alias ``{chapter}``), ``{type}`` and ``{timestamp}``.
    Unknown placeholders are left untouched. Without a pattern ``default``
    is used as-is.
    """

    if not pattern:
        return ensure_pdf_suffix(safe_filename(default, f"{original}_{index}.pdf"))

    safe_title = sanitize_component(title or "") or f"section_{index}"
    rendered = (
        pattern.replace("{original}", original)
        .replace("{index}", str(index))
        .replace("{range}", range_label(selection))
        .replace("{title}", safe_title)
        .replace("{chapter}", safe_title)
        .replace("{type}", kind or "part")
        .replace("{timestamp}", str(int(time.time() * 1000)))
    )
    stem = sanitize_component(Path(rendered).name.removesuffix(".pdf"))
    return ensure_pdf_suffix(stem or f"{original}_{index}")


__all__ = [
    "get_logger",
    "format_file_size",
    "safe_filename",
    "base_name",
    "sanitize_component",
    "range_label",
    "build_output_filename",
    "ensure_pdf_suffix",
    "render_file_name",
]
