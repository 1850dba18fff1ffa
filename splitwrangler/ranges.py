"""Parsing and validation of human-readable page range expressions."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from .exceptions import RangeOutOfBoundsError, RangeSyntaxError
from .types import PageRange

_TOKEN = re.compile(r"^(\d+)(?:\s*-\s*(\d+))?$")


def parse_range_token(token: str, *, total_pages: int) -> PageRange:
    """Parse a single ``N`` or ``N-M`` token into a validated :class:`PageRange`."""

    stripped = token.strip()
    match = _TOKEN.match(stripped)
    if not match:
        raise RangeSyntaxError(
            f"Invalid page range '{token}'. Expected 'N' or 'start-end'.",
            page_range=token,
        )

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) is not None else start

    if start > end:
        raise RangeOutOfBoundsError(
            f"Invalid range '{stripped}': start page ({start}) must be <= end page ({end}).",
            page_range=stripped,
        )
    if start < 1:
        raise RangeOutOfBoundsError(
            f"Invalid range '{stripped}': page numbers must be >= 1.",
            page_range=stripped,
        )
    if end > total_pages:
        raise RangeOutOfBoundsError(
            f"Range '{stripped}' exceeds document page count ({total_pages} pages).",
            page_range=stripped,
        )
    return PageRange(start, end)


def parse_selection(spec: str, *, total_pages: int) -> List[PageRange]:
    """Parse one selection such as ``"1-3,7"`` into its ranges, in order."""

    if not isinstance(spec, str):
        raise RangeSyntaxError(f"Page range must be a string, got {type(spec).__name__}.")
    if not spec.strip():
        raise RangeSyntaxError("Page range cannot be empty.", page_range=spec)
    return [parse_range_token(token, total_pages=total_pages) for token in spec.split(",")]


def parse_page_ranges(specs: Sequence[str], *, total_pages: int) -> List[PageRange]:
    """Parse ``specs`` into a flat, order-preserving list of :class:`PageRange`.

    Args:
        specs: Range strings such as ``["1-3", "5", "7-10"]``. Each string may
            hold several comma separated tokens.
        total_pages: Page count of the source document.

    Raises:
        RangeSyntaxError: If a token is empty, non-numeric or malformed.
        RangeOutOfBoundsError: If a range is reversed or outside the document.

    Returns:
        The parsed ranges in the order they were supplied. An empty ``specs``
        list yields an empty result, which planners treat as "every page".
    """

    if total_pages < 1:
        raise RangeOutOfBoundsError(f"Document has no pages (page count {total_pages}).")

    parsed: List[PageRange] = []
    for spec in specs:
        parsed.extend(parse_selection(spec, total_pages=total_pages))
    return parsed


def validate_pages(pages: Iterable[int], *, total_pages: int) -> List[int]:
    """Check explicit page numbers against the document bounds."""

    checked: List[int] = []
    for page in pages:
        number = int(page)
        if number < 1 or number > total_pages:
            raise RangeOutOfBoundsError(
                f"Page {number} is out of bounds. Document has {total_pages} pages.",
                page_range=str(number),
            )
        checked.append(number)
    return checked


__all__ = [
    "parse_range_token",
    "parse_selection",
    "parse_page_ranges",
    "validate_pages",
]
