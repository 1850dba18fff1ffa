"""
Custom exceptions for splitwrangler.

Every error raised while planning or executing a split carries the strategy,
the partition index and the page range involved, so callers can report where
an operation failed without ever echoing document content.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SplitWranglerError(Exception):
    """Base exception for all splitwrangler errors."""

    retryable: bool = False
    recoverable: bool = False

    def __init__(
        self,
        message: str = "",
        *,
        strategy: Optional[str] = None,
        partition_index: Optional[int] = None,
        page_range: Optional[str] = None,
    ) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.strategy = strategy
        self.partition_index = partition_index
        self.page_range = page_range

    @property
    def default_message(self) -> str:
        return "An unknown split error occurred."

    @property
    def code(self) -> str:
        return type(self).__name__

    def context(self) -> Dict[str, Any]:
        """Return diagnostic fields suitable for logs and API payloads."""

        details: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "recoverable": self.recoverable,
        }
        if self.strategy is not None:
            details["strategy"] = self.strategy
        if self.partition_index is not None:
            details["partitionIndex"] = self.partition_index
        if self.page_range is not None:
            details["pageRange"] = self.page_range
        return details


class InvalidPDFError(SplitWranglerError):
    """Raised when the source PDF is invalid or corrupted."""

    @property
    def default_message(self) -> str:
        return "Invalid or corrupted PDF file."


class EncryptedPDFError(SplitWranglerError):
    """Raised when the source PDF is encrypted and cannot be opened."""

    @property
    def default_message(self) -> str:
        return "PDF is encrypted and cannot be processed without a password."


class InvalidSplitRequestError(SplitWranglerError):
    """Raised when a split request is missing or has inconsistent parameters."""

    @property
    def default_message(self) -> str:
        return "Invalid split request."


class UnsupportedStrategyError(InvalidSplitRequestError):
    """Raised when no planner is registered for the requested strategy."""

    @property
    def default_message(self) -> str:
        return "Unsupported split strategy."


class FileTooLargeError(InvalidSplitRequestError):
    """Raised when the source document exceeds the configured upload limit."""

    @property
    def default_message(self) -> str:
        return "Source document exceeds the maximum allowed size."


class RangeSyntaxError(SplitWranglerError):
    """Raised when a page range expression cannot be parsed."""

    @property
    def default_message(self) -> str:
        return "Invalid page range syntax."


class RangeOutOfBoundsError(SplitWranglerError):
    """Raised when a page range falls outside the document or is reversed."""

    @property
    def default_message(self) -> str:
        return "Page range is out of bounds."


class NoStructureFoundError(SplitWranglerError):
    """Raised when a document has no outline entries to split on.

    The caller may retry the operation with another strategy.
    """

    recoverable = True

    @property
    def default_message(self) -> str:
        return "No document structure found to split on."


class PartitionExtractionError(SplitWranglerError):
    """Raised when a single partition cannot be extracted or serialized."""

    retryable = True

    @property
    def default_message(self) -> str:
        return "Failed to extract partition."


class ArchivePackagingError(SplitWranglerError):
    """Raised when split outputs cannot be bundled into an archive."""

    retryable = True

    @property
    def default_message(self) -> str:
        return "Failed to package split results."


class SplitTimeoutError(SplitWranglerError):
    """Raised when a job exceeds its maximum duration budget."""

    retryable = True

    @property
    def default_message(self) -> str:
        return "Split operation exceeded its time budget."


class SplitCancelled(SplitWranglerError):
    """Raised inside a worker when cancellation has been requested.

    This is a terminal outcome rather than a failure.
    """

    @property
    def default_message(self) -> str:
        return "Split operation was cancelled."


class JobNotFoundError(SplitWranglerError):
    """Raised when an operation id is unknown or its job has expired."""

    def __init__(self, operation_id: str) -> None:
        super().__init__(f"Operation not found: {operation_id}")
        self.operation_id = operation_id


class JobNotReadyError(SplitWranglerError):
    """Raised when results are requested for a job that has none yet."""

    def __init__(self, operation_id: str, status: str) -> None:
        super().__init__(f"Operation {operation_id} has no results available (status: {status})")
        self.operation_id = operation_id
        self.status = status


__all__ = [
    "SplitWranglerError",
    "InvalidPDFError",
    "EncryptedPDFError",
    "InvalidSplitRequestError",
    "UnsupportedStrategyError",
    "FileTooLargeError",
    "RangeSyntaxError",
    "RangeOutOfBoundsError",
    "NoStructureFoundError",
    "PartitionExtractionError",
    "ArchivePackagingError",
    "SplitTimeoutError",
    "SplitCancelled",
    "JobNotFoundError",
    "JobNotReadyError",
]
