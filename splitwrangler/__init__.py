"""
splitwrangler - PDF splitting service with pluggable strategies.

This library splits PDF documents by explicit page ranges, by a size
threshold, along outline structure (chapters, sections, bookmarks,
annotations), at detected content boundaries, or into named page
selections. Splits run synchronously or as tracked background jobs, and
their outputs are bundled into a single ZIP archive.

Quick Start:
    >>> from splitwrangler import StrategyDispatcher, SplitRequest
    >>> dispatcher = StrategyDispatcher()
    >>> request = SplitRequest(source=pdf_bytes, strategy="pageRanges",
    ...                        page_ranges=["1-3", "4-6"])
    >>> outcome = dispatcher.split(request)
    >>> outcome.archive_path

Main Classes:
    - StrategyDispatcher: Entry point for sync, async, batch and preview splits
    - JobTracker: Background job lifecycle (progress, cancel, expiry)
    - SplitExecutor: Turns a split plan into output documents

Data Classes:
    - SplitRequest / SplitResponse: Request and response models
    - PageRange, Partition, SplitPlan, OutputArtifact: Planning types

Exceptions:
    - SplitWranglerError: Base exception
    - RangeSyntaxError / RangeOutOfBoundsError: Invalid page ranges
    - NoStructureFoundError: Nothing to split on for structure strategies
    - JobNotFoundError / JobNotReadyError: Job lookups

For CLI usage, use the 'splitwrangler' command after installation.
"""

# Core classes
from splitwrangler.dispatcher import SplitOutcome, StrategyDispatcher, build_default_dispatcher
from splitwrangler.executor import SplitExecutor
from splitwrangler.jobs import JobStore, JobTracker
from splitwrangler.config import SplitSettings

# Data types
from splitwrangler.models import (
    ContentAwareConfig,
    FailurePolicy,
    JobProgress,
    JobStatus,
    PageSelection,
    SectionType,
    SplitRequest,
    SplitResponse,
    SplitStrategy,
)
from splitwrangler.types import OutputArtifact, PageRange, Partition, SplitPlan

# Exceptions
from splitwrangler.exceptions import (
    SplitWranglerError,
    InvalidPDFError,
    EncryptedPDFError,
    InvalidSplitRequestError,
    RangeSyntaxError,
    RangeOutOfBoundsError,
    NoStructureFoundError,
    PartitionExtractionError,
    ArchivePackagingError,
    SplitTimeoutError,
    SplitCancelled,
    JobNotFoundError,
    JobNotReadyError,
)

# Utility functions
from splitwrangler.ranges import parse_page_ranges

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Main classes
    "StrategyDispatcher",
    "SplitOutcome",
    "build_default_dispatcher",
    "SplitExecutor",
    "JobStore",
    "JobTracker",
    "SplitSettings",
    # Data types
    "ContentAwareConfig",
    "FailurePolicy",
    "JobProgress",
    "JobStatus",
    "PageSelection",
    "SectionType",
    "SplitRequest",
    "SplitResponse",
    "SplitStrategy",
    "OutputArtifact",
    "PageRange",
    "Partition",
    "SplitPlan",
    # Exceptions
    "SplitWranglerError",
    "InvalidPDFError",
    "EncryptedPDFError",
    "InvalidSplitRequestError",
    "RangeSyntaxError",
    "RangeOutOfBoundsError",
    "NoStructureFoundError",
    "PartitionExtractionError",
    "ArchivePackagingError",
    "SplitTimeoutError",
    "SplitCancelled",
    "JobNotFoundError",
    "JobNotReadyError",
    # Utility functions
    "parse_page_ranges",
    # Version info
    "__version__",
]
