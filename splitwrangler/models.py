"""Pydantic request and response models exchanged with splitwrangler callers."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SplitStrategy(str, Enum):
    """Partitioning algorithms understood by the dispatcher."""

    PAGE_RANGES = "pageRanges"
    FILE_SIZE = "fileSize"
    SECTION = "documentSection"
    CHAPTER_BASED = "chapterBased"
    CONTENT_AWARE = "contentAware"
    FLEXIBLE_SELECTION = "flexiblePageSelection"


class SectionType(str, Enum):
    CHAPTERS = "chapters"
    SECTIONS = "sections"
    BOOKMARKS = "bookmarks"
    ANNOTATIONS = "annotations"


class FailurePolicy(str, Enum):
    """What the executor does when one partition cannot be produced."""

    ABORT = "abort"
    CONTINUE = "continue"


class JobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}


class ContentAwareConfig(BaseModel):
    """Signals and limits used by the content-aware planner."""

    detect_blank_pages: bool = Field(True, alias="detectBlankPages")
    detect_layout_changes: bool = Field(True, alias="detectLayoutChanges")
    min_partition_pages: int = Field(1, ge=1, alias="minPartitionPages")
    layout_tolerance: float = Field(1.0, ge=0, alias="layoutTolerance")
    blank_content_bytes: int = Field(32, ge=0, alias="blankContentBytes")

    model_config = ConfigDict(populate_by_name=True)


class PageSelection(BaseModel):
    """A named set of pages that becomes one output document."""

    name: str = Field(..., min_length=1)
    pages: List[int] = Field(default_factory=list)
    ranges: List[str] = Field(default_factory=list)
    exclude_pages: List[int] = Field(default_factory=list, alias="excludePages")

    model_config = ConfigDict(populate_by_name=True)


class SplitRequest(BaseModel):
    """Everything needed to split one source document."""

    source: bytes = Field(..., repr=False)
    original_filename: str = Field("document.pdf", alias="originalFileName")
    strategy: SplitStrategy = SplitStrategy.PAGE_RANGES
    page_ranges: List[str] = Field(default_factory=list, alias="pageRanges")
    file_size_threshold_mb: Optional[float] = Field(None, gt=0, alias="fileSizeThresholdMB")
    section_type: SectionType = Field(SectionType.CHAPTERS, alias="sectionType")
    content_config: ContentAwareConfig = Field(default_factory=ContentAwareConfig, alias="contentConfig")
    page_selections: List[PageSelection] = Field(default_factory=list, alias="pageSelections")
    file_name_pattern: Optional[str] = Field(None, alias="fileNamePattern")
    preserve_bookmarks: bool = Field(True, alias="preserveBookmarks")
    preserve_metadata: bool = Field(True, alias="preserveMetadata")
    failure_policy: Optional[FailurePolicy] = Field(None, alias="failurePolicy")
    max_duration_seconds: Optional[float] = Field(None, gt=0, alias="maxDurationSeconds")
    password: Optional[str] = Field(None, repr=False)

    model_config = ConfigDict(populate_by_name=True)


class SplitOutputFile(BaseModel):
    file_name: str = Field(..., alias="fileName")
    page_count: int = Field(..., alias="pageCount")
    file_size_bytes: int = Field(..., alias="fileSizeBytes")
    page_ranges: str = Field("", alias="pageRanges")

    model_config = ConfigDict(populate_by_name=True)


class SplitResponse(BaseModel):
    """Outcome of a synchronous split."""

    success: bool
    message: str
    output_files: List[SplitOutputFile] = Field(default_factory=list, alias="outputFiles")
    total_output_files: int = Field(0, alias="totalOutputFiles")
    processing_time_ms: int = Field(0, alias="processingTimeMs")
    original_file_name: Optional[str] = Field(None, alias="originalFileName")
    split_strategy: str = Field(..., alias="splitStrategy")
    failures: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True)


class JobProgress(BaseModel):
    """Snapshot of an asynchronous split job."""

    operation_id: str = Field(..., alias="operationId")
    status: JobStatus
    progress_percentage: int = Field(0, alias="progressPercentage")
    current_step: str = Field("", alias="currentStep")
    estimated_time_remaining_ms: Optional[int] = Field(None, alias="estimatedTimeRemainingMs")
    processed_partitions: int = Field(0, alias="processedPartitions")
    total_partitions: int = Field(0, alias="totalPartitions")
    output_files_created: int = Field(0, alias="outputFilesCreated")
    strategy: Optional[str] = None
    created_at: float = Field(..., alias="createdAt")
    finished_at: Optional[float] = Field(None, alias="finishedAt")
    error: Optional[Dict[str, Any]] = None
    failures: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class PreviewResult(BaseModel):
    output_file_name: str = Field(..., alias="outputFileName")
    page_ranges: str = Field(..., alias="pageRanges")
    page_count: int = Field(..., alias="pageCount")
    estimated_file_size_mb: float = Field(..., alias="estimatedFileSizeMB")
    title: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class PreviewResponse(BaseModel):
    """Plan of a split, computed without writing any output."""

    success: bool = True
    message: str = ""
    split_strategy: str = Field(..., alias="splitStrategy")
    preview_results: List[PreviewResult] = Field(default_factory=list, alias="previewResults")
    total_pages: int = Field(0, alias="totalPages")
    estimated_output_files: int = Field(0, alias="estimatedOutputFiles")

    model_config = ConfigDict(populate_by_name=True)


class BatchSplitResponse(BaseModel):
    success: bool
    message: str
    results: List[SplitResponse] = Field(default_factory=list)
    total_processing_time_ms: int = Field(0, alias="totalProcessingTimeMs")
    completed_jobs: int = Field(0, alias="completedJobs")
    failed_jobs: int = Field(0, alias="failedJobs")

    model_config = ConfigDict(populate_by_name=True)


__all__ = [
    "SplitStrategy",
    "SectionType",
    "FailurePolicy",
    "JobStatus",
    "ContentAwareConfig",
    "PageSelection",
    "SplitRequest",
    "SplitOutputFile",
    "SplitResponse",
    "JobProgress",
    "PreviewResult",
    "PreviewResponse",
    "BatchSplitResponse",
]
