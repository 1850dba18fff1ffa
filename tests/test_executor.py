from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import List

import pytest
from pypdf import PdfReader

from splitwrangler.backends import PypdfBackend
from splitwrangler.exceptions import PartitionExtractionError, SplitCancelled
from splitwrangler.executor import SplitExecutor
from splitwrangler.models import FailurePolicy, SplitRequest
from splitwrangler.planners import PageRangePlanner


class FailingBackend(PypdfBackend):
    """Fails every extraction that includes one of ``bad_pages`` (0-indexed)."""

    def __init__(self, *bad_pages: int) -> None:
        self.bad_pages = set(bad_pages)

    def extract_pages(self, document, indices, **kwargs):
        if self.bad_pages.intersection(indices):
            raise RuntimeError("simulated backend failure")
        return super().extract_pages(document, indices, **kwargs)


class ShortBackend(PypdfBackend):
    def count_pages(self, handle) -> int:
        return 0


def _plan(load, data: bytes, ranges: List[str], **fields):
    document = load(data)
    request = SplitRequest(source=data, original_filename="report.pdf", page_ranges=ranges, **fields)
    return document, PageRangePlanner().plan(document, request)


def _page_count(path: Path) -> int:
    return len(PdfReader(BytesIO(path.read_bytes())).pages)


def test_execute_writes_one_document_per_partition(tmp_path: Path, load, pdf_10: bytes) -> None:
    document, plan = _plan(load, pdf_10, ["1-3", "4-6", "7-10"])

    result = SplitExecutor(PypdfBackend()).execute(document, plan, tmp_path)

    assert result.success
    assert [artifact.page_count for artifact in result.artifacts] == [3, 3, 4]
    assert [_page_count(artifact.content_handle) for artifact in result.artifacts] == [3, 3, 4]
    assert [artifact.sequence_index for artifact in result.artifacts] == [1, 2, 3]
    assert result.total_pages == 10

    first = PdfReader(BytesIO(result.artifacts[0].read_bytes()))
    assert first.metadata.title == "Sample - Pages 1-3"


def test_execute_preserves_outline_of_copied_pages(tmp_path: Path, load, outline_pdf: bytes) -> None:
    document, plan = _plan(load, outline_pdf, ["4-7"])

    artifact = SplitExecutor(PypdfBackend()).execute(document, plan, tmp_path).artifacts[0]
    outline = load(artifact.read_bytes()).outline

    assert [(entry.title, entry.page_number, entry.depth) for entry in outline] == [
        ("Methods", 1, 0),
        ("Setup", 2, 1),
        ("Tools", 3, 2),
    ]


def test_execute_can_drop_outline(tmp_path: Path, load, outline_pdf: bytes) -> None:
    document, plan = _plan(load, outline_pdf, ["4-7"], preserve_bookmarks=False)

    artifact = SplitExecutor(PypdfBackend()).execute(document, plan, tmp_path).artifacts[0]

    assert load(artifact.read_bytes()).outline == []


def test_abort_policy_raises_for_first_failing_partition(tmp_path: Path, load, pdf_10: bytes) -> None:
    document, plan = _plan(load, pdf_10, ["1-3", "4-6", "7-10"])
    executor = SplitExecutor(FailingBackend(4))

    with pytest.raises(PartitionExtractionError) as excinfo:
        executor.execute(document, plan, tmp_path)

    assert excinfo.value.partition_index == 2
    assert excinfo.value.page_range == "4-6"
    assert excinfo.value.strategy == "pageRanges"
    assert excinfo.value.retryable is True


def test_continue_policy_collects_failures(tmp_path: Path, load, pdf_10: bytes) -> None:
    document, plan = _plan(load, pdf_10, ["1-3", "4-6", "7-10"])
    executor = SplitExecutor(FailingBackend(4))

    result = executor.execute(document, plan, tmp_path, failure_policy=FailurePolicy.CONTINUE)

    assert not result.success
    assert [artifact.sequence_index for artifact in result.artifacts] == [1, 3]
    assert [failure.to_dict()["partitionIndex"] for failure in result.failures] == [2]
    assert result.failures[0].page_ranges == "4-6"


def test_checkpoint_stops_execution(tmp_path: Path, load, pdf_10: bytes) -> None:
    document, plan = _plan(load, pdf_10, ["1-3", "4-6", "7-10"])
    written = []
    calls = []

    def checkpoint() -> None:
        calls.append(len(calls))
        if len(calls) == 2:
            raise SplitCancelled()

    with pytest.raises(SplitCancelled):
        SplitExecutor(PypdfBackend()).execute(
            document, plan, tmp_path, checkpoint=checkpoint, artifact_callback=written.append
        )

    assert [artifact.sequence_index for artifact in written] == [1]


def test_progress_is_reported_after_each_partition(tmp_path: Path, load, pdf_10: bytes) -> None:
    document, plan = _plan(load, pdf_10, ["1-3", "4-6", "7-10"])
    progress = []

    SplitExecutor(FailingBackend(4), failure_policy=FailurePolicy.CONTINUE).execute(
        document, plan, tmp_path, progress_callback=lambda done, total: progress.append((done, total))
    )

    assert progress == [(1, 3), (2, 3), (3, 3)]


def test_page_count_mismatch_is_an_extraction_error(tmp_path: Path, load, pdf_10: bytes) -> None:
    document, plan = _plan(load, pdf_10, ["1-3"])

    with pytest.raises(PartitionExtractionError) as excinfo:
        SplitExecutor(ShortBackend()).execute(document, plan, tmp_path)

    assert "expected 3" in excinfo.value.message


def test_repeated_pages_within_partition_are_written_once(tmp_path: Path, load, pdf_10: bytes) -> None:
    document, plan = _plan(load, pdf_10, ["1-3,2-4"])

    artifact = SplitExecutor(PypdfBackend()).execute(document, plan, tmp_path).artifacts[0]

    assert artifact.page_count == 4
    assert _page_count(artifact.content_handle) == 4


def test_duplicate_names_do_not_overwrite(tmp_path: Path, load, pdf_10: bytes) -> None:
    document, plan = _plan(load, pdf_10, ["1-2", "3-5"], file_name_pattern="same.pdf")

    result = SplitExecutor(PypdfBackend()).execute(document, plan, tmp_path)

    assert [artifact.file_name for artifact in result.artifacts] == ["same.pdf", "same.pdf"]
    assert [_page_count(artifact.content_handle) for artifact in result.artifacts] == [2, 3]
