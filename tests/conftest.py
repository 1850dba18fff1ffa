from __future__ import annotations

from concurrent.futures import Executor, Future
from io import BytesIO
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, Tuple
import sys

import pytest
from pypdf import PdfWriter
from pypdf.generic import (
    ArrayObject,
    DictionaryObject,
    FloatObject,
    NameObject,
    NumberObject,
    StreamObject,
    TextStringObject,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from splitwrangler.backends import PypdfBackend  # noqa: E402
from splitwrangler.config import SplitSettings  # noqa: E402
from splitwrangler.dispatcher import StrategyDispatcher  # noqa: E402
from splitwrangler.jobs import JobTracker  # noqa: E402
from splitwrangler.storage import TempStorage  # noqa: E402

OUTLINE = [
    ("Introduction", 1, 0),
    ("Background", 2, 1),
    ("Methods", 4, 0),
    ("Setup", 5, 1),
    ("Tools", 6, 2),
    ("Results", 8, 0),
]


def build_pdf(
    page_count: int = 10,
    *,
    title: Optional[str] = "Sample",
    outline: Iterable[Tuple[str, int, int]] = (),
    annotations: Iterable[Tuple[int, str, str]] = (),
    contents: Optional[dict[int, bytes]] = None,
    sizes: Optional[Sequence[Tuple[float, float]]] = None,
) -> bytes:
    """Build an in-memory PDF of blank pages with optional structure."""

    writer = PdfWriter()
    for index in range(page_count):
        width, height = sizes[index] if sizes else (200, 200)
        page = writer.add_blank_page(width=width, height=height)
        data = (contents or {}).get(index + 1)
        if data:
            stream = StreamObject()
            stream[NameObject("/Length")] = NumberObject(len(data))
            stream._data = data
            page[NameObject("/Contents")] = writer._add_object(stream)

    for page_number, subtype, text in annotations:
        annotation = DictionaryObject(
            {
                NameObject("/Type"): NameObject("/Annot"),
                NameObject("/Subtype"): NameObject(subtype),
                NameObject("/Rect"): ArrayObject(
                    [FloatObject(10), FloatObject(10), FloatObject(40), FloatObject(40)]
                ),
                NameObject("/Contents"): TextStringObject(text),
            }
        )
        page = writer.pages[page_number - 1]
        existing = page.get("/Annots")
        annots = existing.get_object() if existing is not None else ArrayObject()
        annots.append(writer._add_object(annotation))
        page[NameObject("/Annots")] = annots

    parents: dict[int, object] = {}
    for entry_title, page_number, depth in outline:
        parent = parents.get(depth - 1) if depth else None
        parents[depth] = writer.add_outline_item(entry_title, page_number - 1, parent=parent)

    if title is not None:
        writer.add_metadata({"/Producer": "splitwrangler-tests", "/Title": title})

    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class ManualExecutor(Executor):
    """Executor that queues work until the test runs it explicitly."""

    def __init__(self) -> None:
        self.queue: list[tuple[Future, Callable, tuple, dict]] = []

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        self.queue.append((future, fn, args, kwargs))
        return future

    def run_next(self) -> None:
        future, fn, args, kwargs = self.queue.pop(0)
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # pragma: no cover - surfaced through the future
            future.set_exception(exc)

    def run_all(self) -> None:
        while self.queue:
            self.run_next()

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        self.queue.clear()


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def pdf_10() -> bytes:
    return build_pdf(10)


@pytest.fixture()
def pdf_5() -> bytes:
    return build_pdf(5)


@pytest.fixture()
def outline_pdf() -> bytes:
    return build_pdf(10, outline=OUTLINE)


@pytest.fixture()
def annotated_pdf() -> bytes:
    return build_pdf(
        10,
        annotations=[
            (3, "/Text", "Review needed"),
            (7, "/Highlight", "Key result"),
            (9, "/Link", "ignored"),
        ],
    )


@pytest.fixture()
def backend() -> PypdfBackend:
    return PypdfBackend()


@pytest.fixture()
def load(backend: PypdfBackend):
    def _load(data: bytes, file_name: str = "report.pdf"):
        return backend.load(data, file_name=file_name)

    return _load


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def manual_executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture()
def settings(tmp_path: Path) -> SplitSettings:
    return SplitSettings(temp_dir=tmp_path / "work")


@pytest.fixture()
def storage(settings: SplitSettings, clock: FakeClock) -> TempStorage:
    return TempStorage(settings.workspace_root, clock=clock)


@pytest.fixture()
def tracker(manual_executor: ManualExecutor, storage: TempStorage, clock: FakeClock) -> JobTracker:
    return JobTracker(manual_executor, storage=storage, retention_seconds=60, clock=clock)


@pytest.fixture()
def dispatcher(
    settings: SplitSettings, storage: TempStorage, tracker: JobTracker
) -> StrategyDispatcher:
    return StrategyDispatcher(settings=settings, storage=storage, tracker=tracker)


@pytest.fixture()
def make_pdf() -> Callable[..., bytes]:
    return build_pdf
