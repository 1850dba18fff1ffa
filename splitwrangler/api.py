"""FastAPI application exposing the split dispatcher over HTTP."""

from __future__ import annotations

import json
from json import JSONDecodeError
from pathlib import Path
from typing import List, Optional

from fastapi import (
    BackgroundTasks,
    Depends,
    FastAPI,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse
from pydantic import ValidationError

from .dispatcher import StrategyDispatcher, build_default_dispatcher
from .exceptions import (
    EncryptedPDFError,
    FileTooLargeError,
    InvalidPDFError,
    InvalidSplitRequestError,
    JobNotFoundError,
    JobNotReadyError,
    NoStructureFoundError,
    RangeOutOfBoundsError,
    RangeSyntaxError,
    SplitWranglerError,
)
from .models import (
    BatchSplitResponse,
    JobProgress,
    PreviewResponse,
    SplitRequest,
)
from .utils import base_name, get_logger, safe_filename

LOGGER = get_logger("splitwrangler.api")

API_PREFIX = "/api/pdf/split"

_CLIENT_ERRORS = (
    InvalidSplitRequestError,
    RangeSyntaxError,
    RangeOutOfBoundsError,
    InvalidPDFError,
    EncryptedPDFError,
)


def _status_code(exc: SplitWranglerError) -> int:
    if isinstance(exc, JobNotFoundError):
        return 404
    if isinstance(exc, JobNotReadyError):
        return 409
    if isinstance(exc, FileTooLargeError):
        return 413
    if isinstance(exc, NoStructureFoundError):
        return 422
    if isinstance(exc, _CLIENT_ERRORS):
        return 400
    return 500


def _http_error(exc: SplitWranglerError) -> HTTPException:
    status_code = _status_code(exc)
    if status_code == 500:
        LOGGER.error("Split request failed: %s", exc.message)
    return HTTPException(status_code=status_code, detail=exc.context())


def _parse_json(raw_value: Optional[str], *, field_name: str) -> object:
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return json.loads(raw_value)
    except JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"{field_name} must be valid JSON.") from exc


async def _read_upload(upload: UploadFile, max_bytes: int) -> bytes:
    contents = await upload.read()
    if not contents:
        raise HTTPException(status_code=400, detail=f"File '{upload.filename}' is empty.")
    if len(contents) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File '{upload.filename}' exceeds the {max_bytes // (1024 * 1024)} MB limit.",
        )
    return contents


class SplitOptions:
    """Form fields shared by every endpoint that accepts a split request."""

    def __init__(
        self,
        strategy: str = Form("pageRanges", description="Split strategy."),
        page_ranges: List[str] = Form(
            [], alias="pageRanges", description="One entry per output, e.g. '1-3' or '1-3,7'."
        ),
        file_size_threshold_mb: Optional[float] = Form(None, alias="fileSizeThresholdMB"),
        section_type: str = Form("chapters", alias="sectionType"),
        content_config: Optional[str] = Form(None, alias="contentConfig", description="JSON object."),
        page_selections: Optional[str] = Form(None, alias="pageSelections", description="JSON list."),
        file_name_pattern: Optional[str] = Form(None, alias="fileNamePattern"),
        preserve_bookmarks: bool = Form(True, alias="preserveBookmarks"),
        preserve_metadata: bool = Form(True, alias="preserveMetadata"),
        failure_policy: Optional[str] = Form(None, alias="failurePolicy"),
        max_duration_seconds: Optional[float] = Form(None, alias="maxDurationSeconds"),
        password: Optional[str] = Form(None),
    ) -> None:
        self.fields = {
            "strategy": strategy,
            "page_ranges": [value for value in page_ranges if value is not None],
            "file_size_threshold_mb": file_size_threshold_mb,
            "section_type": section_type,
            "file_name_pattern": file_name_pattern or None,
            "preserve_bookmarks": preserve_bookmarks,
            "preserve_metadata": preserve_metadata,
            "failure_policy": failure_policy or None,
            "max_duration_seconds": max_duration_seconds,
            "password": password or None,
        }
        config = _parse_json(content_config, field_name="contentConfig")
        if config is not None:
            self.fields["content_config"] = config
        selections = _parse_json(page_selections, field_name="pageSelections")
        if selections is not None:
            self.fields["page_selections"] = selections

    def build(self, source: bytes, filename: Optional[str]) -> SplitRequest:
        try:
            return SplitRequest(
                source=source,
                original_filename=safe_filename(filename, "document.pdf"),
                **self.fields,
            )
        except ValidationError as exc:
            errors = [
                {"loc": list(error["loc"]), "msg": error["msg"]} for error in exc.errors()
            ]
            raise HTTPException(status_code=400, detail=errors) from exc


def create_app(dispatcher: Optional[StrategyDispatcher] = None) -> FastAPI:
    """Build the HTTP application around ``dispatcher``.

    Without an explicit dispatcher one is created from the environment on the
    first request.
    """

    app = FastAPI(title="splitwrangler API", version="1.0.0")
    app.state.dispatcher = dispatcher

    def _dispatcher(request: Request) -> StrategyDispatcher:
        if request.app.state.dispatcher is None:
            request.app.state.dispatcher = build_default_dispatcher()
        return request.app.state.dispatcher

    @app.get("/health", response_class=JSONResponse)
    async def health() -> dict[str, str]:
        """Lightweight health endpoint for uptime checks."""
        return {"status": "ok"}

    @app.get(f"{API_PREFIX}/config")
    async def split_config(request: Request) -> dict:
        return _dispatcher(request).capabilities()

    @app.post(
        API_PREFIX,
        response_class=FileResponse,
        summary="Split a PDF synchronously",
        response_description="Zip archive containing the split documents.",
    )
    async def split_document(
        request: Request,
        background_tasks: BackgroundTasks,
        file: UploadFile = File(..., description="Source PDF to split."),
        options: SplitOptions = Depends(SplitOptions),
    ) -> FileResponse:
        dispatcher = _dispatcher(request)
        contents = await _read_upload(file, dispatcher.settings.max_upload_bytes)
        split_request = options.build(contents, file.filename)

        try:
            outcome = await run_in_threadpool(dispatcher.split, split_request)
        except SplitWranglerError as exc:
            raise _http_error(exc) from exc

        background_tasks.add_task(dispatcher.storage.remove, outcome.archive_path.parent)
        response = outcome.response
        return FileResponse(
            outcome.archive_path,
            media_type="application/zip",
            filename=f"{base_name(split_request.original_filename)}_split.zip",
            headers={
                "X-Split-Output-Files": str(response.total_output_files),
                "X-Split-Processing-Time-Ms": str(response.processing_time_ms),
                "X-Split-Failed-Partitions": str(len(response.failures)),
            },
        )

    @app.post(f"{API_PREFIX}/async", status_code=202)
    async def split_document_async(
        request: Request,
        file: UploadFile = File(..., description="Source PDF to split."),
        options: SplitOptions = Depends(SplitOptions),
    ) -> dict:
        dispatcher = _dispatcher(request)
        contents = await _read_upload(file, dispatcher.settings.max_upload_bytes)
        split_request = options.build(contents, file.filename)

        try:
            operation_id = await run_in_threadpool(dispatcher.submit_async, split_request)
        except SplitWranglerError as exc:
            raise _http_error(exc) from exc
        return {
            "operationId": operation_id,
            "status": "PENDING",
            "progressUrl": f"{API_PREFIX}/progress/{operation_id}",
            "downloadUrl": f"{API_PREFIX}/download/{operation_id}",
        }

    @app.get(f"{API_PREFIX}/progress/{{operation_id}}", response_model=JobProgress)
    async def split_progress(request: Request, operation_id: str) -> JobProgress:
        try:
            return _dispatcher(request).get_progress(operation_id)
        except SplitWranglerError as exc:
            raise _http_error(exc) from exc

    @app.get(f"{API_PREFIX}/download/{{operation_id}}", response_class=FileResponse)
    async def split_download(request: Request, operation_id: str) -> FileResponse:
        try:
            archive_path: Path = await run_in_threadpool(_dispatcher(request).get_result, operation_id)
        except SplitWranglerError as exc:
            raise _http_error(exc) from exc
        return FileResponse(
            archive_path,
            media_type="application/zip",
            filename=f"split_{operation_id}.zip",
        )

    @app.post(f"{API_PREFIX}/cancel/{{operation_id}}")
    async def split_cancel(request: Request, operation_id: str) -> dict:
        try:
            cancelled = _dispatcher(request).cancel(operation_id)
        except SplitWranglerError as exc:
            raise _http_error(exc) from exc
        return {"operationId": operation_id, "cancelled": cancelled}

    @app.post(f"{API_PREFIX}/preview", response_model=PreviewResponse)
    async def split_preview(
        request: Request,
        file: UploadFile = File(..., description="Source PDF to preview."),
        options: SplitOptions = Depends(SplitOptions),
    ) -> PreviewResponse:
        dispatcher = _dispatcher(request)
        contents = await _read_upload(file, dispatcher.settings.max_upload_bytes)
        split_request = options.build(contents, file.filename)

        try:
            return await run_in_threadpool(dispatcher.preview_split, split_request)
        except SplitWranglerError as exc:
            raise _http_error(exc) from exc

    @app.post(f"{API_PREFIX}/batch", response_model=BatchSplitResponse)
    async def split_batch(
        request: Request,
        files: List[UploadFile] = File(..., description="PDF files to split with the same options."),
        options: SplitOptions = Depends(SplitOptions),
    ) -> BatchSplitResponse:
        dispatcher = _dispatcher(request)
        if not files:
            raise HTTPException(status_code=400, detail="At least one PDF must be provided.")

        split_requests = []
        for upload in files:
            contents = await _read_upload(upload, dispatcher.settings.max_upload_bytes)
            split_requests.append(options.build(contents, upload.filename))

        return await run_in_threadpool(dispatcher.split_batch, split_requests)

    return app


app = create_app()

__all__ = ["app", "create_app", "SplitOptions"]
