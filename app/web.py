from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from app.schemas import ProcessingStatus
from services.processor import ProcessorService, build_default_processor
from services.sql_formatter import format_display_consumption


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.filters["consumption"] = format_display_consumption

_POLLABLE_STATUSES = {ProcessingStatus.uploaded, ProcessingStatus.processing}


def get_processor() -> ProcessorService:
    return build_default_processor()


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    processor: ProcessorService = Depends(get_processor),
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {"results": processor.list_results(), "error": None},
    )


@router.post("/ui/files", name="ui_upload", response_class=HTMLResponse)
async def ui_upload(
    request: Request,
    file: UploadFile = File(...),
    processor: ProcessorService = Depends(get_processor),
):
    contents = await file.read()
    await file.close()
    try:
        file_id = processor.enqueue_bytes(file.filename or "upload.csv", contents)
    except ValueError as exc:
        return templates.TemplateResponse(
            request,
            "ui/index.html",
            {"results": processor.list_results(), "error": str(exc)},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return RedirectResponse(
        str(request.url_for("ui_file_detail", file_id=file_id)),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get("/ui/files/{file_id}", name="ui_file_detail", response_class=HTMLResponse)
async def ui_file_detail(
    request: Request,
    file_id: str,
    processor: ProcessorService = Depends(get_processor),
) -> HTMLResponse:
    try:
        result = processor.fetch_summary(file_id)
        show_table = result.status is ProcessingStatus.completed and result.statement_count > 0
        if show_table:
            result = processor.fetch_result(file_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc

    return templates.TemplateResponse(
        request,
        "ui/detail.html",
        {
            "result": result,
            "should_poll": result.status in _POLLABLE_STATUSES,
            "show_table": show_table,
        },
    )
