"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import PlainTextResponse

from app.schemas import FileUploadResponse, ProcessingResult
from services.processor import ExportNotReadyError, ProcessorService, build_default_processor

router = APIRouter()


def get_processor() -> ProcessorService:
    return build_default_processor()


@router.post(
    "/files",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=FileUploadResponse,
    summary="Upload a NEM12 CSV file for asynchronous SQL generation.",
)
async def upload_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="NEM12 interval-data CSV file."),
    processor: ProcessorService = Depends(get_processor),
) -> FileUploadResponse:
    try:
        file_id = processor.enqueue_file(background_tasks, file)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return FileUploadResponse(file_id=file_id)


@router.get(
    "/files/{file_id}",
    response_model=ProcessingResult,
    summary="Fetch job status and the meter readings emitted so far.",
)
async def get_file_result(
    file_id: str,
    processor: ProcessorService = Depends(get_processor),
) -> ProcessingResult:
    try:
        return processor.fetch_result(file_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc


@router.get(
    "/files/{file_id}/sql",
    response_class=PlainTextResponse,
    summary="Export the generated INSERT statements as newline-joined text.",
)
async def get_file_sql(
    file_id: str,
    processor: ProcessorService = Depends(get_processor),
) -> PlainTextResponse:
    try:
        sql = processor.export_sql(file_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc
    except ExportNotReadyError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    return PlainTextResponse(sql)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /ui to generate SQL from a NEM12 file."}
