"""Bulk enrollment upload endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from planlink.api.deps import get_importer
from planlink.core.exceptions import FileStoreError, ImportFileError
from planlink.ingest.importer import BulkImporter
from planlink.models.records import PlanKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


def _archive(request: Request, kind: PlanKind, upload: UploadFile, data: bytes) -> None:
    file_store = request.app.state.file_store
    if file_store is None:
        return
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    path = f"uploads/{kind.value}/{stamp}-{upload.filename or 'upload'}"
    try:
        file_store.write(path, data, upload.content_type or "application/octet-stream")
    except FileStoreError:
        logger.warning("Could not archive upload to %s", path, exc_info=True)


def _read_upload(file: Optional[UploadFile]) -> bytes:
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    return file.file.read()


@router.post("/upload-participants")
def upload_participants(
    request: Request,
    file: Optional[UploadFile] = File(None),
    groupId: str = Form(""),
    planStartDate: str = Form(""),
    importer: BulkImporter = Depends(get_importer),
) -> dict[str, Any]:
    """Import group plan enrollments for one group and plan start date."""
    data = _read_upload(file)
    _archive(request, PlanKind.GROUP, file, data)
    try:
        report = importer.import_group_file(data, file.filename or "", groupId, planStartDate)
    except ImportFileError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return report.to_payload()


@router.post("/upload-medicare-participants")
def upload_medicare_participants(
    request: Request,
    file: Optional[UploadFile] = File(None),
    importer: BulkImporter = Depends(get_importer),
) -> dict[str, Any]:
    """Import Medicare plan enrollments; each row carries its own plan start date."""
    data = _read_upload(file)
    _archive(request, PlanKind.MEDICARE, file, data)
    try:
        report = importer.import_medicare_file(data, file.filename or "")
    except ImportFileError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return report.to_payload()
