"""Request-scoped dependencies built from app state."""

from __future__ import annotations

from fastapi import Request

from planlink.core.config import AppSettings
from planlink.enrollment.upserter import EnrollmentUpserter
from planlink.ingest.importer import BulkImporter


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_upserter(request: Request) -> EnrollmentUpserter:
    settings = get_settings(request)
    return EnrollmentUpserter(
        request.app.state.store, year_pivot=settings.imports.two_digit_year_pivot,
    )


def get_importer(request: Request) -> BulkImporter:
    settings = get_settings(request)
    return BulkImporter(
        get_upserter(request),
        max_rows=settings.imports.max_rows,
        year_pivot=settings.imports.two_digit_year_pivot,
    )
