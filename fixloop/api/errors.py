"""
Error Report Endpoints
======================
HTTP wrappers around the integration pipeline.

Routes:
    POST /api/errors/report — stage results → rendered report
    POST /api/errors/parse  — one tool's raw output → enriched errors

Both routes only parse and format. They never run builds, touch source
files beyond reading context lines, or call a model.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, field_validator

from fixloop.core.config import PROJECT_ROOT
from fixloop.core.constants import ERROR_SOURCES, REPORT_FORMATS, ErrorSource
from fixloop.formatters.ai_report import create_ai_error_report
from fixloop.formatters.human_report import render_report
from fixloop.models.report import EnrichedError, ErrorReport, StageResult
from fixloop.pipeline.integration import (
    collect_stage_errors,
    get_error_stats,
    process_source,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/errors", tags=["Errors"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------
class ReportRequest(BaseModel):
    stages: List[StageResult]
    project_root: Optional[str] = None
    format: str = "json"

    @field_validator("format")
    @classmethod
    def known_format(cls, v: str) -> str:
        if v not in REPORT_FORMATS:
            raise ValueError(f"format must be one of {', '.join(REPORT_FORMATS)}")
        return v


class ReportResponse(BaseModel):
    format: str
    report: ErrorReport
    content: str
    stats: dict


class ParseRequest(BaseModel):
    source: str
    output: str
    project_root: Optional[str] = None


class ParseResponse(BaseModel):
    source: str
    errors: List[EnrichedError]
    summary: str


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.post("/report", response_model=ReportResponse)
async def create_report(request: ReportRequest):
    project_root = request.project_root or PROJECT_ROOT
    errors = collect_stage_errors(request.stages, project_root)
    report = create_ai_error_report(errors)
    logger.info(
        "Report for %d stage(s): %d error(s), %d warning(s)",
        len(request.stages), report.total_errors, report.total_warnings,
    )
    return ReportResponse(
        format=request.format,
        report=report,
        content=render_report(report, request.format),
        stats=get_error_stats(errors),
    )


@router.post("/parse", response_model=ParseResponse)
async def parse_output(request: ParseRequest):
    source = request.source.strip().lower()
    if source not in ERROR_SOURCES or source == ErrorSource.UNKNOWN:
        raise HTTPException(status_code=400, detail=f"Unsupported error source '{request.source}'")

    errors = process_source(source, request.output, request.project_root or PROJECT_ROOT)
    report = create_ai_error_report(errors)
    return ParseResponse(source=source, errors=errors, summary=report.summary)
