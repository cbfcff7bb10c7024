"""
Report Models
=============
Pydantic models for enriched diagnostics and the aggregate report.

EnrichedError:
    One diagnostic after the enricher pipeline ran over it. `type` is the
    error source; `context` is a pre-rendered snippet; `docs` are the
    reference links. All enrichment fields are optional, a miss simply
    leaves them empty.

ErrorReport:
    success / buildable — both `total_errors == 0`; warnings never block
    summary             — one-line human summary
    timestamp           — ISO-8601, UTC

StageResult / StageDiagnostic:
    Output of one validation stage of the surrounding pipeline. When a
    stage has no raw `output`, its pre-parsed `errors` pass through.

RawError:
    (source, raw_output) pair fed to process_all_errors().
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from fixloop.core.constants import SEVERITIES

from .suggestion import DocLink, FixSuggestion


def _check_severity(v: str) -> str:
    if v not in SEVERITIES:
        raise ValueError(f"severity must be 'error' or 'warning', got '{v}'")
    return v


class EnrichedError(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    severity: str = "error"
    file: str = ""
    line: Optional[int] = None
    column: Optional[int] = None
    message: str
    code: Optional[str] = None
    category: str = "unknown"
    severity_level: str = "medium"
    suggestion: Optional[FixSuggestion] = None
    context: Optional[str] = None
    docs: List[DocLink] = []
    auto_fixable: bool = False

    @field_validator("severity")
    @classmethod
    def known_severity(cls, v: str) -> str:
        return _check_severity(v)


class ErrorReport(BaseModel):
    success: bool
    total_errors: int = 0
    total_warnings: int = 0
    errors: List[EnrichedError] = []
    summary: str = ""
    timestamp: str = ""
    buildable: bool = True


class StageDiagnostic(BaseModel):
    file: str = ""
    line: Optional[int] = None
    column: Optional[int] = None
    message: str
    rule: Optional[str] = None
    severity: str = "error"

    @field_validator("severity")
    @classmethod
    def known_severity(cls, v: str) -> str:
        return _check_severity(v)


class StageResult(BaseModel):
    name: str
    passed: bool = False
    output: Optional[str] = None
    errors: List[StageDiagnostic] = []


class RawError(BaseModel):
    source: str
    raw_output: str
