"""
Error Record Model
==================
Pydantic model for one normalized diagnostic.
This is the contract between the parsers and the retry loop.

Fields:
    source          — typescript | eslint | metro | react-native | expo | unknown
    severity        — error | warning (warnings never block a build)
    file            — project-relative path, forward slashes
    line / column   — 1-based location when the tool reported one
    message         — tool message, trimmed
    code            — TS code or lint rule id when the tool has one
    category        — coarse bucket from the classifier ("unknown" if none)
    fixable         — a safe mechanical edit is known
    fixed           — set by handlers on the copy they return
    fix_attempts    — ordered history of prior attempts on this error

Records are frozen. A later parse of the same location produces a new
record; nothing mutates an existing one.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fixloop.core.constants import SEVERITIES


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FixAttempt(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    successful: bool = False
    timestamp: str = Field(default_factory=utc_now_iso)


class ErrorRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str = "unknown"
    severity: str = "error"
    file: str = ""
    line: Optional[int] = None
    column: Optional[int] = None
    message: str
    code: Optional[str] = None
    category: str = "unknown"
    fixable: bool = False
    fixed: bool = False
    suggested_fix: Optional[str] = None
    fix_attempts: List[FixAttempt] = []

    @field_validator("severity")
    @classmethod
    def known_severity(cls, v: str) -> str:
        if v not in SEVERITIES:
            raise ValueError(f"severity must be 'error' or 'warning', got '{v}'")
        return v

    @property
    def key(self) -> str:
        """Identity used for progress tracking and fix targeting."""
        return self.code or self.message

    @property
    def location(self) -> str:
        if self.line is None:
            return self.file
        if self.column is None:
            return f"{self.file}:{self.line}"
        return f"{self.file}:{self.line}:{self.column}"
