"""
Retry Models
============
Pydantic models for the retry session.

RetryStrategy:
    Closed set of repair approaches. Handlers are registered per member;
    any other key is rejected when the executor is built.

RetryContext (aggregate root):
    attempt            — attempts recorded so far, never above max_attempts
    attempt_history    — append-only, len(attempt_history) == attempt
    current_errors     — replaced wholesale on every new diagnostic set
    applied_fixes      — append-only for the whole session
    modified_files     — append-only, unique, insertion ordered
    strategy           — the strategy chosen for the next attempt

    The context is frozen. context_manager.py returns new copies through
    model_copy(update=...) and never mutates one in place.

RetryConfig:
    Defaults come from core/config.py. Callbacks are observability hooks
    only; they may be plain or async functions.
"""
from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fixloop.core.config import (
    NO_PROGRESS_THRESHOLD,
    RETRY_AUTO_FIX_FIRST,
    RETRY_DELAY_MS,
    RETRY_MAX_ATTEMPTS,
    RETRY_ROLLBACK_ON_FAILURE,
)
from .error_record import ErrorRecord, utc_now_iso


class RetryStrategy(str, Enum):
    AUTO_FIX = "auto-fix"
    AI_GUIDED = "ai-guided"
    ROLLBACK_RETRY = "rollback-retry"
    ESCALATE = "escalate"


class RetryStatus(str, Enum):
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    ESCALATED = "escalated"


class AppliedFix(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    error_code: str
    file: str
    description: str
    successful: bool = False
    timestamp: str = Field(default_factory=utc_now_iso)


class AttemptRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    attempt: int = Field(ge=1)
    timestamp: str = Field(default_factory=utc_now_iso)
    duration_ms: float = 0.0
    succeeded: bool = False
    errors: List[ErrorRecord] = []
    fixes_applied: List[AppliedFix] = []
    summary: str = ""
    strategy: Optional[RetryStrategy] = None


class RetryContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    attempt: int = 0
    max_attempts: int = Field(default=RETRY_MAX_ATTEMPTS, ge=1)
    attempt_history: List[AttemptRecord] = []
    current_errors: List[ErrorRecord] = []
    applied_fixes: List[AppliedFix] = []
    modified_files: List[str] = []
    strategy: RetryStrategy = RetryStrategy.AUTO_FIX


class RetryDecision(BaseModel):
    should_retry: bool
    strategy: RetryStrategy
    reason: str
    instructions: Optional[str] = None
    target_files: List[str] = []
    priority_errors: List[str] = []


class StrategyResult(BaseModel):
    success: bool = False
    errors: List[ErrorRecord] = []
    fixes: List[AppliedFix] = []
    duration_ms: float = 0.0
    message: Optional[str] = None


class RetryResult(BaseModel):
    success: bool
    status: RetryStatus
    total_attempts: int
    context: RetryContext
    final_errors: List[ErrorRecord] = []
    all_fixes: List[AppliedFix] = []
    duration_ms: float = 0.0
    needs_human_review: bool = False
    summary: str = ""


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=RETRY_MAX_ATTEMPTS, ge=1)
    retry_delay_ms: int = Field(default=RETRY_DELAY_MS, ge=0)
    auto_fix_first: bool = RETRY_AUTO_FIX_FIRST
    rollback_on_failure: bool = RETRY_ROLLBACK_ON_FAILURE
    no_progress_threshold: int = Field(default=NO_PROGRESS_THRESHOLD, ge=2)

    # Lifecycle callbacks, never allowed to steer the loop
    on_retry_start: Optional[Callable[..., Any]] = None
    on_retry_complete: Optional[Callable[..., Any]] = None
    on_progress: Optional[Callable[..., Any]] = None
