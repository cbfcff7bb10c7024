"""
Retry Context Manager
=====================
Pure transformations over RetryContext plus the strategy decision.

Transformations (each returns a NEW context, the input is never touched):
    create_retry_context  — attempt 0, empty history, strategy auto-fix
    record_attempt        — append an AttemptRecord, attempt += 1,
                            append fixes, extend modified_files
    update_errors         — replace current_errors wholesale
    update_strategy       — replace the active strategy

Decision order in analyze_and_decide(), first hit wins:
    1. attempt >= max_attempts                     → stop, escalate (exhausted)
    2. no current errors                           → stop
    3. error set unchanged for `no_progress_threshold`
       attempts although fixes were applied        → stop, escalate
    4. fixable errors, auto_fix_first, no AI attempt
       yet, auto-fix not stalled                   → auto-fix
    5. auto-fix stalled, no AI attempt yet         → ai-guided + priority errors
    6. latest AI attempt did not reduce errors,
       files were modified, rollback allowed and
       not used yet                                → rollback-retry (once)
    7. anything else                               → ai-guided

"Stalled" / "did not reduce" compare an attempt's error count with the
attempt right before it.
"""
import logging
from collections import Counter
from typing import Iterable, Optional

from fixloop.core.constants import ARROW
from fixloop.enrichers.classification import priority_of
from fixloop.models.error_record import ErrorRecord
from fixloop.models.retry import (
    AppliedFix,
    AttemptRecord,
    RetryConfig,
    RetryContext,
    RetryDecision,
    RetryStrategy,
)
from fixloop.utils.error_signature import generate_error_set_signature

logger = logging.getLogger(__name__)

MAX_INSTRUCTION_ERRORS = 10
MAX_REPORT_ERRORS = 20


# ---------------------------------------------------------------------------
# Transformations
# ---------------------------------------------------------------------------
def create_retry_context(config: Optional[RetryConfig] = None) -> RetryContext:
    config = config or RetryConfig()
    return RetryContext(max_attempts=config.max_attempts, strategy=RetryStrategy.AUTO_FIX)


def build_attempt_summary(succeeded: bool, errors: list[ErrorRecord], fixes: list[AppliedFix]) -> str:
    if succeeded:
        return f"Success! Applied {len(fixes)} fixes."
    by_category = Counter(e.category for e in errors)
    categories = ", ".join(f"{count} {cat}" for cat, count in by_category.items())
    return f"Failed with {len(errors)} errors ({categories}). Applied {len(fixes)} fixes."


def record_attempt(
    context: RetryContext,
    succeeded: bool,
    errors: list[ErrorRecord],
    fixes: list[AppliedFix],
    duration_ms: float,
    strategy: Optional[RetryStrategy] = None,
) -> RetryContext:
    """
    Append one attempt to the history.

    Parameters
    ----------
    context : RetryContext
        Context before the attempt.
    succeeded : bool
        Whether the attempt left the project error-free.
    errors : list[ErrorRecord]
        Errors observed at the end of the attempt.
    fixes : list[AppliedFix]
        Fixes made during the attempt.
    duration_ms : float
        Wall time of the attempt.
    strategy : RetryStrategy or None
        Strategy that produced the attempt; None for the initial run.

    Returns
    -------
    RetryContext
        New context with attempt incremented by exactly one.

    Raises
    ------
    ValueError
        If the attempt would exceed max_attempts.
    """
    next_attempt = context.attempt + 1
    if next_attempt > context.max_attempts:
        raise ValueError(
            f"attempt {next_attempt} exceeds max_attempts={context.max_attempts}"
        )

    record = AttemptRecord(
        attempt=next_attempt,
        duration_ms=duration_ms,
        succeeded=succeeded,
        errors=list(errors),
        fixes_applied=list(fixes),
        summary=build_attempt_summary(succeeded, errors, fixes),
        strategy=strategy,
    )

    modified = list(context.modified_files)
    for fix in fixes:
        if fix.file and fix.file not in modified:
            modified.append(fix.file)

    return context.model_copy(update={
        "attempt": next_attempt,
        "attempt_history": [*context.attempt_history, record],
        "applied_fixes": [*context.applied_fixes, *fixes],
        "modified_files": modified,
    })


def update_errors(context: RetryContext, errors: list[ErrorRecord]) -> RetryContext:
    return context.model_copy(update={"current_errors": list(errors)})


def update_strategy(context: RetryContext, strategy: RetryStrategy) -> RetryContext:
    return context.model_copy(update={"strategy": RetryStrategy(strategy)})


# ---------------------------------------------------------------------------
# History analysis
# ---------------------------------------------------------------------------
def _keys(errors: Iterable[ErrorRecord]) -> frozenset[str]:
    return frozenset(e.key for e in errors)


def _reduced_errors(history: list[AttemptRecord], index: int) -> bool:
    """Did attempt `index` end with fewer errors than the one before it?"""
    if index <= 0:
        return True
    return len(history[index].errors) < len(history[index - 1].errors)


def _latest_index(history: list[AttemptRecord], strategy: RetryStrategy) -> Optional[int]:
    for index in range(len(history) - 1, -1, -1):
        if history[index].strategy == strategy:
            return index
    return None


def _strategy_used(history: list[AttemptRecord], strategy: RetryStrategy) -> bool:
    return _latest_index(history, strategy) is not None


def auto_fix_stalled(context: RetryContext) -> bool:
    """The latest auto-fix attempt did not lower the error count."""
    index = _latest_index(context.attempt_history, RetryStrategy.AUTO_FIX)
    return index is not None and not _reduced_errors(context.attempt_history, index)


def ai_guided_stalled(context: RetryContext) -> bool:
    """The latest AI-guided attempt did not lower the error count."""
    index = _latest_index(context.attempt_history, RetryStrategy.AI_GUIDED)
    return index is not None and not _reduced_errors(context.attempt_history, index)


def no_progress(context: RetryContext, threshold: int) -> bool:
    """
    True when the last *threshold* attempts saw the same non-empty error
    set and fixes were applied between them.
    """
    history = context.attempt_history
    if len(history) < threshold:
        return False
    window = history[-threshold:]
    signatures = {generate_error_set_signature(_keys(a.errors)) for a in window}
    if len(signatures) != 1 or signatures == {""}:
        return False
    fixes_in_window = sum(len(a.fixes_applied) for a in window[1:])
    return fixes_in_window > 0


def find_repeating_errors(context: RetryContext) -> list[ErrorRecord]:
    """Current errors that were already present one attempt earlier."""
    history = context.attempt_history
    if len(history) < 2:
        return []
    previous = {(e.code, e.file, e.line) for e in history[-2].errors}
    return [e for e in context.current_errors if (e.code, e.file, e.line) in previous]


def get_affected_files(errors: Iterable[ErrorRecord]) -> list[str]:
    files: list[str] = []
    for error in errors:
        if error.file and error.file not in files:
            files.append(error.file)
    return files


def _priority_keys(errors: Iterable[ErrorRecord]) -> list[str]:
    ordered = sorted(errors, key=lambda e: (priority_of(e.category), e.file, e.line or 0))
    keys: list[str] = []
    for error in ordered:
        if error.key not in keys:
            keys.append(error.key)
    return keys


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------
def build_ai_instructions(errors: list[ErrorRecord], context: RetryContext) -> str:
    lines = ["## Previous Attempts Summary"]
    for attempt in context.attempt_history:
        strategy = f" [{attempt.strategy.value}]" if attempt.strategy else ""
        lines.append(f"- Attempt {attempt.attempt}{strategy}: {'SUCCESS' if attempt.succeeded else 'FAILED'}")
        if attempt.fixes_applied:
            lines.append(f"  Fixes applied: {', '.join(f.description for f in attempt.fixes_applied)}")
        if not attempt.succeeded and attempt.errors:
            lines.append(f"  Errors: {'; '.join(e.message for e in attempt.errors[:3])}")

    lines.append("")
    lines.append("## Current Errors to Fix")
    for error in errors[:MAX_INSTRUCTION_ERRORS]:
        lines.append(f"- [{error.category}] {error.file}:{error.line or '?'}")
        lines.append(f"  {error.message}")
        if error.suggested_fix:
            lines.append(f"  Suggested fix: {error.suggested_fix}")
        if error.fix_attempts:
            lines.append(f"  Previous fix attempts: {'; '.join(f.description for f in error.fix_attempts)}")
    if len(errors) > MAX_INSTRUCTION_ERRORS:
        lines.append(f"... and {len(errors) - MAX_INSTRUCTION_ERRORS} more errors")

    lines.append("")
    lines.append("## Instructions")
    lines.append("1. Analyze the error patterns and previous fix attempts")
    lines.append("2. Apply fixes that address the root cause, not just symptoms")
    lines.append("3. Avoid fixes that have already been tried and failed")
    lines.append("4. Ensure fixes do not introduce new errors")
    return "\n".join(lines)


def build_mixed_instructions(context: RetryContext) -> str:
    fixable = [e for e in context.current_errors if e.fixable]
    unfixable = [e for e in context.current_errors if not e.fixable]

    lines = ["## Auto-fixable Errors (will be fixed automatically)"]
    for error in fixable[:5]:
        lines.append(f"- {error.file}: {error.message}")
    if unfixable:
        lines.append("")
        lines.append("## Errors Requiring AI Analysis")
        for error in unfixable[:5]:
            lines.append(f"- {error.file}:{error.line or '?'}: {error.message}")
            if error.suggested_fix:
                lines.append(f"  Suggestion: {error.suggested_fix}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------
def analyze_and_decide(context: RetryContext, config: Optional[RetryConfig] = None) -> RetryDecision:
    """
    Choose what to do after the latest attempt.

    Parameters
    ----------
    context : RetryContext
        Current session state.
    config : RetryConfig or None
        Policy switches and the no-progress threshold. Defaults apply
        when omitted.

    Returns
    -------
    RetryDecision
    """
    config = config or RetryConfig()
    history = context.attempt_history
    errors = context.current_errors

    # 1. Budget
    if context.attempt >= context.max_attempts:
        return RetryDecision(
            should_retry=False,
            strategy=RetryStrategy.ESCALATE,
            reason=f"Maximum retry attempts ({context.max_attempts}) reached, attempts exhausted",
        )

    # 2. Nothing to fix
    if not errors:
        return RetryDecision(
            should_retry=False,
            strategy=context.strategy,
            reason="No errors to fix",
        )

    # 3. Same errors despite fixes
    if no_progress(context, config.no_progress_threshold):
        return RetryDecision(
            should_retry=False,
            strategy=RetryStrategy.ESCALATE,
            reason=(
                f"No progress: the same {len(_keys(errors))} error(s) persisted across "
                f"{config.no_progress_threshold} attempts despite applied fixes"
            ),
            target_files=get_affected_files(errors),
            priority_errors=_priority_keys(errors),
        )

    ai_attempted = _strategy_used(history, RetryStrategy.AI_GUIDED)
    fixable = [e for e in errors if e.fixable]

    # 4. Cheap mechanical fixes first
    if fixable and config.auto_fix_first and not ai_attempted and not auto_fix_stalled(context):
        unfixable_count = len(errors) - len(fixable)
        if unfixable_count:
            reason = f"{len(fixable)} fixable, {unfixable_count} need AI guidance"
        else:
            reason = f"All {len(fixable)} errors are auto-fixable"
        return RetryDecision(
            should_retry=True,
            strategy=RetryStrategy.AUTO_FIX,
            reason=reason,
            instructions=build_mixed_instructions(context),
            target_files=get_affected_files(fixable),
            priority_errors=_priority_keys(fixable),
        )

    # 5. Auto-fix made no dent
    if auto_fix_stalled(context) and not ai_attempted:
        return RetryDecision(
            should_retry=True,
            strategy=RetryStrategy.AI_GUIDED,
            reason=f"{len(errors)} error(s) persist after auto-fix attempts",
            instructions=build_ai_instructions(errors, context),
            target_files=get_affected_files(errors),
            priority_errors=_priority_keys(errors),
        )

    # 6. AI made no dent either: roll back once
    if (
        ai_guided_stalled(context)
        and context.modified_files
        and config.rollback_on_failure
        and not _strategy_used(history, RetryStrategy.ROLLBACK_RETRY)
    ):
        return RetryDecision(
            should_retry=True,
            strategy=RetryStrategy.ROLLBACK_RETRY,
            reason="AI-guided fixes did not reduce errors, rolling back modified files",
            instructions="Rollback to last working state and try an alternative approach",
            target_files=list(context.modified_files),
            priority_errors=_priority_keys(errors),
        )

    # 7. Default
    return RetryDecision(
        should_retry=True,
        strategy=RetryStrategy.AI_GUIDED,
        reason="No auto-fixable path left, AI guidance needed",
        instructions=build_ai_instructions(errors, context),
        target_files=get_affected_files(errors),
        priority_errors=_priority_keys(errors),
    )


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------
def generate_retry_report(context: RetryContext) -> str:
    """Markdown audit trail of a retry session."""
    trend = f" {ARROW} ".join(str(len(a.errors)) for a in context.attempt_history) or "n/a"
    lines = [
        "# Retry Process Report",
        "",
        f"Total Attempts: {context.attempt}",
        f"Final Strategy: {context.strategy.value}",
        f"Total Fixes Applied: {len(context.applied_fixes)}",
        f"Remaining Errors: {len(context.current_errors)}",
        f"Error Trend: {trend}",
        "",
        "## Attempt History",
    ]
    for attempt in context.attempt_history:
        lines.append(f"### Attempt {attempt.attempt}")
        lines.append(f"- Strategy: {attempt.strategy.value if attempt.strategy else 'initial run'}")
        lines.append(f"- Status: {'✅ Success' if attempt.succeeded else '❌ Failed'}")
        lines.append(f"- Duration: {attempt.duration_ms:.0f}ms")
        lines.append(f"- Errors: {len(attempt.errors)}")
        lines.append(f"- Fixes: {len(attempt.fixes_applied)}")
        lines.append(f"- Summary: {attempt.summary}")
        lines.append("")

    if context.applied_fixes:
        lines.append("## Applied Fixes")
        for fix in context.applied_fixes:
            lines.append(f"- {fix.file}: {fix.description} ({'✅' if fix.successful else '❌'})")
        lines.append("")

    if context.current_errors:
        lines.append("## Remaining Errors")
        for error in context.current_errors[:MAX_REPORT_ERRORS]:
            lines.append(f"- [{error.severity}] {error.file}:{error.line or '?'}: {error.message}")
        if len(context.current_errors) > MAX_REPORT_ERRORS:
            lines.append(f"... and {len(context.current_errors) - MAX_REPORT_ERRORS} more")

    return "\n".join(lines)
