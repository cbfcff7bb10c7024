"""
Unit Tests — Retry Context Manager
==================================
Pure context transformations and the seven-rule strategy decision.

Histories are built by hand with _make_history() so each rule can be
reached directly without running the executor.
"""
import pytest

from fixloop.models.error_record import ErrorRecord
from fixloop.models.retry import AppliedFix, RetryConfig, RetryStrategy
from fixloop.retry.context_manager import (
    analyze_and_decide,
    build_attempt_summary,
    create_retry_context,
    find_repeating_errors,
    generate_retry_report,
    no_progress,
    record_attempt,
    update_errors,
    update_strategy,
)


def _make_error(code: str, fixable: bool = False, category: str = "type", file: str = "src/a.ts", line: int = 1) -> ErrorRecord:
    return ErrorRecord(
        source="typescript",
        file=file,
        line=line,
        message=f"message for {code}",
        code=code,
        category=category,
        fixable=fixable,
    )


def _make_fix(file: str = "src/a.ts", code: str = "TS1") -> AppliedFix:
    return AppliedFix(id=f"fix-{code}-{file}", error_code=code, file=file, description=f"fix {code}", successful=True)


def _make_history(steps, max_attempts: int = 5):
    """steps: [(strategy, errors, fixes), ...]; current_errors follow the last step."""
    context = create_retry_context(RetryConfig(max_attempts=max_attempts))
    for strategy, errors, fixes in steps:
        context = record_attempt(context, False, errors, fixes, 10.0, strategy)
        context = update_errors(context, errors)
    return context


E1 = _make_error("TS2322")
E2 = _make_error("TS2304", fixable=True, category="import")
E3 = _make_error("TS2339", line=7)
E4 = _make_error("TS2345", line=9)


# ===========================================================================
# 1. Transformations
# ===========================================================================
class TestTransformations:

    def test_create_defaults(self):
        context = create_retry_context(RetryConfig(max_attempts=4))
        assert context.attempt == 0
        assert context.max_attempts == 4
        assert context.strategy == RetryStrategy.AUTO_FIX
        assert context.attempt_history == []

    def test_record_attempt_returns_new_context(self):
        before = create_retry_context()
        after = record_attempt(before, False, [E1], [_make_fix()], 12.5, RetryStrategy.AUTO_FIX)
        assert before.attempt == 0
        assert before.attempt_history == []
        assert after.attempt == 1
        assert len(after.attempt_history) == after.attempt
        assert after.attempt_history[0].strategy == RetryStrategy.AUTO_FIX
        assert after.applied_fixes[0].error_code == "TS1"

    def test_record_attempt_keeps_current_errors(self):
        context = update_errors(create_retry_context(), [E1])
        context = record_attempt(context, False, [E1, E3], [], 1.0)
        assert context.current_errors == [E1]

    def test_modified_files_unique_in_order(self):
        context = create_retry_context(RetryConfig(max_attempts=3))
        context = record_attempt(context, False, [E1], [_make_fix("b.ts"), _make_fix("a.ts")], 1.0)
        context = record_attempt(context, False, [E1], [_make_fix("b.ts"), _make_fix("c.ts")], 1.0)
        assert context.modified_files == ["b.ts", "a.ts", "c.ts"]
        assert len(context.applied_fixes) == 4

    def test_attempt_never_exceeds_max(self):
        context = create_retry_context(RetryConfig(max_attempts=1))
        context = record_attempt(context, False, [E1], [], 1.0)
        with pytest.raises(ValueError, match="exceeds max_attempts=1"):
            record_attempt(context, False, [E1], [], 1.0)

    def test_update_strategy(self):
        context = update_strategy(create_retry_context(), RetryStrategy.ESCALATE)
        assert context.strategy == RetryStrategy.ESCALATE

    def test_attempt_summary(self):
        assert build_attempt_summary(True, [], [_make_fix()]) == "Success! Applied 1 fixes."
        summary = build_attempt_summary(False, [E1, E2], [])
        assert summary == "Failed with 2 errors (1 type, 1 import). Applied 0 fixes."


# ===========================================================================
# 2. Decision rules
# ===========================================================================
class TestAnalyzeAndDecide:

    def test_budget_exhausted(self):
        context = _make_history([(None, [E1], [])], max_attempts=1)
        decision = analyze_and_decide(context)
        assert decision.should_retry is False
        assert decision.strategy == RetryStrategy.ESCALATE
        assert "exhausted" in decision.reason

    def test_no_errors_stops(self):
        context = _make_history([(None, [], [])])
        decision = analyze_and_decide(context)
        assert decision.should_retry is False
        assert decision.reason == "No errors to fix"

    def test_no_progress_escalates(self):
        context = _make_history([
            (None, [E1], []),
            (RetryStrategy.AI_GUIDED, [E1], [_make_fix()]),
        ])
        decision = analyze_and_decide(context, RetryConfig(no_progress_threshold=2))
        assert decision.should_retry is False
        assert decision.strategy == RetryStrategy.ESCALATE
        assert decision.reason.startswith("No progress")

    def test_no_progress_threshold_three_waits(self):
        context = _make_history([
            (None, [E1], []),
            (RetryStrategy.AUTO_FIX, [E1], [_make_fix()]),
        ])
        decision = analyze_and_decide(context, RetryConfig(no_progress_threshold=3))
        assert decision.should_retry is True
        assert decision.strategy == RetryStrategy.AI_GUIDED

    def test_auto_fix_all_fixable(self):
        context = _make_history([(None, [E2], [])])
        decision = analyze_and_decide(context)
        assert decision.strategy == RetryStrategy.AUTO_FIX
        assert decision.reason == "All 1 errors are auto-fixable"
        assert decision.priority_errors == ["TS2304"]

    def test_auto_fix_mixed(self):
        context = _make_history([(None, [E1, E2], [])])
        decision = analyze_and_decide(context)
        assert decision.strategy == RetryStrategy.AUTO_FIX
        assert decision.reason == "1 fixable, 1 need AI guidance"
        assert "## Errors Requiring AI Analysis" in decision.instructions

    def test_auto_fix_first_disabled(self):
        context = _make_history([(None, [E2], [])])
        decision = analyze_and_decide(context, RetryConfig(auto_fix_first=False))
        assert decision.strategy == RetryStrategy.AI_GUIDED

    def test_stalled_auto_fix_moves_to_ai(self):
        style = _make_error("semi", fixable=True, category="style", line=3)
        syntax = _make_error("TS1005", category="syntax", line=8)
        context = _make_history([
            (None, [style, syntax], []),
            (RetryStrategy.AUTO_FIX, [style, syntax], []),
        ])
        decision = analyze_and_decide(context)
        assert decision.should_retry is True
        assert decision.strategy == RetryStrategy.AI_GUIDED
        assert decision.priority_errors == ["TS1005", "semi"]
        assert "## Previous Attempts Summary" in decision.instructions

    def test_rollback_after_stalled_ai(self):
        context = _make_history([
            (None, [E1, E3], []),
            (RetryStrategy.AI_GUIDED, [E1, E4], [_make_fix("src/a.ts")]),
        ])
        decision = analyze_and_decide(context)
        assert decision.strategy == RetryStrategy.ROLLBACK_RETRY
        assert decision.target_files == ["src/a.ts"]

    def test_rollback_only_once(self):
        context = _make_history([
            (None, [E1, E3], []),
            (RetryStrategy.AI_GUIDED, [E1, E4], [_make_fix("src/a.ts")]),
            (RetryStrategy.ROLLBACK_RETRY, [E1, E3], []),
        ])
        decision = analyze_and_decide(context)
        assert decision.strategy == RetryStrategy.AI_GUIDED

    def test_rollback_disabled(self):
        context = _make_history([
            (None, [E1, E3], []),
            (RetryStrategy.AI_GUIDED, [E1, E4], [_make_fix("src/a.ts")]),
        ])
        decision = analyze_and_decide(context, RetryConfig(rollback_on_failure=False))
        assert decision.strategy == RetryStrategy.AI_GUIDED

    def test_no_rollback_without_modified_files(self):
        context = _make_history([
            (None, [E1], []),
            (RetryStrategy.AI_GUIDED, [E1], []),
        ])
        decision = analyze_and_decide(context)
        assert decision.strategy == RetryStrategy.AI_GUIDED


# ===========================================================================
# 3. History analysis + report
# ===========================================================================
class TestHistory:

    def test_no_progress_requires_fixes(self):
        context = _make_history([(None, [E1], []), (RetryStrategy.AI_GUIDED, [E1], [])])
        assert no_progress(context, 2) is False

    def test_no_progress_ignores_empty_sets(self):
        context = _make_history([(None, [], []), (RetryStrategy.AI_GUIDED, [], [_make_fix()])])
        assert no_progress(context, 2) is False

    def test_no_progress_threshold_three(self):
        context = _make_history([
            (None, [E1], []),
            (RetryStrategy.AUTO_FIX, [E1], [_make_fix()]),
            (RetryStrategy.AI_GUIDED, [E1], []),
        ])
        assert no_progress(context, 3) is True
        assert no_progress(context, 2) is False

    def test_repeating_errors(self):
        context = _make_history([(None, [E1, E3], []), (RetryStrategy.AUTO_FIX, [E1, E4], [])])
        assert find_repeating_errors(context) == [E1]

    def test_report_trend_and_strategies(self):
        context = _make_history([
            (None, [E1, E3], []),
            (RetryStrategy.AUTO_FIX, [E1], [_make_fix()]),
        ])
        report = generate_retry_report(context)
        assert "Total Attempts: 2" in report
        assert "Error Trend: 2 → 1" in report
        assert "- Strategy: initial run" in report
        assert "- Strategy: auto-fix" in report
        assert "## Applied Fixes" in report

    def test_report_caps_remaining_errors(self):
        errors = [_make_error(f"TS{2000 + i}", line=i) for i in range(25)]
        context = update_errors(create_retry_context(), errors)
        report = generate_retry_report(context)
        assert report.count("- [error]") == 20
        assert report.endswith("... and 5 more")
