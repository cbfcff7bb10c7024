"""
Unit Tests — Retry Executor
===========================
End-to-end retry sessions driven through asyncio.run():
clean first run, exhausted budget, escalation, handler faults, callback
faults, fix filtering, delays and the functional wrappers.

Delays are disabled (retry_delay_ms=0) unless a test is about the delay.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fixloop.models.error_record import ErrorRecord
from fixloop.models.retry import (
    AppliedFix,
    RetryConfig,
    RetryStatus,
    RetryStrategy,
    StrategyResult,
)
from fixloop.retry.executor import (
    ExecutorState,
    RetryExecutor,
    create_retry_wrapper,
    execute_with_retry,
    get_retry_stats,
)


def _make_error(code: str = "TS2322", fixable: bool = False) -> ErrorRecord:
    return ErrorRecord(source="typescript", file="src/App.tsx", line=3, message=f"{code} message",
                       code=code, category="type", fixable=fixable)


def _make_fix(code: str = "TS2322", file: str = "src/App.tsx", successful: bool = True) -> AppliedFix:
    return AppliedFix(id=f"fix-{code}", error_code=code, file=file, description=f"fix {code}",
                      successful=successful)


def _make_config(**overrides) -> RetryConfig:
    fields = dict(max_attempts=3, retry_delay_ms=0)
    fields.update(overrides)
    return RetryConfig(**fields)


def _operation(errors):
    async def operation():
        return list(errors)
    return operation


# ===========================================================================
# 1. Session outcomes
# ===========================================================================
class TestSessionOutcomes:

    def test_clean_first_run_records_no_attempt(self):
        executor = RetryExecutor(_make_config())
        result = asyncio.run(executor.run(_operation([])))
        assert result.success is True
        assert result.status == RetryStatus.SUCCEEDED
        assert result.total_attempts == 0
        assert result.needs_human_review is False
        assert executor.state == ExecutorState.SUCCEEDED

    def test_same_error_without_handlers_exhausts_budget(self):
        executor = RetryExecutor(_make_config(max_attempts=3))
        result = asyncio.run(executor.run(_operation([_make_error()])))
        assert result.success is False
        assert result.total_attempts == 3
        assert result.needs_human_review is True
        assert result.status == RetryStatus.EXHAUSTED
        assert [e.code for e in result.final_errors] == ["TS2322"]
        assert result.context.strategy == RetryStrategy.ESCALATE
        assert executor.state == ExecutorState.EXHAUSTED

    def test_fixable_error_tries_auto_fix_then_ai(self):
        result = asyncio.run(execute_with_retry(_operation([_make_error(fixable=True)]), _make_config()))
        strategies = [a.strategy for a in result.context.attempt_history]
        assert strategies == [None, RetryStrategy.AUTO_FIX, RetryStrategy.AI_GUIDED]

    def test_handler_success_ends_session(self):
        async def auto_fix(context, config):
            return StrategyResult(success=True, errors=[], fixes=[_make_fix()])

        result = asyncio.run(execute_with_retry(
            _operation([_make_error(fixable=True)]),
            _make_config(),
            {RetryStrategy.AUTO_FIX: auto_fix},
        ))
        assert result.success is True
        assert result.total_attempts == 2
        assert result.final_errors == []
        assert [f.id for f in result.all_fixes] == ["fix-TS2322"]

    def test_no_progress_escalates_early(self):
        def ai_guided(context, config):
            return {"success": False, "errors": list(context.current_errors), "fixes": [_make_fix()]}

        executor = RetryExecutor(_make_config(max_attempts=5), {"ai-guided": ai_guided})
        result = asyncio.run(executor.run(_operation([_make_error()])))
        assert result.status == RetryStatus.ESCALATED
        assert result.total_attempts == 2
        assert result.needs_human_review is True
        assert executor.state == ExecutorState.ESCALATED

    def test_stalled_ai_rolls_back_once(self):
        shifted = [_make_error("TS2322"), _make_error("TS2345")]

        async def ai_guided(context, config):
            return StrategyResult(success=False, errors=list(shifted), fixes=[_make_fix("TS2322")])

        rollback = AsyncMock(return_value=StrategyResult(success=False, errors=list(shifted)))

        result = asyncio.run(execute_with_retry(
            _operation([_make_error("TS2322"), _make_error("TS2304")]),
            _make_config(max_attempts=4),
            {RetryStrategy.AI_GUIDED: ai_guided, RetryStrategy.ROLLBACK_RETRY: rollback},
        ))

        strategies = [a.strategy for a in result.context.attempt_history]
        assert strategies == [None, RetryStrategy.AI_GUIDED, RetryStrategy.ROLLBACK_RETRY, RetryStrategy.AI_GUIDED]
        rollback.assert_awaited_once()
        rolled_back_context = rollback.call_args.args[0]
        assert rolled_back_context.strategy == RetryStrategy.ROLLBACK_RETRY
        assert rolled_back_context.modified_files == ["src/App.tsx"]
        assert result.status == RetryStatus.EXHAUSTED
        assert result.total_attempts == 4

    def test_operation_may_return_dicts(self):
        async def operation():
            return {"errors": [{"message": "boom", "code": "E1"}]}

        result = asyncio.run(execute_with_retry(operation, _make_config(max_attempts=1)))
        assert result.total_attempts == 1
        assert result.final_errors[0].code == "E1"


# ===========================================================================
# 2. Fault tolerance
# ===========================================================================
class TestFaultTolerance:

    def test_handler_exception_becomes_failed_attempt(self):
        calls = []

        async def ai_guided(context, config):
            calls.append(context.attempt)
            if len(calls) == 1:
                raise RuntimeError("model unavailable")
            return StrategyResult(success=True, errors=[])

        result = asyncio.run(execute_with_retry(
            _operation([_make_error()]), _make_config(), {RetryStrategy.AI_GUIDED: ai_guided},
        ))
        history = result.context.attempt_history
        assert result.success is True
        assert result.total_attempts == 3
        assert history[1].succeeded is False
        assert history[1].fixes_applied == []
        assert [e.code for e in history[1].errors] == ["TS2322"]

    def test_unknown_strategy_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown retry strategy 'magic'"):
            RetryExecutor(_make_config(), {"magic": lambda c, cfg: None})

    def test_non_callable_handler_rejected(self):
        with pytest.raises(ValueError, match="not callable"):
            RetryExecutor(_make_config(), {RetryStrategy.AUTO_FIX: "nope"})

    def test_callback_exceptions_are_ignored(self):
        def boom(*args):
            raise RuntimeError("observer crashed")

        config = _make_config(on_retry_start=boom, on_progress=boom, on_retry_complete=boom)
        result = asyncio.run(execute_with_retry(_operation([_make_error()]), config))
        assert result.total_attempts == 3
        assert result.status == RetryStatus.EXHAUSTED

    def test_callbacks_receive_lifecycle(self):
        start = MagicMock()
        progress = MagicMock()
        complete = AsyncMock()
        config = _make_config(on_retry_start=start, on_progress=progress, on_retry_complete=complete)
        asyncio.run(execute_with_retry(_operation([_make_error()]), config))

        start.assert_called_once()
        assert progress.call_count == 2
        assert progress.call_args_list[0].args[0].startswith("Retry 2/3 [ai-guided]")
        complete.assert_awaited_once()
        assert complete.call_args.args[1] is False

    def test_fixes_for_unknown_errors_dropped(self):
        async def auto_fix(context, config):
            return StrategyResult(
                success=False,
                errors=[_make_error(fixable=True)],
                fixes=[_make_fix("TS2322"), _make_fix("TS9999", file="src/Other.tsx")],
            )

        result = asyncio.run(execute_with_retry(
            _operation([_make_error(fixable=True)]),
            _make_config(max_attempts=2),
            {RetryStrategy.AUTO_FIX: auto_fix},
        ))
        assert [f.error_code for f in result.all_fixes] == ["TS2322"]
        assert result.context.modified_files == ["src/App.tsx"]

    def test_bad_handler_return_is_a_failed_attempt(self):
        async def ai_guided(context, config):
            return 42

        result = asyncio.run(execute_with_retry(
            _operation([_make_error()]), _make_config(max_attempts=2), {RetryStrategy.AI_GUIDED: ai_guided},
        ))
        assert result.success is False
        assert result.context.attempt_history[1].succeeded is False


# ===========================================================================
# 3. Delay
# ===========================================================================
def test_delay_skipped_before_first_retry():
    async def run_test():
        with patch("fixloop.retry.executor.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await execute_with_retry(
                _operation([_make_error()]), _make_config(max_attempts=3, retry_delay_ms=500),
            )
            assert result.total_attempts == 3
            # two retries, only the second waits
            mock_sleep.assert_awaited_once_with(0.5)

    asyncio.run(run_test())


# ===========================================================================
# 4. Wrapper + stats
# ===========================================================================
def test_retry_wrapper_returns_last_value():
    async def build():
        return {"stdout": "ok", "problems": []}

    run = create_retry_wrapper(_make_config())
    result, value = asyncio.run(run(build, lambda out: out["problems"]))
    assert result.success is True
    assert value == {"stdout": "ok", "problems": []}


def test_retry_stats():
    async def auto_fix(context, config):
        return StrategyResult(success=True, errors=[], fixes=[_make_fix(successful=True)], duration_ms=5.0)

    result = asyncio.run(execute_with_retry(
        _operation([_make_error(fixable=True)]), _make_config(), {RetryStrategy.AUTO_FIX: auto_fix},
    ))
    stats = get_retry_stats(result)
    assert stats["total_attempts"] == 2
    assert stats["error_reduction"] == 100.0
    assert stats["fix_success_rate"] == 100.0
    assert stats["strategies_used"] == [RetryStrategy.AUTO_FIX]
