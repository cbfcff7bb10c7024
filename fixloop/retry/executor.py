"""
Retry Executor
==============
Drives one retry session: Run → Decide → Fix → Record → repeat.

States:
    idle → running → succeeded | exhausted | escalated

Loop:
    1. Await the operation once. Zero errors → success, total_attempts=0
       (the short-circuit happens before any attempt is recorded).
    2. Seed current_errors and record attempt 1 as failed.
    3. While attempt < max_attempts:
           a. analyze_and_decide(); stop when should_retry is False
           b. sleep retry_delay_ms (skipped on the first iteration)
           c. run the handler for the decided strategy
           d. record the attempt, replace current_errors
           e. handler success or no errors left → succeeded
    4. Otherwise → exhausted (budget spent) or escalated (no progress),
       both with needs_human_review=True.

Fault tolerance:
    - A handler that raises becomes a failed attempt with zero fixes and
      the previous errors; the loop continues.
    - Handler fixes that target an error key never seen in this session
      are dropped with a warning.
    - Callbacks are observability only. Their exceptions are logged and
      swallowed, their return values ignored.

Each RetryExecutor runs one session at a time. execute_with_retry()
builds a fresh executor per call.
"""
import time
import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from fixloop.models.error_record import ErrorRecord
from fixloop.models.retry import (
    AppliedFix,
    RetryConfig,
    RetryContext,
    RetryDecision,
    RetryResult,
    RetryStatus,
    RetryStrategy,
    StrategyResult,
)
from fixloop.retry.context_manager import (
    analyze_and_decide,
    create_retry_context,
    generate_retry_report,
    record_attempt,
    update_errors,
    update_strategy,
)

logger = logging.getLogger(__name__)

StrategyHandler = Callable[[RetryContext, RetryConfig], Union[StrategyResult, dict, Awaitable[Any]]]
Operation = Callable[[], Awaitable[Any]]


class ExecutorState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    ESCALATED = "escalated"


_STUB_MESSAGES: dict[RetryStrategy, str] = {
    RetryStrategy.AUTO_FIX: "Auto-fix handler not configured",
    RetryStrategy.AI_GUIDED: "AI-guided handler not configured",
    RetryStrategy.ROLLBACK_RETRY: "Rollback handler not configured",
    RetryStrategy.ESCALATE: "Escalated for human review",
}


def _not_configured(strategy: RetryStrategy) -> StrategyHandler:
    """Handler that changes nothing and reports the current errors back."""
    message = _STUB_MESSAGES[strategy]

    async def handler(context: RetryContext, config: RetryConfig) -> StrategyResult:
        return StrategyResult(
            success=False,
            errors=list(context.current_errors),
            fixes=[],
            duration_ms=0.0,
            message=message,
        )

    return handler


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------
def _extract_errors(result: Any) -> list[ErrorRecord]:
    """Accept a list of errors, an object with .errors, or a dict with "errors"."""
    if result is None:
        return []
    if isinstance(result, dict):
        raw = result.get("errors") or []
    elif isinstance(result, (list, tuple)):
        raw = result
    else:
        raw = getattr(result, "errors", None) or []
    return [e if isinstance(e, ErrorRecord) else ErrorRecord.model_validate(e) for e in raw]


def _to_strategy_result(result: Any) -> StrategyResult:
    if isinstance(result, StrategyResult):
        return result
    if isinstance(result, dict):
        data = dict(result)
        if "duration" in data and "duration_ms" not in data:
            data["duration_ms"] = data.pop("duration")
        return StrategyResult.model_validate(data)
    raise TypeError(f"strategy handler returned {type(result).__name__}, expected StrategyResult or dict")


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _elapsed_ms(start: float) -> float:
    return (time.time() - start) * 1000


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------
class RetryExecutor:
    """
    Bounded retry loop over a wrapped operation.

    Parameters
    ----------
    config : RetryConfig or None
        Loop policy. Defaults come from core/config.py.
    strategy_handlers : dict or None
        Strategy (enum member or its string value) → handler. Handlers
        take (context, config) and return a StrategyResult or an
        equivalent dict; they may be sync or async.

    Raises
    ------
    ValueError
        If a handler key is not a known strategy.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        strategy_handlers: Optional[dict[Any, StrategyHandler]] = None,
    ) -> None:
        self.config = config or RetryConfig()
        self.handlers: dict[RetryStrategy, StrategyHandler] = {
            strategy: _not_configured(strategy) for strategy in RetryStrategy
        }
        for key, handler in (strategy_handlers or {}).items():
            try:
                strategy = RetryStrategy(key)
            except ValueError:
                raise ValueError(
                    f"Unknown retry strategy '{key}'. "
                    f"Expected one of: {', '.join(s.value for s in RetryStrategy)}"
                ) from None
            if not callable(handler):
                raise ValueError(f"Handler for '{strategy.value}' is not callable")
            self.handlers[strategy] = handler
        self.state = ExecutorState.IDLE

    async def _notify(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            await _maybe_await(callback(*args))
        except Exception:
            logger.warning("Retry callback %s raised, ignoring", getattr(callback, "__name__", callback), exc_info=True)

    async def _progress(self, message: str, context: RetryContext) -> None:
        logger.info(message)
        await self._notify(self.config.on_progress, message, context)

    def _known_keys(self, context: RetryContext) -> set[str]:
        keys = {e.key for e in context.current_errors}
        for attempt in context.attempt_history:
            keys.update(e.key for e in attempt.errors)
        return keys

    def _accepted_fixes(self, context: RetryContext, fixes: list[AppliedFix]) -> list[AppliedFix]:
        known = self._known_keys(context)
        accepted = []
        for fix in fixes:
            if fix.error_code in known:
                accepted.append(fix)
            else:
                logger.warning(
                    "Dropping fix %s: error '%s' was never reported in this session",
                    fix.id, fix.error_code,
                )
        return accepted

    async def _run_strategy(self, context: RetryContext, decision: RetryDecision) -> RetryContext:
        """Run one handler and fold its outcome into a new context."""
        handler = self.handlers[decision.strategy]
        started = time.time()
        try:
            outcome = _to_strategy_result(await _maybe_await(handler(context, self.config)))
        except Exception as exc:
            logger.error("Strategy %s failed: %s", decision.strategy.value, exc, exc_info=True)
            context = record_attempt(
                context, False, context.current_errors, [], _elapsed_ms(started),
                strategy=decision.strategy,
            )
            await self._progress(f"Strategy {decision.strategy.value} failed: {exc}", context)
            return context

        fixes = self._accepted_fixes(context, outcome.fixes)
        duration = outcome.duration_ms or _elapsed_ms(started)
        succeeded = outcome.success or not outcome.errors
        context = record_attempt(
            context, succeeded, outcome.errors, fixes, duration, strategy=decision.strategy,
        )
        context = update_errors(context, outcome.errors)
        if outcome.message:
            logger.info("Strategy %s: %s", decision.strategy.value, outcome.message)
        return context

    async def run(self, operation: Operation) -> RetryResult:
        """
        Run *operation* and retry until it is clean or the budget is spent.

        Parameters
        ----------
        operation : async callable
            Returns the current errors (list, object with .errors, or dict).

        Returns
        -------
        RetryResult
        """
        self.state = ExecutorState.RUNNING
        session_start = time.time()
        context = create_retry_context(self.config)

        initial_errors = _extract_errors(await operation())
        context = update_errors(context, initial_errors)
        if not initial_errors:
            logger.info("Operation clean on first run, no retry needed")
            return self._finish_success(context, session_start)

        context = record_attempt(context, False, initial_errors, [], _elapsed_ms(session_start))
        logger.info("Initial run reported %d error(s), starting retry loop", len(initial_errors))
        await self._notify(self.config.on_retry_start, context)

        decision: Optional[RetryDecision] = None
        first_iteration = True
        while context.attempt < context.max_attempts:
            decision = analyze_and_decide(context, self.config)
            if not decision.should_retry:
                logger.info("Stopping retries: %s", decision.reason)
                if decision.strategy == RetryStrategy.ESCALATE:
                    context = update_strategy(context, RetryStrategy.ESCALATE)
                break

            context = update_strategy(context, decision.strategy)
            await self._progress(
                f"Retry {context.attempt + 1}/{context.max_attempts} "
                f"[{decision.strategy.value}]: {decision.reason}",
                context,
            )

            if not first_iteration and self.config.retry_delay_ms > 0:
                await asyncio.sleep(self.config.retry_delay_ms / 1000)
            first_iteration = False

            context = await self._run_strategy(context, decision)
            latest = context.attempt_history[-1]
            if latest.succeeded:
                await self._notify(self.config.on_retry_complete, context, True)
                return self._finish_success(context, session_start)

        escalated = (
            decision is not None
            and not decision.should_retry
            and context.attempt < context.max_attempts
        )
        context = update_strategy(context, RetryStrategy.ESCALATE)
        await self._notify(self.config.on_retry_complete, context, False)
        return self._finish_failure(context, session_start, escalated)

    def _finish_success(self, context: RetryContext, started: float) -> RetryResult:
        self.state = ExecutorState.SUCCEEDED
        return RetryResult(
            success=True,
            status=RetryStatus.SUCCEEDED,
            total_attempts=context.attempt,
            context=context,
            final_errors=[],
            all_fixes=list(context.applied_fixes),
            duration_ms=_elapsed_ms(started),
            needs_human_review=False,
            summary=f"Successfully fixed all errors in {context.attempt} attempt(s)",
        )

    def _finish_failure(self, context: RetryContext, started: float, escalated: bool) -> RetryResult:
        self.state = ExecutorState.ESCALATED if escalated else ExecutorState.EXHAUSTED
        reason = "Escalated: no progress" if escalated else f"Failed after {context.attempt} attempts"
        logger.warning("%s, %d error(s) remain", reason, len(context.current_errors))
        logger.debug("Retry report:\n%s", generate_retry_report(context))
        return RetryResult(
            success=False,
            status=RetryStatus.ESCALATED if escalated else RetryStatus.EXHAUSTED,
            total_attempts=context.attempt,
            context=context,
            final_errors=list(context.current_errors),
            all_fixes=list(context.applied_fixes),
            duration_ms=_elapsed_ms(started),
            needs_human_review=True,
            summary=f"{reason}. {len(context.current_errors)} errors remain.",
        )


# ---------------------------------------------------------------------------
# Functional entry points
# ---------------------------------------------------------------------------
async def execute_with_retry(
    operation: Operation,
    config: Optional[RetryConfig] = None,
    strategy_handlers: Optional[dict[Any, StrategyHandler]] = None,
) -> RetryResult:
    return await RetryExecutor(config, strategy_handlers).run(operation)


def create_retry_wrapper(
    config: Optional[RetryConfig] = None,
    strategy_handlers: Optional[dict[Any, StrategyHandler]] = None,
):
    """
    Build a function that retries any operation given an error extractor.

    The returned coroutine function yields (RetryResult, last raw result).
    """
    async def run(operation: Callable[[], Awaitable[Any]], error_extractor: Callable[[Any], list]):
        last_result: dict[str, Any] = {}

        async def wrapped():
            last_result["value"] = await operation()
            return error_extractor(last_result["value"])

        result = await execute_with_retry(wrapped, config, strategy_handlers)
        return result, last_result.get("value")

    return run


def get_retry_stats(result: RetryResult) -> dict:
    """Error reduction %, fix success rate and the strategies actually used."""
    context = result.context
    initial = len(context.attempt_history[0].errors) if context.attempt_history else 0
    final = len(result.final_errors)
    reduction = ((initial - final) / initial) * 100 if initial else 0.0

    total_fixes = len(context.applied_fixes)
    successful = sum(1 for f in context.applied_fixes if f.successful)
    success_rate = (successful / total_fixes) * 100 if total_fixes else 0.0

    strategies: list[RetryStrategy] = []
    for attempt in context.attempt_history:
        if attempt.strategy and attempt.strategy not in strategies:
            strategies.append(attempt.strategy)

    return {
        "total_attempts": result.total_attempts,
        "total_duration_ms": result.duration_ms,
        "error_reduction": reduction,
        "fix_success_rate": success_rate,
        "strategies_used": strategies,
    }
