"""
AI Report
=========
Machine-oriented views of a diagnostic set.

Outputs:
    ErrorReport        — full report: counts, enriched errors, summary
    minimized dict     — the same report without context snippets, doc
                         links and suggestion examples (smaller prompts)
    fix prompt         — natural-language "fix these errors" text listing
                         at most AI_PROMPT_MAX_ERRORS errors

DETERMINISM CONTRACT:
  - No I/O, no environment reads, no model calls.
  - The only clock read is the report timestamp in create_ai_error_report();
    every renderer is a pure function of the report it is given.

BUILDABILITY:
  success and buildable are both `total_errors == 0`. Warnings are counted
  and shown but never block.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from fixloop.core.config import AI_PROMPT_MAX_ERRORS
from fixloop.enrichers.classification import severity_level_of
from fixloop.enrichers.context import CodeContext, format_code_context
from fixloop.models.report import EnrichedError, ErrorReport
from fixloop.models.suggestion import DocLink, FixSuggestion


@dataclass(frozen=True)
class Enrichment:
    """What the enricher pipeline found for one diagnostic. Every field may be empty."""
    suggestion: Optional[FixSuggestion] = None
    context: Optional[CodeContext] = None
    docs: list[DocLink] = field(default_factory=list)
    category: str = "unknown"


# ---------------------------------------------------------------------------
# Per-error formatting
# ---------------------------------------------------------------------------
def format_error_for_ai(base: dict[str, Any], enrichment: Optional[Enrichment] = None) -> EnrichedError:
    """
    Merge a parsed diagnostic with its enrichment.

    Parameters
    ----------
    base : dict
        type, severity, file, line, column, message, code.
    enrichment : Enrichment or None
        Suggestion, context, docs and category. None means nothing found.

    Returns
    -------
    EnrichedError
    """
    enrichment = enrichment or Enrichment()
    severity = base.get("severity") or "error"
    context = format_code_context(enrichment.context) or None
    return EnrichedError(
        type=base.get("type") or "unknown",
        severity=severity,
        file=base.get("file") or "",
        line=base.get("line"),
        column=base.get("column"),
        message=base.get("message") or "",
        code=base.get("code") or None,
        category=enrichment.category or "unknown",
        severity_level=severity_level_of(enrichment.category, severity),
        suggestion=enrichment.suggestion,
        context=context,
        docs=list(enrichment.docs),
        auto_fixable=bool(enrichment.suggestion and enrichment.suggestion.auto_fixable),
    )


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------
def create_summary_text(errors: list[EnrichedError]) -> str:
    """One line: '✓ All validation checks passed' or '✗ Found 2 errors, 1 warning'."""
    if not errors:
        return "✓ All validation checks passed"
    error_count = sum(1 for e in errors if e.severity == "error")
    warning_count = sum(1 for e in errors if e.severity == "warning")
    parts = []
    if error_count:
        parts.append(f"{error_count} error{'s' if error_count != 1 else ''}")
    if warning_count:
        parts.append(f"{warning_count} warning{'s' if warning_count != 1 else ''}")
    return f"✗ Found {', '.join(parts)}"


def create_ai_error_report(errors: list[EnrichedError], timestamp: Optional[str] = None) -> ErrorReport:
    """
    Aggregate enriched errors into an ErrorReport.

    An empty list yields success=True with zero counts.
    """
    error_count = sum(1 for e in errors if e.severity == "error")
    warning_count = sum(1 for e in errors if e.severity == "warning")
    return ErrorReport(
        success=error_count == 0,
        total_errors=error_count,
        total_warnings=warning_count,
        errors=list(errors),
        summary=create_summary_text(errors),
        timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        buildable=error_count == 0,
    )


def minimize_report(report: ErrorReport) -> dict[str, Any]:
    """Drop context, docs and suggestion examples; omit empty fields."""
    errors = []
    for e in report.errors:
        item: dict[str, Any] = {
            "type": e.type,
            "severity": e.severity,
            "file": e.file,
            "message": e.message,
        }
        if e.line is not None:
            item["line"] = e.line
        if e.column is not None:
            item["column"] = e.column
        if e.code:
            item["code"] = e.code
        if e.category != "unknown":
            item["category"] = e.category
        if e.suggestion:
            item["fix"] = e.suggestion.description
        if e.auto_fixable:
            item["auto_fixable"] = True
        errors.append(item)
    return {
        "success": report.success,
        "total_errors": report.total_errors,
        "total_warnings": report.total_warnings,
        "errors": errors,
    }


def format_report_as_prompt(report: ErrorReport, max_errors: int = AI_PROMPT_MAX_ERRORS) -> str:
    """
    Render a "fix these errors" prompt.

    Only the first *max_errors* errors are listed; the rest are counted
    in a trailing line.
    """
    if report.success and not report.errors:
        return "The project builds cleanly. No fixes are needed."

    lines = [
        f"The project has {report.total_errors} error(s) and {report.total_warnings} warning(s).",
        "Fix the following issues without changing unrelated code:",
        "",
    ]
    shown = report.errors[:max_errors]
    for index, e in enumerate(shown, start=1):
        location = e.file or "unknown file"
        if e.line is not None:
            location += f":{e.line}"
            if e.column is not None:
                location += f":{e.column}"
        code = f" [{e.code}]" if e.code else ""
        lines.append(f"{index}. {location} - {e.severity}{code}: {e.message}")
        if e.suggestion:
            lines.append(f"   Suggested fix: {e.suggestion.description}")
            if e.suggestion.example:
                lines.append(f"   Example: {e.suggestion.example}")

    remaining = len(report.errors) - len(shown)
    if remaining > 0:
        lines.append("")
        lines.append(f"... and {remaining} more issue(s). Fix the ones above first.")
    return "\n".join(lines)


def report_to_json(report: ErrorReport) -> str:
    return json.dumps(report.model_dump(mode="json"), indent=2)
