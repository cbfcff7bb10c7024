"""
Integration
===========
Connects validation-stage output to the parser → enricher → formatter
pipeline, and bridges enriched errors into the retry loop.

Pipeline per source:
    1. Parse raw output with the source parser
    2. Read code context (best-effort)
    3. Look up suggestion, doc links and category
    4. Merge into an EnrichedError

Stage routing:
    Known stage names go straight to their source pipeline. Unknown names
    are auto-detected: each source has a cheap signature regex, checked in
    a fixed order (typescript, eslint, metro, expo, react-native), and
    every source whose signature matches runs its full parser. Overlapping
    records are allowed here; create_error_summary() drops duplicates by
    (severity, file, line, column, message).

Contract:
    - Never raises on tool output. Bad output yields fewer errors.
    - Reads source files only to build context snippets.
"""
import re
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Union

from fixloop.core.config import PROJECT_ROOT
from fixloop.core.constants import ErrorSource
from fixloop.enrichers.classification import classify
from fixloop.enrichers.context import get_code_context, get_code_context_with_pointer
from fixloop.enrichers.docs import get_contextual_doc_links, get_doc_links
from fixloop.enrichers.suggestions import get_generic_suggestion, get_suggestion
from fixloop.formatters.ai_report import Enrichment, create_ai_error_report, format_error_for_ai
from fixloop.formatters.human_report import render_report
from fixloop.models.error_record import ErrorRecord
from fixloop.models.report import EnrichedError, ErrorReport, RawError, StageDiagnostic, StageResult
from fixloop.parser.eslint_parser import (
    parse_eslint_json_output,
    parse_eslint_output,
    parse_eslint_stylish_output,
)
from fixloop.parser.expo_parser import parse_expo_output
from fixloop.parser.metro_parser import parse_metro_output
from fixloop.parser.react_native_parser import parse_react_native_error
from fixloop.parser.typescript_parser import parse_typescript_output
from fixloop.utils.error_signature import generate_location_signature

logger = logging.getLogger(__name__)


def _enrich(
    source: str,
    severity: str,
    file: str,
    line: Optional[int],
    column: Optional[int],
    message: str,
    code: Optional[str],
    project_root: str,
    category_key: Optional[str] = None,
) -> EnrichedError:
    """Run the enricher chain over one parsed record."""
    if line and column:
        context = get_code_context_with_pointer(file, line, column, project_root)
    else:
        context = get_code_context(file, line, project_root)

    enrichment = Enrichment(
        suggestion=get_suggestion(source, code, message),
        context=context,
        docs=get_doc_links(source, code, message, file),
        category=classify(source, category_key if category_key is not None else code),
    )
    return format_error_for_ai(
        {
            "type": source,
            "severity": severity,
            "file": file,
            "line": line,
            "column": column,
            "message": message,
            "code": code,
        },
        enrichment,
    )


# ---------------------------------------------------------------------------
# Per-source pipelines
# ---------------------------------------------------------------------------
def process_typescript_errors(output: str, project_root: str = PROJECT_ROOT) -> list[EnrichedError]:
    return [
        _enrich(ErrorSource.TYPESCRIPT, e.severity, e.file, e.line, e.column,
                e.message, e.code, project_root)
        for e in parse_typescript_output(output)
    ]


def process_eslint_errors(
    output: str,
    project_root: str = PROJECT_ROOT,
    is_json: Optional[bool] = None,
) -> list[EnrichedError]:
    """is_json=None picks the format from the payload shape."""
    if is_json is None:
        parsed = parse_eslint_output(output)
    elif is_json:
        parsed = parse_eslint_json_output(output)
    else:
        parsed = parse_eslint_stylish_output(output)
    return [
        _enrich(ErrorSource.ESLINT, e.severity, e.file, e.line, e.column,
                e.message, e.rule_id or None, project_root)
        for e in parsed
    ]


def process_metro_errors(output: str, project_root: str = PROJECT_ROOT) -> list[EnrichedError]:
    return [
        _enrich(ErrorSource.METRO, "error", e.file, e.line, e.column,
                e.message, None, project_root, category_key=e.type)
        for e in parse_metro_output(output)
    ]


def process_react_native_errors(output: str, project_root: str = PROJECT_ROOT) -> list[EnrichedError]:
    return [
        _enrich(ErrorSource.REACT_NATIVE, e.severity, e.file or "", e.line, e.column,
                e.message, None, project_root, category_key=e.type)
        for e in parse_react_native_error(output)
    ]


def process_expo_errors(output: str, project_root: str = PROJECT_ROOT) -> list[EnrichedError]:
    return [
        _enrich(ErrorSource.EXPO, e.severity, e.file or "app.json", None, None,
                e.message, None, project_root, category_key=e.type)
        for e in parse_expo_output(output)
    ]


_PROCESSORS: dict[str, Callable[[str, str], list[EnrichedError]]] = {
    ErrorSource.TYPESCRIPT: process_typescript_errors,
    ErrorSource.ESLINT: process_eslint_errors,
    ErrorSource.METRO: process_metro_errors,
    ErrorSource.REACT_NATIVE: process_react_native_errors,
    ErrorSource.EXPO: process_expo_errors,
}


def process_source(source: str, output: str, project_root: str = PROJECT_ROOT) -> list[EnrichedError]:
    """Run one source pipeline by name. Unknown sources yield []."""
    processor = _PROCESSORS.get(source)
    if processor is None:
        logger.warning("No pipeline for error source '%s'", source)
        return []
    return processor(output, project_root)


def process_all_errors(raw_errors: Iterable[RawError], project_root: str = PROJECT_ROOT) -> ErrorReport:
    collected: list[EnrichedError] = []
    for raw in raw_errors:
        collected.extend(process_source(raw.source, raw.raw_output, project_root))
    return create_ai_error_report(collected)


def create_enhanced_report(
    raw_errors: Iterable[RawError],
    project_root: str = PROJECT_ROOT,
    fmt: str = "console",
) -> str:
    return render_report(process_all_errors(raw_errors, project_root), fmt)


# ---------------------------------------------------------------------------
# Stage routing
# ---------------------------------------------------------------------------
STAGE_ROUTES: dict[str, str] = {
    "typescript": ErrorSource.TYPESCRIPT,
    "tsc": ErrorSource.TYPESCRIPT,
    "eslint": ErrorSource.ESLINT,
    "lint": ErrorSource.ESLINT,
    "metro": ErrorSource.METRO,
    "metro-bundle": ErrorSource.METRO,
    "react-native": ErrorSource.REACT_NATIVE,
    "runtime": ErrorSource.REACT_NATIVE,
    "expo-prebuild": ErrorSource.EXPO,
    "expo-doctor": ErrorSource.EXPO,
}

# Each entry: (signature regex, source); order is the detection priority
_SIGNATURES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\(\d+,\d+\):\s*(?:error|warning)\s+TS\d+|:\d+:\d+\s+-\s+error\s+TS\d+"),
     ErrorSource.TYPESCRIPT),
    (re.compile(r"^\s+\d+:\d+\s+(?:error|warning)\s|\"ruleId\"\s*:", re.MULTILINE),
     ErrorSource.ESLINT),
    (re.compile(r"unable to resolve|metro|bundler|bundling failed", re.I),
     ErrorSource.METRO),
    (re.compile(r"expo|prebuild|app\.json", re.I),
     ErrorSource.EXPO),
    (re.compile(r"react|component|invariant", re.I),
     ErrorSource.REACT_NATIVE),
]


def detect_sources(output: str) -> list[str]:
    """Sources whose signature matches *output*, in priority order."""
    return [source for pattern, source in _SIGNATURES if pattern.search(output)]


def auto_detect_and_process(output: str, project_root: str = PROJECT_ROOT) -> list[EnrichedError]:
    errors: list[EnrichedError] = []
    for source in detect_sources(output):
        found = process_source(source, output, project_root)
        logger.debug("Auto-detect: %s produced %d record(s)", source, len(found))
        errors.extend(found)
    return errors


def _passthrough(diagnostic: StageDiagnostic) -> EnrichedError:
    return EnrichedError(
        type=ErrorSource.UNKNOWN,
        severity=diagnostic.severity,
        file=diagnostic.file,
        line=diagnostic.line,
        column=diagnostic.column,
        message=diagnostic.message,
        code=diagnostic.rule,
        auto_fixable=False,
    )


def enhance_stage_errors(stage: StageResult, project_root: str = PROJECT_ROOT) -> list[EnrichedError]:
    """
    Turn one stage's output into enriched errors.

    Parameters
    ----------
    stage : StageResult
        Stage name, raw output (optional) and pre-parsed diagnostics.
    project_root : str
        Root for context lookup.

    Returns
    -------
    list[EnrichedError]
        Pre-parsed diagnostics unchanged when there is no raw output,
        otherwise the routed or auto-detected pipeline's output.
    """
    if not stage.output:
        return [_passthrough(d) for d in stage.errors]

    source = STAGE_ROUTES.get(stage.name.strip().lower())
    if source is not None:
        return process_source(source, stage.output, project_root)

    logger.info("Stage '%s' not recognised, auto-detecting error source", stage.name)
    return auto_detect_and_process(stage.output, project_root)


def deduplicate_errors(errors: Iterable[EnrichedError]) -> list[EnrichedError]:
    """Keep the first record per (severity, file, line, column, message)."""
    seen: set[str] = set()
    unique: list[EnrichedError] = []
    for error in errors:
        sig = generate_location_signature(
            error.severity, error.file, error.line, error.column, error.message
        )
        if sig in seen:
            continue
        seen.add(sig)
        unique.append(error)
    return unique


def collect_stage_errors(
    stages: Union[dict[str, StageResult], Iterable[StageResult]],
    project_root: str = PROJECT_ROOT,
) -> list[EnrichedError]:
    """Enriched, deduplicated errors from every failed stage."""
    stage_list = stages.values() if isinstance(stages, dict) else stages
    collected: list[EnrichedError] = []
    for stage in stage_list:
        if not stage.passed:
            collected.extend(enhance_stage_errors(stage, project_root))
    return deduplicate_errors(collected)


def create_error_summary(
    stages: Union[dict[str, StageResult], Iterable[StageResult]],
    project_root: str = PROJECT_ROOT,
    fmt: str = "console",
) -> str:
    report = create_ai_error_report(collect_stage_errors(stages, project_root))
    return render_report(report, fmt)


# ---------------------------------------------------------------------------
# Helpers for fixers
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ActionableFixes:
    auto_fixable: list[EnrichedError] = field(default_factory=list)
    manual_fixes: list[EnrichedError] = field(default_factory=list)
    needs_review: list[EnrichedError] = field(default_factory=list)


def get_actionable_fixes(errors: Iterable[EnrichedError]) -> ActionableFixes:
    auto_fixable, manual, review = [], [], []
    for error in errors:
        if error.auto_fixable:
            auto_fixable.append(error)
        elif error.suggestion and error.suggestion.action == "review":
            review.append(error)
        else:
            manual.append(error)
    return ActionableFixes(auto_fixable=auto_fixable, manual_fixes=manual, needs_review=review)


def generate_fix_instructions(errors: list[EnrichedError]) -> str:
    """Markdown instructions grouped by file, for a fixing agent."""
    if not errors:
        return "No errors to fix."

    lines = ["Please fix the following errors:", ""]
    by_file: dict[str, list[EnrichedError]] = {}
    for error in errors:
        by_file.setdefault(error.file or "unknown file", []).append(error)

    for file_path, file_errors in by_file.items():
        lines.append(f"## {file_path}")
        lines.append("")
        for error in file_errors:
            lines.append(f"- **Line {error.line or '?'}**: {error.message}")
            if error.suggestion:
                lines.append(f"  - Fix: {error.suggestion.description}")
                if error.suggestion.example:
                    lines.append(f"  - Example: `{error.suggestion.example}`")
            if error.context:
                lines.append("  ```typescript")
                lines.extend(f"  {ctx_line}" for ctx_line in error.context.splitlines())
                lines.append("  ```")
            lines.append("")
    return "\n".join(lines)


def has_critical_errors(errors: Iterable[EnrichedError]) -> bool:
    """Any error-severity record blocks deployment."""
    return any(e.severity == "error" for e in errors)


def get_error_stats(errors: list[EnrichedError]) -> dict:
    return {
        "total": len(errors),
        "by_type": dict(Counter(e.type for e in errors)),
        "by_severity": dict(Counter(e.severity for e in errors)),
        "by_category": dict(Counter(e.category for e in errors if e.category)),
        "auto_fixable_count": sum(1 for e in errors if e.auto_fixable),
    }


def enhance_validation_error(diagnostic: StageDiagnostic, project_root: str = PROJECT_ROOT) -> EnrichedError:
    """Enrich a pre-parsed diagnostic with generic suggestion, context and docs."""
    context = get_code_context(diagnostic.file, diagnostic.line, project_root) if diagnostic.line else None
    suggestion = get_generic_suggestion(diagnostic.message)
    return format_error_for_ai(
        {
            "type": ErrorSource.UNKNOWN,
            "severity": diagnostic.severity,
            "file": diagnostic.file,
            "line": diagnostic.line,
            "column": diagnostic.column,
            "message": diagnostic.message,
            "code": diagnostic.rule,
        },
        Enrichment(
            suggestion=suggestion,
            context=context,
            docs=get_contextual_doc_links(diagnostic.message, diagnostic.file),
        ),
    )


# ---------------------------------------------------------------------------
# Retry bridge
# ---------------------------------------------------------------------------
def to_error_record(error: EnrichedError) -> ErrorRecord:
    return ErrorRecord(
        source=error.type,
        severity=error.severity,
        file=error.file,
        line=error.line,
        column=error.column,
        message=error.message,
        code=error.code,
        category=error.category,
        fixable=error.auto_fixable,
        suggested_fix=error.suggestion.description if error.suggestion else None,
    )


def to_error_records(errors: Iterable[EnrichedError]) -> list[ErrorRecord]:
    """Blocking errors only; warnings never drive a retry."""
    return [to_error_record(e) for e in errors if e.severity == "error"]
