"""
Human Report
============
Console and Markdown renderings of an ErrorReport.

Every function here is a pure function of its argument: no I/O, no clock
reads, no module state. Rendering the same report twice gives the same
string.
"""
from fixloop.formatters.ai_report import report_to_json
from fixloop.models.report import EnrichedError, ErrorReport

RULE_WIDTH = 60


class Colors:
    """ANSI colour codes for terminal output."""
    reset = "\x1b[0m"
    red = "\x1b[31m"
    yellow = "\x1b[33m"
    green = "\x1b[32m"
    blue = "\x1b[34m"
    gray = "\x1b[90m"
    bold = "\x1b[1m"


def _location(error: EnrichedError) -> str:
    location = error.file or "unknown file"
    if error.line:
        location += f":{error.line}"
        if error.column:
            location += f":{error.column}"
    return location


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------
def format_error_for_console(error: EnrichedError) -> str:
    c = Colors
    is_error = error.severity == "error"
    color = c.red if is_error else c.yellow
    icon = "✗" if is_error else "⚠"

    lines = [f"{color}{icon} {error.type.upper()}{c.reset}"]

    location = f"  {c.bold}{error.file or 'unknown file'}{c.reset}"
    if error.line:
        location += f":{error.line}"
        if error.column:
            location += f":{error.column}"
    lines.append(location)

    lines.append(f"  {error.message}")
    if error.code:
        lines.append(f"  {c.gray}({error.code}){c.reset}")

    if error.context:
        lines.append("")
        lines.append(f"{c.gray}{error.context}{c.reset}")

    if error.suggestion:
        lines.append("")
        lines.append(f"  {c.green}💡 {error.suggestion.description}{c.reset}")
        if error.suggestion.example:
            lines.append(f"  {c.gray}   Example: {error.suggestion.example}{c.reset}")
        if error.auto_fixable:
            lines.append(f"  {c.blue}   ⚡ Auto-fixable{c.reset}")

    return "\n".join(lines)


def format_report_for_console(report: ErrorReport) -> str:
    c = Colors
    lines = ["", "═" * RULE_WIDTH]
    if report.success and not report.errors:
        lines.append(f"{c.green}{c.bold}✓ All checks passed!{c.reset}")
    elif report.success:
        lines.append(f"{c.yellow}{c.bold}{report.summary}{c.reset}")
    else:
        lines.append(f"{c.red}{c.bold}{report.summary}{c.reset}")
    lines.append("═" * RULE_WIDTH)
    lines.append("")

    for error in report.errors:
        lines.append(format_error_for_console(error))
        lines.append("")

    if report.errors:
        lines.append("-" * RULE_WIDTH)
        lines.append(f"{report.total_errors} error(s), {report.total_warnings} warning(s)")
        auto_fix_count = sum(1 for e in report.errors if e.auto_fixable)
        if auto_fix_count:
            lines.append(f"{c.blue}{auto_fix_count} error(s) can be auto-fixed{c.reset}")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------
def format_report_as_markdown(report: ErrorReport) -> str:
    """Group by file, 🔴 errors / 🟡 warnings, auto-fixable section last."""
    if report.success and not report.errors:
        return "## ✅ Validation Passed\n\nNo errors found. The code is ready to build.\n"

    lines: list[str] = []
    if report.success:
        lines.append("## ✅ Validation Passed With Warnings\n")
    else:
        lines.append("## ❌ Validation Failed\n")
    lines.append(f"**Summary:** {report.summary}\n")

    # dicts keep insertion order, so files appear in report order
    by_file: dict[str, list[EnrichedError]] = {}
    for error in report.errors:
        by_file.setdefault(error.file or "unknown file", []).append(error)

    for file_path, file_errors in by_file.items():
        lines.append(f"### `{file_path}`\n")
        for error in file_errors:
            icon = "🔴" if error.severity == "error" else "🟡"
            location = f"Line {error.line}" if error.line else "Location unknown"
            code = f" `{error.code}`" if error.code else ""
            lines.append(f"{icon} **{location}**{code}")
            lines.append(f"> {error.message}\n")

            if error.suggestion:
                lines.append(f"💡 **Suggestion:** {error.suggestion.description}")
                if error.suggestion.example:
                    lines.append(f"```typescript\n{error.suggestion.example}\n```")
                lines.append("")

            if error.context:
                lines.append("```typescript")
                lines.append(error.context)
                lines.append("```\n")

    auto_fixable = [e for e in report.errors if e.auto_fixable]
    if auto_fixable:
        lines.append("---\n")
        lines.append(f"### ⚡ Auto-Fixable Errors ({len(auto_fixable)})\n")
        for error in auto_fixable:
            lines.append(f"- `{_location(error)}`: {error.message}")
        lines.append("")

    return "\n".join(lines)


def format_error_as_markdown(error: EnrichedError) -> str:
    icon = "🔴" if error.severity == "error" else "🟡"
    lines = [f"{icon} **{error.file or 'unknown file'}**"]
    if error.line:
        lines.append(f"Line {error.line}{f':{error.column}' if error.column else ''}")
    lines.append(f"> {error.message}")
    if error.code:
        lines.append(f"Code: `{error.code}`")
    if error.suggestion:
        lines.append(f"\n💡 **Suggestion:** {error.suggestion.description}")
    if error.context:
        lines.append("\n```typescript")
        lines.append(error.context)
        lines.append("```")
    return "\n".join(lines)


def format_quick_summary(report: ErrorReport) -> str:
    if report.total_errors == 0 and report.total_warnings == 0:
        return "✅ No errors"
    parts = []
    if report.total_errors:
        parts.append(f"❌ {report.total_errors} error{'s' if report.total_errors > 1 else ''}")
    if report.total_warnings:
        parts.append(f"⚠️ {report.total_warnings} warning{'s' if report.total_warnings > 1 else ''}")
    return ", ".join(parts)


# ---------------------------------------------------------------------------
# Format selection
# ---------------------------------------------------------------------------
_RENDERERS = {
    "console": format_report_for_console,
    "markdown": format_report_as_markdown,
    "json": report_to_json,
}


def render_report(report: ErrorReport, fmt: str = "console") -> str:
    """Render *report* as console text, Markdown or JSON."""
    renderer = _RENDERERS.get(fmt)
    if renderer is None:
        raise ValueError(
            f"Unknown report format '{fmt}'. Expected one of: {', '.join(_RENDERERS)}"
        )
    return renderer(report)
