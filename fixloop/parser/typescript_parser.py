"""
TypeScript Parser
=================
Converts `tsc` output into TypeScriptError records.

Grammars:
    default  — src/App.tsx(15,5): error TS2304: Cannot find name 'React'.
    --pretty — src/App.tsx:15:5 - error TS2304: Cannot find name 'React'.

Contract:
    - One record per matching line, in input order.
    - file / line / column / code / message preserved as captured
      (paths get forward slashes, nothing else changes).
    - Lines that match neither grammar are skipped.
    - Tolerant: partial results on parse failure, never crashes.
"""
import re
import logging
from dataclasses import dataclass
from typing import Optional

from fixloop.enrichers.classification import classify_typescript_code, severity_level_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeScriptError:
    file: str
    line: int
    column: int
    severity: str
    code: str
    message: str


# ---------------------------------------------------------------------------
# Line Patterns
# ---------------------------------------------------------------------------
_TSC_LINE = re.compile(
    r"^(.+?)\((\d+),(\d+)\):\s+(error|warning)\s+(TS\d+):\s+(.+)$"
)

_TSC_PRETTY_LINE = re.compile(
    r"^(.+?):(\d+):(\d+)\s+-\s+(error|warning)\s+(TS\d+):\s+(.+)$"
)

# ANSI colour codes emitted by `tsc --pretty`
_ANSI = re.compile(r"\x1b\[[0-9;]*m")


def _match_line(line: str) -> Optional[TypeScriptError]:
    for pattern in (_TSC_LINE, _TSC_PRETTY_LINE):
        m = pattern.match(line)
        if m:
            return TypeScriptError(
                file=m.group(1).replace("\\", "/"),
                line=int(m.group(2)),
                column=int(m.group(3)),
                severity=m.group(4),
                code=m.group(5),
                message=m.group(6).strip(),
            )
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_typescript_output(output: str) -> list[TypeScriptError]:
    """
    Parse raw `tsc --noEmit` output.

    Parameters
    ----------
    output : str
        Full stdout/stderr of the type-checker.

    Returns
    -------
    list[TypeScriptError]
        Records in input order. Empty when nothing matched.
    """
    if not output or not output.strip():
        return []

    errors: list[TypeScriptError] = []
    try:
        for raw_line in output.splitlines():
            line = _ANSI.sub("", raw_line).strip()
            if not line:
                continue
            record = _match_line(line)
            if record:
                errors.append(record)
    except Exception:
        logger.warning("TypeScript parse aborted, returning partial results", exc_info=True)

    if not errors:
        logger.debug("No TypeScript diagnostics found in %d chars of output", len(output))
    return errors


def get_error_category(code: str) -> str:
    return classify_typescript_code(code)


def get_error_severity_level(code: str) -> str:
    """critical / high / medium / low for a TypeScript code."""
    return severity_level_of(classify_typescript_code(code))
