"""
ESLint Parser
=============
Converts ESLint output into ESLintError records.

Formats:
    json    — `eslint -f json`: [{filePath, messages: [{ruleId, severity,
              message, line, column}]}]
    stylish — the default text formatter:

        /app/src/App.tsx
          12:7  error    'foo' is not defined  no-undef
          20:1  warning  Missing semicolon     semi

        ✖ 2 problems (1 error, 1 warning)

Severity normalization:
    2 → "error", 1 → "warning", anything else is dropped (0 = rule off).

Contract:
    - Invalid JSON or an unexpected shape → [] (logged at DEBUG).
    - Tolerant: partial results on parse failure, never crashes.
"""
import re
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from fixloop.enrichers.classification import classify_eslint_rule
from fixloop.utils.path_utils import normalize_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ESLintError:
    file: str
    line: Optional[int]
    column: Optional[int]
    severity: str
    rule_id: str
    message: str


_SEVERITY_MAP: dict[int, str] = {2: "error", 1: "warning"}

# "  12:7  error  message text  rule-id": the rule id is the last token
_STYLISH_ROW = re.compile(
    r"^\s+(\d+):(\d+)\s+(error|warning)\s+(.+?)(?:\s{2,}(\S+))?\s*$"
)
_STYLISH_SUMMARY = re.compile(r"^\s*[✖×x]\s+\d+\s+problems?", re.I)
_ANSI = re.compile(r"\x1b\[[0-9;]*m")


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


# ---------------------------------------------------------------------------
# JSON format
# ---------------------------------------------------------------------------
def parse_eslint_json_output(output: str) -> list[ESLintError]:
    """Parse `eslint -f json` output. Invalid input returns []."""
    if not output or not output.strip():
        return []
    try:
        payload = json.loads(output)
    except (ValueError, TypeError):
        logger.debug("ESLint output is not valid JSON")
        return []
    if not isinstance(payload, list):
        logger.debug("ESLint JSON root is %s, expected list", type(payload).__name__)
        return []

    errors: list[ESLintError] = []
    try:
        for file_result in payload:
            if not isinstance(file_result, dict):
                continue
            file_path = normalize_path(str(file_result.get("filePath") or ""))
            messages = file_result.get("messages") or []
            if not isinstance(messages, list):
                continue
            for msg in messages:
                if not isinstance(msg, dict):
                    continue
                severity = _SEVERITY_MAP.get(_as_int(msg.get("severity")))
                if severity is None:
                    continue
                errors.append(ESLintError(
                    file=file_path,
                    line=_as_int(msg.get("line")),
                    column=_as_int(msg.get("column")),
                    severity=severity,
                    rule_id=msg.get("ruleId") or "",
                    message=str(msg.get("message") or "").strip(),
                ))
    except Exception:
        logger.warning("ESLint JSON parse aborted, returning partial results", exc_info=True)
    return errors


# ---------------------------------------------------------------------------
# Stylish format
# ---------------------------------------------------------------------------
def parse_eslint_stylish_output(output: str) -> list[ESLintError]:
    """Parse the default ESLint text formatter. Rows before a file header are skipped."""
    if not output or not output.strip():
        return []

    errors: list[ESLintError] = []
    current_file: Optional[str] = None
    try:
        for raw_line in output.splitlines():
            line = _ANSI.sub("", raw_line).rstrip()
            if not line.strip() or _STYLISH_SUMMARY.match(line):
                continue
            m = _STYLISH_ROW.match(line)
            if m:
                if current_file is None:
                    continue
                errors.append(ESLintError(
                    file=current_file,
                    line=int(m.group(1)),
                    column=int(m.group(2)),
                    severity=m.group(3),
                    rule_id=m.group(5) or "",
                    message=m.group(4).strip(),
                ))
            elif not line.startswith((" ", "\t")):
                current_file = normalize_path(line)
    except Exception:
        logger.warning("ESLint stylish parse aborted, returning partial results", exc_info=True)
    return errors


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_eslint_output(output: str) -> list[ESLintError]:
    """Pick the JSON or stylish parser from the shape of the payload."""
    if not output or not output.strip():
        return []
    if output.lstrip().startswith("["):
        return parse_eslint_json_output(output)
    return parse_eslint_stylish_output(output)


def get_eslint_error_category(rule_id: str) -> str:
    return classify_eslint_rule(rule_id)
