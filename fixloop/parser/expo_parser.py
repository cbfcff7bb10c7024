"""
Expo Parser
===========
Converts `expo prebuild` / `expo doctor` / config-plugin output into
ExpoError records.

Blocks start at "Error:", "Warning:" or "CommandError:" at the beginning
of a line. Each block is typed by keyword, first hit wins:

    config     — app.json / app.config / bundleIdentifier / android.package
    plugin     — config plugin failures
    prebuild   — native project generation
    sdk        — SDK version mismatches
    dependency — packages that do not match the installed SDK
    unknown    — everything else

Contract:
    - Severity comes from the block prefix ("Warning:" → warning).
    - Tolerant: partial results on parse failure, never crashes.
"""
import re
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpoError:
    type: str
    severity: str
    message: str
    detail: Optional[str] = None
    file: Optional[str] = None


_BOUNDARY = re.compile(
    r"^(?=[ \t]*(?:CommandError:|Error:|Warning:))", re.MULTILINE
)
_PREFIX = re.compile(r"^\s*(CommandError|Error|Warning):\s*")

# Each entry: (compiled_regex, type)
_TYPE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"plugin", re.I), "plugin"),
    (re.compile(r"app\.json|app\.config|bundleIdentifier|android\.package|\bconfig\b", re.I), "config"),
    (re.compile(r"prebuild|native project|ios/|android/", re.I), "prebuild"),
    (re.compile(r"sdk\s*(?:version)?|expo sdk", re.I), "sdk"),
    (re.compile(r"dependenc|package .* (?:expected|version)|npm install|yarn add", re.I), "dependency"),
]

_CONFIG_FILE = re.compile(r"\b(app\.json|app\.config\.(?:js|ts))\b")


def _parse_block(block: str) -> Optional[ExpoError]:
    m = _PREFIX.match(block)
    if not m:
        return None
    severity = "warning" if m.group(1) == "Warning" else "error"
    body = block[m.end():].strip()
    if not body:
        return None

    lines = [line.strip() for line in body.splitlines() if line.strip()]
    message = lines[0]
    detail = "\n".join(lines[1:]) or None

    error_type = "unknown"
    for pattern, candidate in _TYPE_PATTERNS:
        if pattern.search(message):
            error_type = candidate
            break

    file_match = _CONFIG_FILE.search(body)
    return ExpoError(
        type=error_type,
        severity=severity,
        message=message,
        detail=detail,
        file=file_match.group(1) if file_match else None,
    )


def parse_expo_output(output: str) -> list[ExpoError]:
    """Parse Expo CLI output. Empty or unrecognised input returns []."""
    if not output or not output.strip():
        return []

    errors: list[ExpoError] = []
    try:
        for block in _BOUNDARY.split(output):
            record = _parse_block(block)
            if record:
                errors.append(record)
    except Exception:
        logger.warning("Expo parse aborted, returning partial results", exc_info=True)
    return errors
