"""
Metro Parser
============
Converts Metro bundler output into MetroError records.

Pipeline:
    1. Split output into blocks at boundary keywords that start a line:
       "error:", "Unable to resolve", "SyntaxError"
    2. Drop the preamble before the first boundary
    3. Classify each block through a regex waterfall:
           resolve   → Unable to resolve module X from Y
           syntax    → SyntaxError ... (line:col), file from a "path:" prefix
                       or an "in <path>" line
           transform → TransformError / babel transform failures
    4. Anything else with content after the keyword becomes "unknown"

Contract:
    - Bundler output has no stable grammar; every field except `type` and
      `message` is best-effort.
    - Tolerant: partial results on parse failure, never crashes.
"""
import re
import logging
from dataclasses import dataclass
from typing import Optional

from fixloop.utils.path_utils import normalize_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetroError:
    type: str
    file: str
    line: Optional[int]
    column: Optional[int]
    message: str
    module: Optional[str] = None


# ---------------------------------------------------------------------------
# Block Splitting
# ---------------------------------------------------------------------------
_BOUNDARY = re.compile(
    r"^(?=[ \t]*(?:error:|unable to resolve|syntaxerror))",
    re.IGNORECASE | re.MULTILINE,
)
_BOUNDARY_PREFIX = re.compile(
    r"^\s*(?:error:\s*)?", re.IGNORECASE
)
_STARTS_WITH_BOUNDARY = re.compile(
    r"^\s*(?:error:|unable to resolve|syntaxerror)", re.IGNORECASE
)


def _split_blocks(output: str) -> list[str]:
    blocks = [b for b in _BOUNDARY.split(output) if b.strip()]
    return [b.strip() for b in blocks if _STARTS_WITH_BOUNDARY.match(b)]


# ---------------------------------------------------------------------------
# Classification Waterfall
# ---------------------------------------------------------------------------
_RESOLVE = re.compile(
    r"unable to resolve module\s+['\"`]?([^'\"`\s]+)['\"`]?"
    r"(?:\s+from\s+['\"`]?([^'\"`\n]+?)['\"`]?)?(?::|\s*$|\s)",
    re.IGNORECASE | re.MULTILINE,
)

_SYNTAX = re.compile(
    r"SyntaxError:\s*(?:([^\s:()]+\.[cm]?[jt]sx?):\s*)?(.+?)\s*\((\d+):(\d+)\)",
    re.IGNORECASE,
)
_SYNTAX_NO_LOCATION = re.compile(
    r"SyntaxError:\s*(?:([^\s:()]+\.[cm]?[jt]sx?):\s*)?(.+)", re.IGNORECASE
)
_IN_FILE = re.compile(r"^\s*(?:in|at)\s+([^\s()]+\.[cm]?[jt]sx?)", re.IGNORECASE | re.MULTILINE)

_TRANSFORM = re.compile(
    r"(?:TransformError|transform(?:ing)? failed|babel)[^:\n]*:?\s*"
    r"(?:([^\s:()]+\.[cm]?[jt]sx?):\s*)?(.*)",
    re.IGNORECASE,
)


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def _strip_error_prefix(text: str) -> str:
    return _BOUNDARY_PREFIX.sub("", text, count=1).strip()


def _classify_block(block: str) -> Optional[MetroError]:
    m = _RESOLVE.search(block)
    if m:
        return MetroError(
            type="resolve",
            file=normalize_path(m.group(2) or ""),
            line=None,
            column=None,
            message=_strip_error_prefix(_first_line(block)),
            module=m.group(1),
        )

    m = _SYNTAX.search(block)
    if m:
        file_path = m.group(1)
        if not file_path:
            in_match = _IN_FILE.search(block)
            file_path = in_match.group(1) if in_match else ""
        return MetroError(
            type="syntax",
            file=normalize_path(file_path),
            line=int(m.group(3)),
            column=int(m.group(4)),
            message=f"SyntaxError: {m.group(2).strip()}",
        )

    m = _SYNTAX_NO_LOCATION.search(block)
    if m and _strip_error_prefix(_first_line(block)).lower().startswith("syntaxerror"):
        in_match = _IN_FILE.search(block)
        file_path = m.group(1) or (in_match.group(1) if in_match else "")
        return MetroError(
            type="syntax",
            file=normalize_path(file_path),
            line=None,
            column=None,
            message=f"SyntaxError: {m.group(2).strip()}",
        )

    m = _TRANSFORM.search(block)
    if m:
        in_match = _IN_FILE.search(block)
        file_path = m.group(1) or (in_match.group(1) if in_match else "")
        return MetroError(
            type="transform",
            file=normalize_path(file_path),
            line=None,
            column=None,
            message=_strip_error_prefix(_first_line(block)),
        )

    message = _strip_error_prefix(_first_line(block))
    if not message:
        return None
    in_match = _IN_FILE.search(block)
    return MetroError(
        type="unknown",
        file=normalize_path(in_match.group(1)) if in_match else "",
        line=None,
        column=None,
        message=message,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_metro_output(output: str) -> list[MetroError]:
    """
    Parse raw Metro bundler output.

    Parameters
    ----------
    output : str
        Bundler stdout/stderr.

    Returns
    -------
    list[MetroError]
        One record per error block, in input order.
    """
    if not output or not output.strip():
        return []

    errors: list[MetroError] = []
    try:
        for block in _split_blocks(output):
            record = _classify_block(block)
            if record:
                errors.append(record)
    except Exception:
        logger.warning("Metro parse aborted, returning partial results", exc_info=True)
    return errors
