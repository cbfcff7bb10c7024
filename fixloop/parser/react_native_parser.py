"""
React Native Parser
===================
Converts React Native runtime output (red box, logbox, Metro console) into
ReactNativeError records.

Pipeline:
    1. Split at "Error:", "Warning:", "Invariant Violation", "Unhandled"
    2. Classify each block, first hit wins:
           component  → "in|at [component] Name (at file:line:col)"
           stylesheet → StyleSheet / style prop
           props      → Invalid / Failed prop
           hooks      → hook, useState, useEffect, useCallback
           navigation → navigation, screen, route, navigator
           platform   → Platform.OS / Platform.select
           unknown    → Invariant Violation with none of the above
       Blocks matching nothing are dropped.
    3. Message = first line that is not a stack frame, with the
       "Error:" / "Warning:" prefix removed.

Contract:
    - Tolerant: partial results on parse failure, never crashes.
"""
import re
import logging
from dataclasses import dataclass
from typing import Optional

from fixloop.utils.path_utils import normalize_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReactNativeError:
    type: str
    message: str
    severity: str = "error"
    component: Optional[str] = None
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    stack: Optional[str] = None


# ---------------------------------------------------------------------------
# Block Patterns
# ---------------------------------------------------------------------------
_BOUNDARY = re.compile(
    r"(?=\b(?:Error:|Warning:|Invariant Violation|Unhandled))", re.IGNORECASE
)

_COMPONENT = re.compile(
    r"\b(?:in|at)\s+(?:component\s+)?([A-Z]\w+)(?:\s+\(at\s+(.+?):(\d+):(\d+)\))?"
)

# Each entry: (compiled_regex, type); evaluated in order after the component check
_TYPE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"StyleSheet|style\s+prop", re.I), "stylesheet"),
    (re.compile(r"(?:Invalid|Failed)\s+prop", re.I), "props"),
    (re.compile(r"hook|useState|useEffect|useCallback", re.I), "hooks"),
    (re.compile(r"navigation|screen|route|navigator", re.I), "navigation"),
    (re.compile(r"Platform\.(?:OS|select)", re.I), "platform"),
    (re.compile(r"Invariant Violation", re.I), "unknown"),
]

_STACK_LINE = re.compile(r"^\s*(?:at|in)\s+")
_MESSAGE_PREFIX = re.compile(r"^(?:Error|Warning):\s*", re.I)
_WARNING_BLOCK = re.compile(r"^\s*Warning:", re.I)

_DESCRIPTIONS: dict[str, str] = {
    "component": "React component error",
    "stylesheet": "StyleSheet or style prop error",
    "props": "Component props validation error",
    "hooks": "React Hooks usage error",
    "navigation": "Navigation/routing error",
    "platform": "Platform-specific code error",
    "unknown": "Unknown React Native error",
}

_CRITICAL_TYPES = {"component", "hooks", "navigation"}


# ---------------------------------------------------------------------------
# Known runtime messages
# ---------------------------------------------------------------------------
# Each entry: (compiled_regex, explanation, fix, example)
REACT_NATIVE_ERROR_PATTERNS: list[tuple[re.Pattern, str, str, Optional[str]]] = [
    (re.compile(r"Text strings must be rendered within a <Text> component", re.I),
     "All text must be wrapped in a <Text> component",
     "Wrap the text in <Text>...</Text>",
     "<Text>Your text here</Text>"),
    (re.compile(r"Invalid prop `(.+?)` of type `(.+?)` supplied to `(.+?)`"),
     "Component received incorrect prop type",
     "Check the prop types being passed to the component",
     None),
    (re.compile(r"undefined is not an object \(evaluating '(.+?)'\)"),
     "Attempting to access property on undefined object",
     "Add null/undefined checks before accessing properties",
     "obj?.property or if (obj) { obj.property }"),
    (re.compile(r"Cannot read propert(?:y|ies) (?:of )?'?(.+?)'? of (null|undefined)"),
     "Attempting to access property on null/undefined",
     "Add null/undefined checks before accessing properties",
     "obj?.property or if (obj) { obj.property }"),
    (re.compile(r"ViewPropTypes.*deprecated", re.I),
     "ViewPropTypes is deprecated",
     "Use ViewProps from react-native instead",
     "import { ViewProps } from 'react-native';"),
    (re.compile(r"Hooks can only be called inside.*function component", re.I),
     "Hooks must be called at the top level of function components",
     "Move hook calls outside of conditionals, loops, or nested functions",
     None),
    (re.compile(r"Rendered (more|fewer) hooks than during the previous render", re.I),
     "Hooks must be called in the same order every render",
     "Ensure hooks are not called conditionally",
     None),
    (re.compile(r"The screen '(.+?)' is not in the navigator", re.I),
     "Screen not registered in navigation",
     "Register the screen in your navigator configuration",
     None),
    (re.compile(r"Can(?:'t|not) (?:perform a React state )?update.*unmounted component", re.I),
     "State update on unmounted component",
     "Cancel async operations or use cleanup in useEffect",
     "useEffect(() => { let mounted = true; ... return () => { mounted = false; }; }, []);"),
]


def _extract_message(block: str) -> str:
    lines = block.splitlines()
    for line in lines:
        trimmed = line.strip()
        if trimmed and not _STACK_LINE.match(trimmed):
            return _MESSAGE_PREFIX.sub("", trimmed)
    return lines[0].strip() if lines and lines[0].strip() else "Unknown error"


def _extract_stack(block: str) -> Optional[str]:
    frames = [line.rstrip() for line in block.splitlines() if _STACK_LINE.match(line)]
    return "\n".join(frames) if frames else None


def _parse_block(block: str) -> Optional[ReactNativeError]:
    if not block.strip():
        return None

    severity = "warning" if _WARNING_BLOCK.match(block) else "error"
    message = _extract_message(block)

    m = _COMPONENT.search(block)
    if m:
        return ReactNativeError(
            type="component",
            message=message,
            severity=severity,
            component=m.group(1),
            file=normalize_path(m.group(2)) if m.group(2) else None,
            line=int(m.group(3)) if m.group(3) else None,
            column=int(m.group(4)) if m.group(4) else None,
            stack=_extract_stack(block),
        )

    for pattern, error_type in _TYPE_PATTERNS:
        if pattern.search(block):
            return ReactNativeError(
                type=error_type,
                message=message,
                severity=severity,
                stack=_extract_stack(block),
            )
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_react_native_error(output: str) -> list[ReactNativeError]:
    """
    Parse React Native runtime output.

    Parameters
    ----------
    output : str
        Device log / red box text.

    Returns
    -------
    list[ReactNativeError]
        One record per recognised block, in input order.
    """
    if not output or not output.strip():
        return []

    errors: list[ReactNativeError] = []
    try:
        for block in _BOUNDARY.split(output):
            record = _parse_block(block)
            if record:
                errors.append(record)
    except Exception:
        logger.warning("React Native parse aborted, returning partial results", exc_info=True)
    return errors


def get_react_native_error_description(error_type: str) -> str:
    return _DESCRIPTIONS.get(error_type, _DESCRIPTIONS["unknown"])


def get_react_native_error_suggestion(message: str) -> Optional[dict]:
    """Return {"description", "example"} for a known runtime message, else None."""
    for pattern, _explanation, fix, example in REACT_NATIVE_ERROR_PATTERNS:
        if pattern.search(message):
            return {"description": fix, "example": example}
    return None


def is_react_native_error_critical(error: ReactNativeError) -> bool:
    """Component, hooks and navigation failures take the app down."""
    return error.type in _CRITICAL_TYPES
