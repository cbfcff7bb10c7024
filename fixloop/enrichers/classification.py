"""
Classification
==============
Maps diagnostic codes to coarse categories and severity levels.

TypeScript categories:
    import, type, syntax, async, null-check, generic, return

ESLint categories:
    import, react, hooks, variables, types, style

Classification Strategy:
    1. EXPLICIT TABLE FIRST — exact code / rule-id lookup (fast path)
    2. REGEX PATTERNS SECOND — code ranges and rule-id prefixes
    3. Fallback to "unknown", never a guess

Categories feed the statistics in pipeline/integration.py and the
priority ordering the retry loop uses for `priority_errors`.
"""
import re
from typing import Optional

from fixloop.core.constants import ErrorSource

UNKNOWN_CATEGORY = "unknown"


# ---------------------------------------------------------------------------
# 1. Explicit Code Tables (fastest path)
# ---------------------------------------------------------------------------
_TYPESCRIPT_CODES: dict[str, str] = {
    # Module resolution / missing names
    "TS2304": "import",
    "TS2305": "import",
    "TS2306": "import",
    "TS2307": "import",
    "TS2614": "import",
    "TS7016": "import",
    # Assignability / shape mismatches
    "TS2322": "type",
    "TS2339": "type",
    "TS2345": "type",
    "TS2551": "type",
    "TS2741": "type",
    "TS2769": "type",
    "TS7006": "type",
    "TS7031": "type",
    # Parse errors
    "TS1002": "syntax",
    "TS1003": "syntax",
    "TS1005": "syntax",
    "TS1109": "syntax",
    "TS1128": "syntax",
    "TS1136": "syntax",
    "TS1161": "syntax",
    # Promises / await
    "TS1308": "async",
    "TS1378": "async",
    "TS2801": "async",
    "TS2794": "async",
    # Possibly null / undefined
    "TS2531": "null-check",
    "TS2532": "null-check",
    "TS2533": "null-check",
    "TS18047": "null-check",
    "TS18048": "null-check",
    # Generic parameters
    "TS2314": "generic",
    "TS2315": "generic",
    "TS2344": "generic",
    "TS2558": "generic",
    # Return paths
    "TS2355": "return",
    "TS2366": "return",
    "TS7030": "return",
}

_ESLINT_RULES: dict[str, str] = {
    "no-undef": "variables",
    "no-unused-vars": "variables",
    "no-shadow": "variables",
    "prefer-const": "variables",
    "no-var": "variables",
    "@typescript-eslint/no-unused-vars": "variables",
    "@typescript-eslint/no-explicit-any": "types",
    "@typescript-eslint/explicit-module-boundary-types": "types",
    "@typescript-eslint/ban-types": "types",
    "@typescript-eslint/no-non-null-assertion": "types",
    "react-hooks/rules-of-hooks": "hooks",
    "react-hooks/exhaustive-deps": "hooks",
    "react/jsx-no-undef": "react",
    "react/prop-types": "react",
    "react/jsx-key": "react",
    "react/react-in-jsx-scope": "react",
    "react-native/no-inline-styles": "style",
    "react-native/no-color-literals": "style",
    "import/no-unresolved": "import",
    "import/order": "import",
    "import/named": "import",
    "semi": "style",
    "quotes": "style",
    "indent": "style",
    "comma-dangle": "style",
    "prettier/prettier": "style",
}


# ---------------------------------------------------------------------------
# 2. Regex Patterns (second pass)
# ---------------------------------------------------------------------------
# Each entry: (compiled_regex, category)
_TYPESCRIPT_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^TS1\d{3}$"), "syntax"),
    (re.compile(r"^TS180(4[7-9]|50)$"), "null-check"),
    (re.compile(r"^TS23(0[0-9]|1[0-3])$"), "import"),
    (re.compile(r"^TS2[3-7]\d{2}$"), "type"),
]

_ESLINT_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^import/"), "import"),
    (re.compile(r"^react-hooks/"), "hooks"),
    (re.compile(r"^react(-native)?/"), "react"),
    (re.compile(r"^@typescript-eslint/"), "types"),
    (re.compile(r"^prettier/"), "style"),
    (re.compile(r"unused|undef|shadow"), "variables"),
]


# ---------------------------------------------------------------------------
# Category Priority (for sorting priority errors)
# ---------------------------------------------------------------------------
CATEGORY_PRIORITY: dict[str, int] = {
    "syntax":     0,
    "import":     1,
    "hooks":      2,
    "type":       3,
    "types":      3,
    "null-check": 4,
    "async":      5,
    "return":     6,
    "generic":    7,
    "react":      8,
    "variables":  9,
    "style":      10,
}


def priority_of(category: str) -> int:
    """Return sort priority for a category (lower = higher priority)."""
    return CATEGORY_PRIORITY.get(category, 99)


_SEVERITY_LEVEL_BY_CATEGORY: dict[str, str] = {
    "syntax": "critical",
    "import": "critical",
    "hooks": "high",
    "type": "high",
    "types": "medium",
    "null-check": "high",
    "async": "high",
    "return": "medium",
    "generic": "medium",
    "react": "medium",
    "variables": "low",
    "style": "low",
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def classify_typescript_code(code: Optional[str]) -> str:
    """Classify a TypeScript diagnostic code such as "TS2304"."""
    if not code:
        return UNKNOWN_CATEGORY
    normalized = code.strip().upper()
    if normalized in _TYPESCRIPT_CODES:
        return _TYPESCRIPT_CODES[normalized]
    for pattern, category in _TYPESCRIPT_PATTERNS:
        if pattern.search(normalized):
            return category
    return UNKNOWN_CATEGORY


def classify_eslint_rule(rule_id: Optional[str]) -> str:
    """Classify an ESLint rule id such as "react-hooks/rules-of-hooks"."""
    if not rule_id:
        return UNKNOWN_CATEGORY
    normalized = rule_id.strip()
    if normalized in _ESLINT_RULES:
        return _ESLINT_RULES[normalized]
    for pattern, category in _ESLINT_PATTERNS:
        if pattern.search(normalized):
            return category
    return UNKNOWN_CATEGORY


def classify(source: str, code: Optional[str]) -> str:
    """
    Classify a (source, code) pair into a category.

    Parameters
    ----------
    source : str
        One of the ErrorSource values.
    code : str or None
        Diagnostic code or rule id. Metro, React Native and Expo records
        carry their parser type here (e.g. "resolve", "hooks").

    Returns
    -------
    str
        Category name, "unknown" when nothing matched.
    """
    if source == ErrorSource.TYPESCRIPT:
        return classify_typescript_code(code)
    if source == ErrorSource.ESLINT:
        return classify_eslint_rule(code)
    if source == ErrorSource.METRO:
        return {"resolve": "import", "syntax": "syntax", "transform": "syntax"}.get(
            code or "", UNKNOWN_CATEGORY
        )
    if source == ErrorSource.REACT_NATIVE:
        return {
            "hooks": "hooks",
            "component": "react",
            "props": "react",
            "stylesheet": "style",
            "navigation": "react",
            "platform": "react",
        }.get(code or "", UNKNOWN_CATEGORY)
    return UNKNOWN_CATEGORY


def severity_level_of(category: str, severity: str = "error") -> str:
    """
    Map a category to critical / high / medium / low.

    Warnings are capped at "low": they never block a build.
    """
    if severity == "warning":
        return "low"
    return _SEVERITY_LEVEL_BY_CATEGORY.get(category, "medium")
