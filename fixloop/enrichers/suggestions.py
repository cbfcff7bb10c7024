"""
Suggestions
===========
Maps a diagnostic to a FixSuggestion.

Lookup order per source:
    typescript    — code table (some entries read names out of the message),
                    then generic message patterns
    eslint        — rule table, then generic message patterns
    react-native  — runtime message patterns, then generic
    metro / expo  — message patterns, then generic

Unmatched diagnostics get None. There is no placeholder suggestion; the
formatters simply omit the field.

All tables are module-level constants and never mutated.
"""
import re
from typing import Callable, Optional, Union

from fixloop.core.constants import ErrorSource
from fixloop.models.suggestion import FixSuggestion

SuggestionEntry = Union[FixSuggestion, Callable[[str], FixSuggestion]]


def _quoted(pattern: str, message: str) -> Optional[str]:
    m = re.search(pattern, message)
    return m.group(1) if m else None


# ---------------------------------------------------------------------------
# TypeScript
# ---------------------------------------------------------------------------
def _ts_cannot_find_name(message: str) -> FixSuggestion:
    name = _quoted(r"Cannot find name ['\"](.+?)['\"]", message) or "unknown"
    return FixSuggestion(
        description=f"Import or define '{name}'",
        action="add",
        example=f"import {{ {name} }} from './path-to-module';",
        auto_fixable=True,
        confidence=0.9,
    )


def _ts_cannot_find_module(message: str) -> FixSuggestion:
    module = _quoted(r"Cannot find module ['\"](.+?)['\"]", message) or "unknown"
    relative = module.startswith(".")
    return FixSuggestion(
        description=(
            f"Check the import path. The file may not exist at '{module}'"
            if relative
            else f"Install the package: npm install {module}"
        ),
        action="review",
        example=None if relative else f"npm install {module}",
        auto_fixable=False,
        confidence=0.85,
    )


def _ts_missing_property_on_type(message: str) -> FixSuggestion:
    prop = _quoted(r"Property ['\"](.+?)['\"] does not exist on type", message)
    return FixSuggestion(
        description=(
            f"Add property '{prop}' to type or check for typos"
            if prop
            else "Check if the property exists on this type"
        ),
        action="review",
        auto_fixable=False,
        confidence=0.7,
    )


def _ts_required_property(message: str) -> FixSuggestion:
    prop = _quoted(r"Property ['\"](.+?)['\"] is missing", message)
    return FixSuggestion(
        description=(
            f"Add the required property '{prop}'"
            if prop
            else "Add all required properties to the object"
        ),
        action="add",
        auto_fixable=True,
        confidence=0.85,
    )


def _ts_missing_declaration(message: str) -> FixSuggestion:
    module = _quoted(r"Could not find a declaration file for module ['\"](.+?)['\"]", message) or "unknown"
    # Scoped packages map "@scope/name" to "@types/scope__name"
    types_name = module.lstrip("@").replace("/", "__")
    command = f"npm install --save-dev @types/{types_name}"
    return FixSuggestion(
        description=f"Install types: {command}",
        action="add",
        example=command,
        auto_fixable=False,
        confidence=0.8,
    )


TYPESCRIPT_SUGGESTIONS: dict[str, SuggestionEntry] = {
    "TS2304": _ts_cannot_find_name,
    "TS2307": _ts_cannot_find_module,
    "TS2339": _ts_missing_property_on_type,
    "TS2322": FixSuggestion(
        description="Check type compatibility. Ensure the value matches the expected type.",
        action="change",
        auto_fixable=False,
        confidence=0.6,
    ),
    "TS2741": _ts_required_property,
    "TS2345": FixSuggestion(
        description="Check argument types match function parameter types",
        action="change",
        auto_fixable=False,
        confidence=0.6,
    ),
    "TS2532": FixSuggestion(
        description="Add null check before accessing property",
        action="add",
        example="obj?.property or if (obj) { obj.property }",
        auto_fixable=True,
        confidence=0.9,
    ),
    "TS7016": _ts_missing_declaration,
}


# ---------------------------------------------------------------------------
# ESLint
# ---------------------------------------------------------------------------
_UNUSED_VARS = FixSuggestion(
    description="Remove the unused variable or use it",
    action="remove",
    auto_fixable=True,
    confidence=0.95,
)

ESLINT_SUGGESTIONS: dict[str, FixSuggestion] = {
    "no-undef": FixSuggestion(
        description="Define or import the undefined variable",
        action="add",
        auto_fixable=True,
        confidence=0.9,
    ),
    "no-unused-vars": _UNUSED_VARS,
    "@typescript-eslint/no-unused-vars": _UNUSED_VARS,
    "react/jsx-no-undef": FixSuggestion(
        description="Import the JSX component or check for typos",
        action="add",
        example="import { Component } from './Component';",
        auto_fixable=True,
        confidence=0.9,
    ),
    "react-hooks/rules-of-hooks": FixSuggestion(
        description="Move hook call outside of conditionals and loops. Hooks must be called at top level.",
        action="change",
        auto_fixable=False,
        confidence=0.7,
    ),
    "react-hooks/exhaustive-deps": FixSuggestion(
        description="Add missing dependencies to the dependency array",
        action="add",
        auto_fixable=True,
        confidence=0.85,
    ),
    "import/no-unresolved": FixSuggestion(
        description="Check the import path or install the missing package",
        action="review",
        auto_fixable=False,
        confidence=0.7,
    ),
}


# ---------------------------------------------------------------------------
# Generic message patterns
# ---------------------------------------------------------------------------
# Each entry: (compiled_regex, suggestion); first hit wins
_GENERIC_PATTERNS: list[tuple[re.Pattern, FixSuggestion]] = [
    (re.compile(r"is not defined", re.I), FixSuggestion(
        description="Import or define the missing symbol",
        action="add", auto_fixable=True, confidence=0.8)),
    (re.compile(r"cannot find|not found", re.I), FixSuggestion(
        description="Check paths and imports. Ensure the file/module exists.",
        action="review", auto_fixable=False, confidence=0.7)),
    (re.compile(r"unexpected token", re.I), FixSuggestion(
        description="Check for syntax errors: missing brackets, semicolons, or quotes",
        action="review", auto_fixable=False, confidence=0.6)),
    (re.compile(r"must be rendered within", re.I), FixSuggestion(
        description="Wrap the content in the required component",
        action="review", auto_fixable=False, confidence=0.85)),
    (re.compile(r"is deprecated", re.I), FixSuggestion(
        description="Update to the recommended alternative",
        action="change", auto_fixable=False, confidence=0.9)),
    (re.compile(r"unmounted component", re.I), FixSuggestion(
        description="Add cleanup logic to prevent state updates on unmounted components",
        action="add",
        example="useEffect(() => { let mounted = true; ... return () => { mounted = false; }; }, []);",
        auto_fixable=False, confidence=0.8)),
]


# ---------------------------------------------------------------------------
# React Native runtime
# ---------------------------------------------------------------------------
REACT_NATIVE_SUGGESTIONS: dict[str, FixSuggestion] = {
    "text-component": FixSuggestion(
        description="Wrap text strings in a <Text> component",
        action="change",
        example="<Text>Your text here</Text>",
        auto_fixable=True,
        confidence=0.95,
    ),
    "undefined-object": FixSuggestion(
        description="Add null/undefined checks before accessing properties",
        action="add",
        example="obj?.property or if (obj) { obj.property }",
        auto_fixable=True,
        confidence=0.9,
    ),
    "view-prop-types": FixSuggestion(
        description="Replace ViewPropTypes with ViewProps from react-native",
        action="change",
        example="import { ViewProps } from 'react-native';",
        auto_fixable=True,
        confidence=0.95,
    ),
    "hooks-rules": FixSuggestion(
        description="Move hook calls to the top level of the function component",
        action="change",
        auto_fixable=False,
        confidence=0.7,
    ),
    "screen-not-found": FixSuggestion(
        description="Register the screen in your navigator configuration",
        action="add",
        auto_fixable=True,
        confidence=0.85,
    ),
}

_REACT_NATIVE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"Text strings must be rendered"), "text-component"),
    (re.compile(r"undefined is not an object|Cannot read propert"), "undefined-object"),
    (re.compile(r"ViewPropTypes"), "view-prop-types"),
    (re.compile(r"Hooks can only be called|Rendered (?:more|fewer) hooks"), "hooks-rules"),
    (re.compile(r"screen.*not in the navigator"), "screen-not-found"),
]


# ---------------------------------------------------------------------------
# Expo
# ---------------------------------------------------------------------------
EXPO_SUGGESTIONS: dict[str, FixSuggestion] = {
    "missing-bundle-id": FixSuggestion(
        description="Add ios.bundleIdentifier to app.json",
        action="add",
        example='"ios": { "bundleIdentifier": "com.yourcompany.yourapp" }',
        auto_fixable=True,
        confidence=0.95,
    ),
    "missing-package": FixSuggestion(
        description="Add android.package to app.json",
        action="add",
        example='"android": { "package": "com.yourcompany.yourapp" }',
        auto_fixable=True,
        confidence=0.95,
    ),
    "invalid-config": FixSuggestion(
        description="Check app.json for invalid or missing required fields",
        action="review",
        auto_fixable=False,
        confidence=0.8,
    ),
    "plugin-error": FixSuggestion(
        description="Install the required Expo config plugin package",
        action="add",
        auto_fixable=False,
        confidence=0.75,
    ),
    "prebuild-clean": FixSuggestion(
        description="Run npx expo prebuild --clean to regenerate native projects",
        action="review",
        example="npx expo prebuild --clean",
        auto_fixable=False,
        confidence=0.9,
    ),
    "sdk-version": FixSuggestion(
        description="Check SDK version compatibility in app.json and package.json",
        action="review",
        auto_fixable=False,
        confidence=0.8,
    ),
}

_EXPO_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"bundleIdentifier"), "missing-bundle-id"),
    (re.compile(r"android\.package"), "missing-package"),
    (re.compile(r"config|app\.json"), "invalid-config"),
    (re.compile(r"plugin"), "plugin-error"),
    (re.compile(r"prebuild"), "prebuild-clean"),
    (re.compile(r"version"), "sdk-version"),
]


# ---------------------------------------------------------------------------
# Metro
# ---------------------------------------------------------------------------
_METRO_PATTERNS: list[tuple[re.Pattern, FixSuggestion]] = [
    (re.compile(r"unable to resolve module\s+['\"`]?(\.)", re.I), FixSuggestion(
        description="Fix the relative import path. The target file does not exist.",
        action="change", auto_fixable=False, confidence=0.8)),
    (re.compile(r"unable to resolve module", re.I), FixSuggestion(
        description="Install the missing package and restart Metro with a clean cache",
        action="add", example="npx expo install <package> && npx expo start -c",
        auto_fixable=False, confidence=0.8)),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def get_typescript_suggestion(code: Optional[str], message: str) -> Optional[FixSuggestion]:
    entry = TYPESCRIPT_SUGGESTIONS.get((code or "").upper())
    if entry is None:
        return None
    if callable(entry):
        return entry(message)
    return entry


def get_eslint_suggestion(rule_id: Optional[str]) -> Optional[FixSuggestion]:
    return ESLINT_SUGGESTIONS.get(rule_id or "")


def get_generic_suggestion(message: str) -> Optional[FixSuggestion]:
    for pattern, suggestion in _GENERIC_PATTERNS:
        if pattern.search(message):
            return suggestion
    return None


def get_react_native_suggestion(message: str) -> Optional[FixSuggestion]:
    for pattern, key in _REACT_NATIVE_PATTERNS:
        if pattern.search(message):
            return REACT_NATIVE_SUGGESTIONS[key]
    return None


def get_expo_suggestion(message: str) -> Optional[FixSuggestion]:
    for pattern, key in _EXPO_PATTERNS:
        if pattern.search(message):
            return EXPO_SUGGESTIONS[key]
    return None


def get_metro_suggestion(message: str) -> Optional[FixSuggestion]:
    for pattern, suggestion in _METRO_PATTERNS:
        if pattern.search(message):
            return suggestion
    return None


def get_suggestion(source: str, code: Optional[str], message: str) -> Optional[FixSuggestion]:
    """
    Dispatch to the source-specific table, then the generic patterns.

    Parameters
    ----------
    source : str
        One of the ErrorSource values.
    code : str or None
        TS code or ESLint rule id; ignored by message-only sources.
    message : str
        Diagnostic message.

    Returns
    -------
    FixSuggestion or None
    """
    specific: Optional[FixSuggestion] = None
    if source == ErrorSource.TYPESCRIPT:
        specific = get_typescript_suggestion(code, message)
    elif source == ErrorSource.ESLINT:
        specific = get_eslint_suggestion(code)
    elif source == ErrorSource.REACT_NATIVE:
        specific = get_react_native_suggestion(message)
    elif source == ErrorSource.EXPO:
        specific = get_expo_suggestion(message)
    elif source == ErrorSource.METRO:
        specific = get_metro_suggestion(message)
    return specific or get_generic_suggestion(message)
