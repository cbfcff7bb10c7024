"""
Constants
Centralised storage for error sources, severities and report glyphs.
"""


class ErrorSource:
    TYPESCRIPT = "typescript"
    ESLINT = "eslint"
    METRO = "metro"
    REACT_NATIVE = "react-native"
    EXPO = "expo"
    UNKNOWN = "unknown"


ERROR_SOURCES = {
    ErrorSource.TYPESCRIPT,
    ErrorSource.ESLINT,
    ErrorSource.METRO,
    ErrorSource.REACT_NATIVE,
    ErrorSource.EXPO,
    ErrorSource.UNKNOWN,
}


class Severity:
    ERROR = "error"
    WARNING = "warning"


SEVERITIES = {Severity.ERROR, Severity.WARNING}


REPORT_FORMATS = ("console", "markdown", "json")

ARROW = "→"
