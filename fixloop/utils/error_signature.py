"""
Error Signature Utility
=======================
Stable fingerprints for diagnostics.

Location Signature:
    severity + file + line + column + message
    Identifies the same diagnostic when two parsers report it, so the
    adapter can drop the duplicate.

Error-Set Signature:
    sorted error keys (code, or message when there is no code)
    Identifies an unchanged error set across attempts, which is what the
    retry loop treats as "no progress".
"""
import hashlib
from typing import Iterable, Optional


def generate_location_signature(
    severity: str,
    file: str,
    line: Optional[int],
    column: Optional[int],
    message: str,
) -> str:
    """
    Generate a stable signature for one diagnostic location.

    Parameters
    ----------
    severity : str
        "error" or "warning".
    file : str
        Normalized file path.
    line, column : int or None
        Location, None when the tool did not report one.
    message : str
        Diagnostic message.

    Returns
    -------
    str
        16-character hex digest.
    """
    raw = f"{severity}:{file}:{line}:{column}:{message.strip()}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def generate_error_set_signature(keys: Iterable[str]) -> str:
    """Order-independent digest of an error-key set. Empty set → empty string."""
    unique = sorted(set(keys))
    if not unique:
        return ""
    return hashlib.sha256("|".join(unique).encode("utf-8")).hexdigest()[:16]
