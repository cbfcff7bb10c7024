"""
Code Context
============
Reads a small window of source lines around a diagnostic.

Enrichment is best-effort: a missing file, an unreadable file or a line
outside the file all return None and the error is reported without a
snippet.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fixloop.core.config import CONTEXT_LINES
from fixloop.utils.path_utils import resolve_in_project

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodeContext:
    file: str
    line: int
    start_line: int
    lines: tuple[str, ...]
    column: Optional[int] = None

    @property
    def end_line(self) -> int:
        return self.start_line + len(self.lines) - 1


def _read_lines(file_path: str, project_root: str) -> Optional[list[str]]:
    path = resolve_in_project(file_path, project_root)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("No context for %s: %s", path, e)
        return None


def get_code_context(
    file_path: str,
    line: Optional[int],
    project_root: str = ".",
    context_lines: int = CONTEXT_LINES,
) -> Optional[CodeContext]:
    """
    Return the lines around *line* (1-based) in *file_path*.

    Parameters
    ----------
    file_path : str
        Path as reported by the tool, relative to *project_root* or absolute.
    line : int or None
        Diagnostic line. None or out of range → None.
    project_root : str
        Directory relative paths are resolved against.
    context_lines : int
        Lines to include above and below.

    Returns
    -------
    CodeContext or None
    """
    if not file_path or line is None or line < 1:
        return None
    source = _read_lines(file_path, project_root)
    if source is None or line > len(source):
        return None

    start = max(1, line - context_lines)
    end = min(len(source), line + context_lines)
    return CodeContext(
        file=file_path,
        line=line,
        start_line=start,
        lines=tuple(source[start - 1:end]),
    )


def get_code_context_with_pointer(
    file_path: str,
    line: Optional[int],
    column: Optional[int],
    project_root: str = ".",
    context_lines: int = CONTEXT_LINES,
) -> Optional[CodeContext]:
    """Same as get_code_context() but remembers the column for a ^ pointer."""
    ctx = get_code_context(file_path, line, project_root, context_lines)
    if ctx is None:
        return None
    return CodeContext(
        file=ctx.file,
        line=ctx.line,
        start_line=ctx.start_line,
        lines=ctx.lines,
        column=column if column and column > 0 else None,
    )


def format_code_context(ctx: Optional[CodeContext]) -> str:
    """
    Render a context window with line numbers.

        14 |   const a = 1;
      > 15 |   React.useState();
           |   ^
        16 | }
    """
    if ctx is None:
        return ""
    width = len(str(ctx.end_line))
    rendered: list[str] = []
    for offset, text in enumerate(ctx.lines):
        number = ctx.start_line + offset
        marker = ">" if number == ctx.line else " "
        rendered.append(f"{marker} {str(number).rjust(width)} | {text}")
        if number == ctx.line and ctx.column:
            rendered.append(f"  {' ' * width} | {' ' * (ctx.column - 1)}^")
    return "\n".join(rendered)
