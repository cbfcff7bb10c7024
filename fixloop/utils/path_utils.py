"""
Path Utils
==========
Path normalisation and project-relative conversion helpers.

Responsibilities:
    - Normalise path separators to forward slashes
    - Strip quotes, whitespace and a project-root prefix
    - Resolve a diagnostic path against the project root for reading
"""
import os


def normalize_path(raw_path: str, project_root: str = "") -> str:
    """
    Convert an absolute or messy path to a clean project-relative path.

    Steps:
        1. Strip quotes and whitespace
        2. Replace backslashes with forward slashes
        3. Remove the project-root prefix if present
        4. Remove leading "./"

    Parameters
    ----------
    raw_path : str
        The raw file path extracted from tool output.
    project_root : str
        Root directory to strip when the tool printed absolute paths.

    Returns
    -------
    str
        Clean path with forward slashes. Empty input stays empty.
    """
    path = raw_path.strip().strip("'\"")
    path = path.replace("\\", "/")

    if project_root:
        root = project_root.replace("\\", "/").rstrip("/")
        if root and root != "." and path.startswith(root + "/"):
            path = path[len(root) + 1:]

    while path.startswith("./"):
        path = path[2:]
    return path


def resolve_in_project(file_path: str, project_root: str) -> str:
    """Return an absolute path for reading *file_path* under *project_root*."""
    if os.path.isabs(file_path):
        return file_path
    return os.path.join(project_root or ".", file_path)
