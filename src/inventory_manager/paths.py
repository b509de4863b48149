import os
from typing import Optional

from .logging import get_logger

log = get_logger("paths")

DB_FOLDER = "inventory"
DB_FILENAME = "inventory.sqlite3"
MEMORY_DB = ":memory:"


def expand_abs(path: str) -> str:
    """Expand env vars and ~ then return absolute path."""
    return os.path.abspath(os.path.expanduser(os.path.expandvars(path or "")))


def find_project_root(start_dir: Optional[str] = None) -> str:
    """Find the repository root by walking upward from start_dir.

    Looks for common markers: .git/, pyproject.toml, README.md.
    Falls back to absolute(start_dir) if nothing found.
    """
    d = os.path.abspath(start_dir or os.getcwd() or ".")
    while True:
        if os.path.isdir(os.path.join(d, ".git")):
            return d
        for marker in ("pyproject.toml", "README.md"):
            if os.path.isfile(os.path.join(d, marker)):
                return d
        parent = os.path.dirname(d)
        if parent == d:
            return os.path.abspath(start_dir or os.getcwd() or ".")
        d = parent


def var_dir(root_dir: str) -> str:
    """Return the absolute var directory under the project root."""
    return os.path.join(os.path.abspath(root_dir), "var")


def default_db_path(root_dir: Optional[str] = None) -> str:
    """Return `<project-root>/var/inventory/inventory.sqlite3`."""
    root = find_project_root(root_dir)
    return os.path.join(var_dir(root), DB_FOLDER, DB_FILENAME)


def resolve_db_path(path: Optional[str], root_dir: Optional[str] = None) -> str:
    """Resolve a configured database location; `:memory:` passes through."""
    if not path:
        resolved = default_db_path(root_dir)
        log.debug(f"No database path configured; using default {resolved}")
        return resolved
    if path.strip() == MEMORY_DB:
        return MEMORY_DB
    return expand_abs(path.strip())
