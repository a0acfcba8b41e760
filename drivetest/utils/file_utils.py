"""Filesystem helpers for stored images."""
from pathlib import Path


def resolve_under(base_dir: Path, relative: str | None) -> Path | None:
    """
    Resolve a stored relative path against base_dir.

    Returns None for empty names and for paths escaping base_dir.
    """
    if not relative:
        return None
    base = base_dir.resolve()
    resolved = (base / relative).resolve()
    if base not in resolved.parents:
        return None
    return resolved
