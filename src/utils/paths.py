from pathlib import Path

from src.infra.constants import MeshstackConstants


def get_project_root(start: Path | None = None) -> Path:
    """Get the project root directory.

    Walks up from ``start`` (the working directory by default) to find the
    project root, identified by the presence of ``meshstack.yaml``.

    Returns:
        Path to the project root directory, or ``start`` itself when no
        ancestor holds a configuration file
    """
    current = (start or Path.cwd()).resolve()

    for parent in [current, *current.parents]:
        if (parent / MeshstackConstants.CONFIG_FILE).exists():
            return parent

    return current


def resolve_in_project(path: Path, project_root: Path) -> Path:
    """Resolve a possibly relative path against the project root."""
    return path if path.is_absolute() else project_root / path
