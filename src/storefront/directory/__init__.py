"""Directory factory.

Provides get_directory() / set_directory() to swap implementations:
- RecordDirectory over the relational ``directory`` provider (default)
- any ProjectDirectory test double
"""

from storefront.directory.port import ProjectDirectory
from storefront.directory.record_adapter import RecordDirectory

_current_directory: ProjectDirectory | None = None


def get_directory() -> ProjectDirectory:
    """Return the current directory. Defaults to RecordDirectory."""
    global _current_directory
    if _current_directory is None:
        _current_directory = RecordDirectory()
    return _current_directory


def set_directory(directory: ProjectDirectory) -> None:
    """Override the active directory (useful for tests)."""
    global _current_directory
    _current_directory = directory


def reset_directory() -> None:
    global _current_directory
    _current_directory = None
