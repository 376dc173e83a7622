"""
Bundled data resources (schemas) accessed through importlib.resources.
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path


def get_data_path(subpackage: str, filename: str = "") -> Path:
    """
    Get absolute path to a bundled data file or directory.

    Example:
        >>> get_data_path("schemas", "engine.schema.yaml")
        PosixPath('/path/to/bamboo/data/schemas/engine.schema.yaml')
    """
    pkg = resources.files("bamboo.data")
    base = Path(str(pkg / subpackage))
    return base / filename if filename else base


__all__ = ["get_data_path"]
