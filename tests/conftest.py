import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'bamboo'
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write dedented text to ``tmp_path / relpath`` and return the path."""

    def _write(relpath: str, content: str = "") -> Path:
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def themes(tmp_path: Path) -> tuple:
    """Two theme roots as base-directory strings, highest priority first."""
    dark = tmp_path / "themes" / "dark"
    default = tmp_path / "themes" / "default"
    dark.mkdir(parents=True)
    default.mkdir(parents=True)
    return str(dark) + "/", str(default) + "/"
