"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Console capture for CLI output assertions.
"""

import io
import sys
from pathlib import Path

import pytest
from rich.console import Console

# Add src to path so we can import 'cst_refactor' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from cst_refactor.utils.console import _THEME, reset_console, set_console  # noqa: E402


@pytest.fixture
def captured_console():
  """
  Routes console output and logging into an in-memory buffer.

  Yields:
      io.StringIO: The buffer receiving everything the CLI prints.
  """
  buf = io.StringIO()
  set_console(Console(file=buf, force_terminal=False, width=200, theme=_THEME))
  yield buf
  reset_console()
