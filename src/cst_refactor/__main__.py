"""
Entry point for module execution (``python -m cst_refactor``).

This module delegates execution to the CLI handler in ``cst_refactor.cli.__main__``.
"""

import sys
from cst_refactor.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
