"""
CLI Command Handlers Facade.

This module re-exports handlers from `cst_refactor.cli.handlers`.
"""

from cst_refactor.cli.handlers.find import handle_find
from cst_refactor.cli.handlers.rename import handle_rename
from cst_refactor.cli.handlers.rewrite import handle_rewrite

__all__ = [
  "handle_find",
  "handle_rename",
  "handle_rewrite",
]
