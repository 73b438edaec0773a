from .find import handle_find
from .rename import handle_rename
from .rewrite import handle_rewrite

__all__ = [
  "handle_find",
  "handle_rename",
  "handle_rewrite",
]
