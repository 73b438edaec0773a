"""
Rename Command Handler.

Rewrites every use of a fully qualified name (as resolved through imports or
scope analysis) into a new dotted path.
"""

from pathlib import Path
from typing import Optional

from cst_refactor.cli.handlers.rewrite import print_batch_summary, process_files
from cst_refactor.config import RuntimeConfig
from cst_refactor.core.engine import RefactorEngine
from cst_refactor.utils.console import log_error


def handle_rename(
  input_path: Path,
  old: str,
  new: str,
  output_path: Optional[Path] = None,
  show_diff: bool = False,
  in_place: bool = False,
  resolver: Optional[str] = None,
) -> int:
  """
  Handles the 'rename' command execution.

  Args:
      input_path: Path to the source file or directory.
      old: Fully qualified name to replace (e.g. ``numpy.sum``).
      new: Replacement dotted path.
      output_path: Where rewritten code is saved.
      show_diff: Print unified diffs.
      in_place: Overwrite the source files.
      resolver: Override for the resolver mode.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1
  if input_path.is_dir() and not (output_path or in_place or show_diff):
    log_error("Directory renames require --out, --in-place or --diff.")
    return 1

  try:
    config = RuntimeConfig.load(
      resolver=resolver,
      search_path=input_path if input_path.is_dir() else input_path.parent,
    )
  except ValueError as e:
    log_error(f"Invalid configuration: {e}")
    return 1

  engine = RefactorEngine([], config=config)
  results = process_files(input_path, output_path, in_place, show_diff, lambda code: engine.rename(code, old, new))
  if input_path.is_dir() or any(not r.success for r in results.values()):
    print_batch_summary(results)
  return 0 if all(r.success for r in results.values()) else 1
