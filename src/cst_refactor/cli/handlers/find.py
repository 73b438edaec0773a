"""
Find Command Handler.

Searches files for a pattern and renders every non-overlapping match, with
its line number and bindings, as a table.
"""

from pathlib import Path
from typing import Dict, Optional

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider
from rich.table import Table
from rich.text import Text

from cst_refactor.api import compile_fragment, make_context
from cst_refactor.config import RuntimeConfig
from cst_refactor.core.driver import find_all_with
from cst_refactor.core.errors import PatternSyntaxError
from cst_refactor.core.oracle import ImportAliasOracle, QualifiedNameOracle, ResolutionOracle, SyntacticOracle
from cst_refactor.cli.handlers.rewrite import collect_python_files
from cst_refactor.enums import ResolverMode
from cst_refactor.utils.console import console, log_error, log_info, log_warning


def _oracle_for(mode: ResolverMode, wrapper: MetadataWrapper) -> ResolutionOracle:
  if mode is ResolverMode.QUALIFIED:
    return QualifiedNameOracle(wrapper)
  if mode is ResolverMode.IMPORTS:
    return ImportAliasOracle.from_module(wrapper.module)
  return SyntacticOracle()


def handle_find(
  input_path: Path,
  pattern: str,
  kind: str,
  types: Dict[str, str],
  resolver: Optional[str] = None,
) -> int:
  """
  Handles the 'find' command execution.

  Args:
      input_path: Path to the source file or directory.
      pattern: Pattern text.
      kind: Kind of the pattern.
      types: Declared metavariable kinds.
      resolver: Override for the resolver mode.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1

  try:
    config = RuntimeConfig.load(
      resolver=resolver,
      types=types,
      search_path=input_path if input_path.is_dir() else input_path.parent,
    )
    compiled = compile_fragment(pattern, kind, config.syntax)
  except PatternSyntaxError as e:
    log_error(f"Invalid pattern: {e}")
    return 1
  except ValueError as e:
    log_error(f"Invalid configuration: {e}")
    return 1

  table = Table(title=Text(f"Matches for {pattern}"))
  table.add_column("File", style="cyan")
  table.add_column("Line", justify="right")
  table.add_column("Match", style="code")
  table.add_column("Bindings", style="metavar")

  files = collect_python_files(input_path)
  total = 0
  for src_file in files:
    try:
      module = cst.parse_module(src_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, cst.ParserSyntaxError) as e:
      log_warning(f"Skipping {src_file}: {e}")
      continue

    wrapper = MetadataWrapper(module)
    positions = wrapper.resolve(PositionProvider)
    mcx = make_context(_oracle_for(config.resolver, wrapper), config.types, config.syntax)

    for matched, bindings in find_all_with(mcx, compiled, wrapper.module):
      total += 1
      line = positions[matched.nodes[0]].start.line
      rendered = ", ".join(f"{name}={code}" for name, code in bindings.as_code().items())
      table.add_row(str(src_file), str(line), Text(matched.code.strip()), Text(rendered))

  if total:
    console.print(table)
  log_info(f"{total} matches in {len(files)} files.")
  return 0
