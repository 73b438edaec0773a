"""
Main Entry Point for cst-refactor CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `cst_refactor.cli.commands`.
"""

import argparse
from pathlib import Path
from typing import List, Optional

from cst_refactor import __version__
from cst_refactor.cli import commands
from cst_refactor.config import parse_type_declarations
from cst_refactor.enums import FragmentKind, ResolverMode
from cst_refactor.utils.console import set_verbosity

_PATTERN_KINDS = [k.value for k in FragmentKind if k is not FragmentKind.ANY]
_RESOLVERS = [m.value for m in ResolverMode]


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Parses arguments via argparse and calls the appropriate handler function.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="cst-refactor: Pattern-based Python rewriting")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
  parser.add_argument("-v", "--verbose", action="store_true", help="Show debug traces of matches and rewrites")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: REWRITE ---
  cmd_rw = subparsers.add_parser("rewrite", help="Rewrite a Python file or directory")
  cmd_rw.add_argument("path", type=Path, help="Input source file or directory")
  cmd_rw.add_argument("--pattern", default=None, help="Inline pattern, e.g. '__d.has_key(__k)'")
  cmd_rw.add_argument("--replacement", default=None, help="Inline replacement, e.g. '__k in __d'")
  cmd_rw.add_argument("--kind", choices=_PATTERN_KINDS, default="expr", help="Kind of the inline pattern")
  cmd_rw.add_argument("--rules", type=Path, default=None, help="TOML/JSON rules file (Overrides config)")
  cmd_rw.add_argument("--type", nargs="*", dest="types", help="Metavariable kinds in NAME=KIND format")
  cmd_rw.add_argument("--out", type=Path, help="Output destination (file or dir)")
  cmd_rw.add_argument("--in-place", action="store_true", help="Overwrite the input files")
  cmd_rw.add_argument("--diff", action="store_true", help="Print a unified diff per changed file")
  cmd_rw.add_argument("--resolver", choices=_RESOLVERS, default=None, help="Name resolution mode")
  cmd_rw.add_argument(
    "--strict",
    action="store_true",
    default=None,
    help="Fail a file when any rule fails instead of skipping the rule (Overrides config)",
  )
  cmd_rw.add_argument(
    "--json-trace", type=Path, default=None, help="Dump full execution trace (matches, rewrites) to a JSON file."
  )

  # --- Command: FIND ---
  cmd_find = subparsers.add_parser("find", help="List matches of a pattern")
  cmd_find.add_argument("path", type=Path, help="Input source file or directory")
  cmd_find.add_argument("--pattern", required=True, help="Pattern to search for")
  cmd_find.add_argument("--kind", choices=_PATTERN_KINDS, default="expr", help="Kind of the pattern")
  cmd_find.add_argument("--type", nargs="*", dest="types", help="Metavariable kinds in NAME=KIND format")
  cmd_find.add_argument("--resolver", choices=_RESOLVERS, default=None, help="Name resolution mode")

  # --- Command: RENAME ---
  cmd_ren = subparsers.add_parser("rename", help="Rename every use of a qualified name")
  cmd_ren.add_argument("path", type=Path, help="Input source file or directory")
  cmd_ren.add_argument("old", help="Fully qualified name, e.g. numpy.sum")
  cmd_ren.add_argument("new", help="Replacement dotted path")
  cmd_ren.add_argument("--out", type=Path, help="Output destination (file or dir)")
  cmd_ren.add_argument("--in-place", action="store_true", help="Overwrite the input files")
  cmd_ren.add_argument("--diff", action="store_true", help="Print a unified diff per changed file")
  cmd_ren.add_argument("--resolver", choices=_RESOLVERS, default=None, help="Name resolution mode")

  args = parser.parse_args(argv)
  set_verbosity(args.verbose)

  if args.command == "rewrite":
    return commands.handle_rewrite(
      args.path,
      args.out,
      args.pattern,
      args.replacement,
      args.kind,
      args.rules,
      parse_type_declarations(args.types),
      args.strict,
      show_diff=args.diff,
      in_place=args.in_place,
      json_trace_path=args.json_trace,
      resolver=args.resolver,
    )

  if args.command == "find":
    types = parse_type_declarations(args.types)
    return commands.handle_find(args.path, args.pattern, args.kind, types, resolver=args.resolver)

  if args.command == "rename":
    return commands.handle_rename(
      args.path,
      args.old,
      args.new,
      output_path=args.out,
      show_diff=args.diff,
      in_place=args.in_place,
      resolver=args.resolver,
    )

  return 0


if __name__ == "__main__":
  raise SystemExit(main())
