"""
Rewrite Command Handler.

This module implements the logic for the `cst-refactor rewrite` command.
It orchestrates:
1. Configuration loading (pyproject.toml plus CLI overrides).
2. Rule selection (an inline pattern/replacement pair, or a rules file).
3. Rewriting via the Engine, file by file.
4. Output writing (file, mirrored directory, in place, or stdout), diffs and trace logging.
"""

import json
from pathlib import Path
from typing import Callable, Dict, List, Optional

from rich.table import Table

from cst_refactor.config import RuntimeConfig
from cst_refactor.core.conversion_result import ConversionResult
from cst_refactor.core.engine import RefactorEngine
from cst_refactor.rules import RewriteRule, RuleSet
from cst_refactor.utils.console import console, log_error, log_info, log_success, log_warning
from cst_refactor.utils.node_diff import unified_diff


def collect_python_files(input_path: Path) -> List[Path]:
  """Lists the ``.py`` files under a path (the path itself if it is a file)."""
  if input_path.is_file():
    return [input_path]
  return sorted(input_path.rglob("*.py"))


def destination_for(src_file: Path, input_path: Path, output_path: Optional[Path], in_place: bool) -> Optional[Path]:
  """Maps a source file to where its rewritten code is written (None for stdout)."""
  if in_place:
    return src_file
  if output_path is None:
    return None
  if input_path.is_file():
    return output_path
  return output_path / src_file.relative_to(input_path)


def process_files(
  input_path: Path,
  output_path: Optional[Path],
  in_place: bool,
  show_diff: bool,
  transform: Callable[[str], ConversionResult],
  json_trace_path: Optional[Path] = None,
) -> Dict[str, ConversionResult]:
  """
  Runs a source-to-source transform over every file under a path.

  Args:
      input_path: Source file or directory.
      output_path: Output file or directory.
      in_place: If True, sources are overwritten.
      show_diff: If True, a unified diff is printed per changed file.
      transform: Maps source code to a ConversionResult.
      json_trace_path: Trace file for single-file runs (per-file ``.trace.json`` for directories).

  Returns:
      Dict[str, ConversionResult]: Results keyed by file label.
  """
  results: Dict[str, ConversionResult] = {}
  files = collect_python_files(input_path)
  if not files:
    log_warning(f"No .py files found in {input_path}")
    return results

  if input_path.is_dir():
    log_info(f"Processing {len(files)} files from {input_path}...")

  for src_file in files:
    label = str(src_file.relative_to(input_path)) if input_path.is_dir() else src_file.name
    dest = destination_for(src_file, input_path, output_path, in_place)

    trace_path = json_trace_path
    if json_trace_path and input_path.is_dir():
      trace_path = json_trace_path / Path(label).with_suffix(".trace.json")

    results[label] = _rewrite_single_file(src_file, dest, show_diff, transform, trace_path)
  return results


def _rewrite_single_file(
  input_path: Path,
  output_path: Optional[Path],
  show_diff: bool,
  transform: Callable[[str], ConversionResult],
  json_trace_path: Optional[Path] = None,
) -> ConversionResult:
  """
  Helper to execute a transform on a single file.

  Args:
      input_path: Source file path.
      output_path: Destination file path, or None to print the code.
      show_diff: Whether to print a unified diff.
      transform: The source-to-source transform.
      json_trace_path: Path to save trace event logs.

  Returns:
      ConversionResult: Result object containing status and code.
  """
  try:
    with open(input_path, "rt", encoding="utf-8") as f:
      code = f.read()
  except (OSError, UnicodeDecodeError) as e:
    log_error(f"Failed to read {input_path}: {e}")
    return ConversionResult(success=False, errors=[str(e)])

  result = transform(code)

  if json_trace_path and result.trace_events:
    try:
      json_trace_path.parent.mkdir(parents=True, exist_ok=True)
      with open(json_trace_path, "wt", encoding="utf-8") as f:
        json.dump(result.trace_events, f, indent=2)
      log_info(f"Trace saved to [path]{json_trace_path}[/path]")
    except OSError as e:
      log_error(f"Failed to write trace: {e}")

  if not result.success:
    return result

  if show_diff:
    diff = unified_diff(code, result.code, str(input_path))
    if diff:
      console.print(diff, markup=False, highlight=False, end="")

  if output_path:
    if output_path == input_path and result.code == code:
      return result
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "wt", encoding="utf-8") as f:
      f.write(result.code)
    log_success(f"Rewrote: [path]{input_path}[/path] -> [path]{output_path}[/path] ({result.total_rewrites} changes)")
  elif not show_diff:
    print(result.code, end="")

  return result


def print_batch_summary(results: Dict[str, ConversionResult]) -> None:
  """
  Renders a summary table of results to the console.

  Args:
      results: Dictionary mapping filenames to conversion results.
  """
  total = len(results)
  successes = sum(1 for r in results.values() if r.success and not r.has_errors)
  failures = total - successes
  rewrites = sum(r.total_rewrites for r in results.values())

  if failures == 0:
    log_success(f"Batch Complete: {successes}/{total} files processed, {rewrites} rewrites.")
    return

  table = Table(title="Refactoring Report")
  table.add_column("File", style="cyan")
  table.add_column("Status", justify="center")
  table.add_column("Issues", style="red")

  for filename, res in results.items():
    if res.success and not res.has_errors:
      continue
    status = "❌ Failed" if not res.success else "⚠️ Warnings"
    issues = "; ".join(res.errors) if res.errors else "Unknown Error"
    table.add_row(filename, status, issues)

  console.print(table)
  console.print(f"\n[bold]Summary:[/bold] {successes} Passed, {failures} with Issues.")


def _select_rules(
  pattern: Optional[str], replacement: Optional[str], kind: str, config: RuntimeConfig
) -> List[RewriteRule]:
  if pattern is not None:
    if replacement is None:
      raise ValueError("--pattern requires --replacement (use 'find' to search)")
    return [RewriteRule(name="inline", kind=kind, pattern=pattern, replacement=replacement)]
  if config.rules_file:
    return RuleSet.load(config.rules_file).rules
  return []


def handle_rewrite(
  input_path: Path,
  output_path: Optional[Path],
  pattern: Optional[str],
  replacement: Optional[str],
  kind: str,
  rules_file: Optional[Path],
  types: Dict[str, str],
  strict: Optional[bool],
  show_diff: bool = False,
  in_place: bool = False,
  json_trace_path: Optional[Path] = None,
  resolver: Optional[str] = None,
) -> int:
  """
  Handles the 'rewrite' command execution.

  Args:
      input_path: Path to the source file or directory.
      output_path: Where rewritten code is saved.
      pattern: Inline pattern text.
      replacement: Inline replacement text.
      kind: Kind of the inline pattern.
      rules_file: Override for the rules file.
      types: Declared metavariable kinds.
      strict: If True, a failing rule fails its file.
      show_diff: Print unified diffs.
      in_place: Overwrite the source files.
      json_trace_path: Optional path to dump execution trace JSON.
      resolver: Override for the resolver mode.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1
  if input_path.is_dir() and not (output_path or in_place or show_diff):
    log_error("Directory rewrites require --out, --in-place or --diff.")
    return 1

  try:
    config = RuntimeConfig.load(
      resolver=resolver,
      strict_mode=strict,
      rules_file=rules_file,
      types=types,
      search_path=input_path if input_path.is_dir() else input_path.parent,
    )
    rules = _select_rules(pattern, replacement, kind, config)
  except (ValueError, OSError) as e:
    log_error(f"Invalid configuration: {e}")
    return 1

  if not rules:
    log_error("No rules: pass --pattern with --replacement, or --rules FILE.")
    return 1

  engine = RefactorEngine(rules, config=config)
  results = process_files(input_path, output_path, in_place, show_diff, engine.run, json_trace_path)
  if input_path.is_dir() or any(not r.success for r in results.values()):
    print_batch_summary(results)
  return 0 if all(r.success for r in results.values()) else 1
