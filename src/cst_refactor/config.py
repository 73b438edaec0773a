"""
Runtime Configuration Store.

Settings are read from the ``[tool.cst_refactor]`` table of the nearest
``pyproject.toml`` and overridden by explicit (CLI) arguments.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from cst_refactor.core.metavars import MetavarSyntax
from cst_refactor.enums import FragmentKind, ResolverMode

logger = logging.getLogger(__name__)


class RuntimeConfig(BaseModel):
  """
  Global configuration container for the refactoring engine.
  """

  metavar_prefix: str = Field("__", description="Prefix marking an identifier as a metavariable.")
  multi_prefix: str = Field("__m_", description="Prefix marking a statement-sequence metavariable.")
  resolver: ResolverMode = Field(ResolverMode.IMPORTS, description="How paths are resolved when matching.")
  strict_mode: bool = Field(False, description="If True, any rule failure fails the whole file.")
  rules_file: Optional[Path] = Field(None, description="TOML or JSON file of rewrite rules.")
  types: Dict[str, FragmentKind] = Field(default_factory=dict, description="Declared metavariable kinds.")

  @field_validator("metavar_prefix", "multi_prefix")
  @classmethod
  def validate_prefix(cls, v: str) -> str:
    """
    Ensures a prefix can start a Python identifier.

    Raises:
        ValueError: If the prefix is empty or not identifier-like.
    """
    if not v or not v.isidentifier():
      raise ValueError(f"Invalid metavariable prefix: '{v}'")
    return v

  @model_validator(mode="after")
  def check_multi_prefix(self) -> "RuntimeConfig":
    if not self.multi_prefix.startswith(self.metavar_prefix):
      raise ValueError(f"multi_prefix '{self.multi_prefix}' must extend metavar_prefix '{self.metavar_prefix}'")
    return self

  @property
  def syntax(self) -> MetavarSyntax:
    """The metavariable spelling rules these settings describe."""
    return MetavarSyntax(self.metavar_prefix, self.multi_prefix)

  @classmethod
  def load(
    cls,
    resolver: Optional[str] = None,
    strict_mode: Optional[bool] = None,
    rules_file: Optional[Path] = None,
    types: Optional[Dict[str, str]] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Args:
        resolver (Optional[str]): Override for the resolver mode.
        strict_mode (Optional[bool]): Override for strict mode setting.
        rules_file (Optional[Path]): Override for the rules file.
        types (Optional[Dict]): Additional metavariable kinds (merged over TOML).
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, toml_dir = _load_toml_settings(start_dir)

    final_resolver = resolver or toml_config.get("resolver", ResolverMode.IMPORTS.value)

    if strict_mode is not None:
      final_strict = strict_mode
    else:
      final_strict = toml_config.get("strict_mode", False)

    final_rules = rules_file
    if not final_rules and "rules_file" in toml_config:
      # Relative to the pyproject.toml that declared it
      final_rules = Path(toml_config["rules_file"])
      if toml_dir and not final_rules.is_absolute():
        final_rules = (toml_dir / final_rules).resolve()

    final_types = {**toml_config.get("types", {}), **(types or {})}

    return cls(
      metavar_prefix=toml_config.get("metavar_prefix", "__"),
      multi_prefix=toml_config.get("multi_prefix", "__m_"),
      resolver=final_resolver,
      strict_mode=final_strict,
      rules_file=final_rules,
      types=final_types,
    )


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches parents for 'pyproject.toml' and extracts the tool table.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory it was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable %s: %s", toml_path, exc)
        return {}, None

      tool_section = data.get("tool", {})
      return tool_section.get("cst_refactor", {}), parent

  return {}, None


def parse_type_declarations(items: Optional[List[str]]) -> Dict[str, str]:
  """
  Parses ``name=kind`` strings (from repeated ``--type`` flags) into a dictionary.

  Kinds are lower-cased; whether they name a real `FragmentKind` is checked when
  the dictionary reaches `RuntimeConfig`.

  Args:
      items (Optional[List[str]]): Raw CLI strings directly from argparse.

  Returns:
      Dict[str, str]: Metavariable name to kind name.
  """
  declared: Dict[str, str] = {}
  for item in items or []:
    name, sep, kind = item.partition("=")
    if not sep or not name.strip() or not kind.strip():
      logger.warning("Ignoring invalid type declaration: '%s'. Expected 'name=kind'.", item)
      continue
    declared[name.strip()] = kind.strip().lower()
  return declared
