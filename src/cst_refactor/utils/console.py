"""
Central Logging and Console Utilities.

Routes the application's output through the standard `logging` library,
formatted by `rich`.

1.  **Standard Logging Integration**: Configures a `RichHandler` on the root
    logger and provides adapters (`log_success`, `log_warning`, ...) for the
    CLI's user-facing messages.
2.  **Console Injection**: A proxy around the Rich Console lets the output
    destination (stdout, or an in-memory buffer in tests) be swapped at runtime
    via `set_console` while modules keep importing the same `console` object.

Attributes:
    console (_ConsoleProxy): A global, stable reference to the active Rich Console.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Custom level between INFO and WARNING
SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

_THEME = Theme(
  {
    "logging.level.success": "green",
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "path": "bold blue",
    "code": "bold magenta",
    "metavar": "bold cyan",
  }
)


class _ConsoleProxy:
  """
  A proxy around `rich.console.Console`.

  All printing is forwarded to a swappable backend. Swapping the backend also
  re-points the logging handler, so `logging.info(...)` follows the console.

  Attributes:
      _backend (Console): The active Rich Console instance.
  """

  def __init__(self) -> None:
    self._backend: Console = Console(theme=_THEME)
    self._configure_logging()

  def set_backend(self, new_console: Console) -> None:
    """
    Injects a new Console backend and updates logging handlers.

    Args:
        new_console (Console): The new Rich Console instance to use.
    """
    self._backend = new_console
    self._configure_logging()

  def reset(self) -> None:
    """Resets the proxy to a fresh standard output console."""
    self._backend = Console(theme=_THEME)
    self._configure_logging()

  @property
  def backend(self) -> Console:
    """The currently active Console."""
    return self._backend

  def _configure_logging(self) -> None:
    # Drop handlers bound to a previous backend
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
      if isinstance(handler, RichHandler):
        root_logger.removeHandler(handler)

    rich_handler = RichHandler(
      console=self._backend,
      show_time=False,
      omit_repeated_times=False,
      show_path=False,
      markup=True,
      rich_tracebacks=True,
    )
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(rich_handler)

  def print(self, *args: Any, **kwargs: Any) -> None:
    """Forwards `print` calls to the active backend."""
    self._backend.print(*args, **kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


console = _ConsoleProxy()


def set_console(new_console: Console) -> None:
  """
  Injects a specific console instance for printing and logging.

  Args:
      new_console (Console): The configured Rich console to use globally.
  """
  console.set_backend(new_console)


def reset_console() -> None:
  """Resets logging and console to standard output."""
  console.reset()


def set_verbosity(verbose: bool) -> None:
  """
  Switches the root logger between INFO and DEBUG.

  Args:
      verbose: If True, engine debug traces (matches, rewrites) are shown.
  """
  logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)


# Level and icon prefix per user-facing message category
_CATEGORIES = {
  "info": (logging.INFO, "ℹ️ "),
  "success": (SUCCESS_LEVEL_NUM, "✅"),
  "warning": (logging.WARNING, "⚠️ "),
  "error": (logging.ERROR, "❌"),
}


def _emit(category: str, msg: str) -> None:
  level, icon = _CATEGORIES[category]
  logging.log(level, f"{icon} {msg}", extra={"markup": True})


def log_info(msg: str) -> None:
  """
  Logs an informational message. `msg` may carry rich markup like [path].
  """
  _emit("info", msg)


def log_success(msg: str) -> None:
  """Logs a completed file or batch."""
  _emit("success", msg)


def log_warning(msg: str) -> None:
  """Logs a recoverable problem such as a skipped rule."""
  _emit("warning", msg)


def log_error(msg: str) -> None:
  """
  Logs a failure that aborts the current file or command.

  Args:
      msg (str): The message content.
  """
  _emit("error", msg)
