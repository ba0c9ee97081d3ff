import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

_logger = logging.getLogger("versionslot")


def _create_rich_handler():
    # stdout carries the command output, everything else goes to stderr
    console = Console(stderr=True)
    h = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=True,
    )
    h.setFormatter(logging.Formatter("%(message)s"))
    return h


_handler = _create_rich_handler()
_logger.setLevel(logging.INFO)
_logger.propagate = False
_logger.addHandler(_handler)


def _log(level, msg):
    _logger.log(level, msg)


def debug(msg):
    _log(logging.DEBUG, msg)


def info(msg):
    _log(logging.INFO, msg)


def warning(msg):
    _log(logging.WARNING, msg)


def error(msg):
    _log(logging.ERROR, msg)


def set_default_level(level):
    if isinstance(level, str):
        level = level.upper()
    _logger.setLevel(level)


def is_debug_enabled() -> bool:
    return _logger.isEnabledFor(logging.DEBUG)


def plain(text) -> str:
    """Escapes text (tool output, user values) so it is not read as rich markup."""
    return escape(str(text))
