"""Logging for the ledger: one handler, tagged with the calling principal.

- ``configure_logging(...)`` installs the single ``StreamHandler`` on the
  ``expense_ledger`` logger. The CLI root callback calls it once.
- ``adopt_loggers(*names)`` routes third-party loggers (uvicorn's, under
  ``serve``) through that same handler, so the API process writes one log
  format instead of two.
- ``bound_principal(owner_id)`` tags every record emitted inside the block
  with ``principal=<owner_id>``. The web layer binds it per request, so a
  store line such as "Updated transaction id=7" says who made the change
  even though the message itself does not.
- ``get_logger(name)`` is what library modules call; it stays silent until an
  entrypoint configures output.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import IO

_PKG_LOGGER_NAME = "expense_ledger"
_LEVEL_ENV_VAR = "EXPENSE_LEDGER_LOG_LEVEL"
_NO_PRINCIPAL = "-"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s [principal=%(principal)s] %(message)s"

_principal: ContextVar[str] = ContextVar("expense_ledger_principal", default=_NO_PRINCIPAL)
_handler: logging.Handler | None = None


class PrincipalFilter(logging.Filter):
    """Stamp ``record.principal`` from the request context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.principal = _principal.get()
        return True


@contextmanager
def bound_principal(owner_id: str | None) -> Iterator[None]:
    token = _principal.set(owner_id or _NO_PRINCIPAL)
    try:
        yield
    finally:
        _principal.reset(token)


def current_principal() -> str:
    return _principal.get()


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(_LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> logging.Handler:
    """Install the package handler once and return it.

    Parameters
    ----------
    level:
        ``int`` or level name. ``None`` reads ``EXPENSE_LEDGER_LOG_LEVEL`` and
        falls back to ``INFO``; unknown names also mean ``INFO``.
    fmt:
        Format string; defaults to :data:`DEFAULT_FORMAT`. Any format may use
        ``%(principal)s``.
    stream:
        Output stream (defaults to ``sys.stderr``).
    """

    global _handler
    if _handler is not None:
        return _handler

    resolved = _resolve_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.addFilter(PrincipalFilter())
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)
    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False

    _handler = handler
    return handler


def adopt_loggers(*names: str) -> None:
    """Send the named loggers' records through the package handler."""

    handler = configure_logging()
    for name in names:
        logger = logging.getLogger(name)
        for h in list(logger.handlers):
            logger.removeHandler(h)
        logger.addHandler(handler)
        logger.setLevel(handler.level)
        logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name, silent until an entrypoint configures output."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_FORMAT",
    "PrincipalFilter",
    "adopt_loggers",
    "bound_principal",
    "configure_logging",
    "current_principal",
    "get_logger",
]
