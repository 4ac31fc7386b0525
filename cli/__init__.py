"""CLI package for running and talking to the readings API server."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# The Typer application lives in ``cli.app``.  It is not re-exported from the
# package root so that ``cli.app`` keeps resolving to the module itself; tests
# patch ``ApiClient`` and ``uvicorn`` on that module path.

__all__ = []
