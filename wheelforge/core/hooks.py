"""Hook loading — ``"module:attribute"`` strings to callables.

Hooks are resolved once, when the pipeline is configured, so a typo in a
hook name fails before any build work starts.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from typing import Any

from wheelforge.core.errors import MissingParameterError, WheelforgeError

logger = logging.getLogger(__name__)


class HookLoadError(WheelforgeError):
    """Raised when a hook reference cannot be imported or is not callable."""


def load_hook(reference: str | None) -> Callable[..., Any] | None:
    """Import and return the callable named by ``"package.module:func"``.

    Returns None for an empty reference.
    """
    if not reference:
        return None
    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name or not attr_path:
        raise HookLoadError(
            f"Hook reference {reference!r} must look like 'module:function'"
        )
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise HookLoadError(f"Cannot import hook module {module_name!r}: {exc}") from exc

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError:
            raise HookLoadError(
                f"Hook {reference!r}: {module_name} has no attribute {attr_path!r}"
            ) from None

    if not callable(target):
        raise HookLoadError(f"Hook {reference!r} is not callable")
    logger.debug("Loaded hook %s", reference)
    return target


def require_hook(reference: str | None, name: str) -> Callable[..., Any]:
    """Like ``load_hook`` but the hook must be configured."""
    hook = load_hook(reference)
    if hook is None:
        raise MissingParameterError(f"{name} hook not defined")
    return hook
