"""Invoke helpers: call user callbacks without letting them break the router.

User code runs at several points of a navigation (``done`` callbacks, event
listeners, plugin hooks). An exception raised there is logged and dropped so
that the router's own state stays consistent.

Usage::

    from wayfinder._internal.invoke import invoke_safely

    invoke_safely(logger, "done callback", done, err, state)
"""

import logging
from collections.abc import Callable
from typing import Any


def invoke_safely(
    logger: logging.Logger,
    label: str,
    callback: Callable[..., Any] | None,
    *args: Any,
) -> Any:
    """Call ``callback(*args)``; log and swallow any ``Exception`` it raises.

    Returns the callback's result, or ``None`` when it raised or is ``None``.
    """
    if callback is None:
        return None
    try:
        return callback(*args)
    except Exception:
        logger.exception("Error in %s %r", label, callback)
        return None
