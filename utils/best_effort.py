import logging

_log = logging.getLogger(__name__)


def best_effort(label: str, fn, *args, logger=None, **kwargs):
    """
    Run a side action whose failure must never reach the caller.
    Returns the action's result, or None if it raised.
    """
    try:
        return fn(*args, **kwargs)
    except Exception:
        (logger or _log).exception("%s failed (ignored)", label)
        return None
