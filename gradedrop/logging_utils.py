"""
Logging for gradedrop.

setup_logging() picks the handler for where we run: structured JSON through
google-cloud-logging on Cloud Functions/Run, plain console lines elsewhere.

@log_function wraps the handful of calls worth tracing (rubric loading,
ledger appends, intake, secret lookups). It never writes secrets or student
payloads to the log: secret parameters are masked, payload parameters are
reduced to their size.
"""

import dataclasses
import functools
import inspect
import logging
import os
import time
from collections.abc import Mapping
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "GRADEDROP_LOG_LEVEL"
LOCAL_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Never logged, not even truncated
SENSITIVE_PARAMS = frozenset({'secret', 'expected_secret', 'password', 'token', 'api_key'})

# Student data: logged as a size
PAYLOAD_PARAMS = frozenset({'body', 'data'})


def _resolve_level(level: Optional[int | str]) -> int:
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def setup_logging(level: Optional[int | str] = None) -> None:
    """Configure root logging once per process.

    K_SERVICE is set by Cloud Functions and Cloud Run; there the records go
    through google-cloud-logging so severity and source location survive.
    """
    level = _resolve_level(level)
    if os.environ.get("K_SERVICE"):
        import google.cloud.logging
        client = google.cloud.logging.Client()
        client.setup_logging(log_level=level)
    else:
        logging.basicConfig(level=level, format=LOCAL_FORMAT)


def _size(value: Any) -> str:
    if isinstance(value, (str, bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, Mapping):
        return f"<{len(value)} keys>"
    if value is None:
        return "None"
    return f"<{type(value).__name__}>"


def _summarize(value: Any, max_len: int = 120) -> str:
    """One-line description of a return value."""
    if value is None or isinstance(value, (bool, int, float)):
        return repr(value)
    if isinstance(value, str):
        return repr(value) if len(value) <= max_len else f"str({len(value)} chars)"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"{type(value).__name__}({len(value)} items)"
    if isinstance(value, Mapping):
        return f"{type(value).__name__}({len(value)} keys)"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        scalars = [
            f"{f.name}={getattr(value, f.name)!r}"
            for f in dataclasses.fields(value)
            if isinstance(getattr(value, f.name), (bool, int, float, str, type(None)))
        ]
        return f"{type(value).__name__}({', '.join(scalars)})"
    return type(value).__name__


def _format_params(func: Callable, args: tuple, kwargs: dict) -> str:
    bound = inspect.signature(func).bind(*args, **kwargs)

    parts = []
    for name, value in bound.arguments.items():
        if name in ('self', 'cls'):
            continue
        if name in SENSITIVE_PARAMS:
            parts.append(f"{name}=***")
        elif name in PAYLOAD_PARAMS:
            parts.append(f"{name}={_size(value)}")
        else:
            parts.append(f"{name}={_summarize(value, max_len=80)}")
    return ", ".join(parts)


def log_function(func: Optional[Callable] = None, *, level: int = logging.INFO) -> Callable:
    """
    Log entry, exit with a result summary, and duration of ``func``.

    Usage:
        @log_function
        def load_rubric(path): ...

        @log_function(level=logging.DEBUG)
        def append(self, submission): ...

    Exceptions are logged at WARNING with their type and re-raised unchanged.
    """
    if func is None:
        return functools.partial(log_function, level=level)

    qual_name = func.__qualname__

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if logger.isEnabledFor(level):
            try:
                params = _format_params(func, args, kwargs)
            except TypeError:
                params = "?"
            logger.log(level, f"▶ {qual_name}({params})")

        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.warning(f"◀ {qual_name} raised {type(e).__name__} [{time.perf_counter() - start:.3f}s]")
            raise
        logger.log(level, f"◀ {qual_name} → {_summarize(result)} [{time.perf_counter() - start:.3f}s]")
        return result

    return wrapper
