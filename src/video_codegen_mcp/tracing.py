"""Optional MLflow tracing: tool spans via ``trace()``, plus Gemini autolog.

A no-op unless ``mlflow-tracing`` is installed and ``MLFLOW_TRACKING_URI``
is set (``CODEGEN_TRACING_ENABLED=false`` forces it off).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

try:
    import mlflow
    import mlflow.gemini

    _HAS_MLFLOW = True
except ImportError:
    _HAS_MLFLOW = False


def is_enabled() -> bool:
    """Return True when mlflow-tracing is installed and not explicitly disabled."""
    if not _HAS_MLFLOW:
        return False
    from .config import get_config

    return get_config().tracing_enabled


def trace(
    func: Callable | None = None,
    *,
    name: str | None = None,
    span_type: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Callable:
    """``mlflow.trace`` when tracing is on, identity otherwise."""
    if not is_enabled():
        return func if func is not None else (lambda f: f)
    return mlflow.trace(func, name=name, span_type=span_type, attributes=attributes)


def setup() -> None:
    """Point MLflow at the configured experiment; setup failures only log."""
    if not is_enabled():
        return

    from .config import get_config

    cfg = get_config()
    tracking_uri = cfg.mlflow_tracking_uri
    experiment = cfg.mlflow_experiment_name

    try:
        mlflow.set_tracking_uri(tracking_uri)
        mlflow.set_experiment(experiment)
        if cfg.provider == "gemini":
            mlflow.gemini.autolog()
        logger.info("MLflow tracing enabled (uri=%s, experiment=%s)", tracking_uri, experiment)
    except Exception:
        logger.warning("MLflow tracing setup failed — continuing without tracing", exc_info=True)


def shutdown() -> None:
    """Flush pending async traces."""
    if not is_enabled():
        return

    try:
        mlflow.flush_trace_async_logging()
        logger.info("MLflow traces flushed")
    except Exception:
        logger.warning("MLflow trace flush failed", exc_info=True)
