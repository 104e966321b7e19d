"""Logging and tracing for Identity Kit.

Every component logs through ``get_logger()`` and wraps its network work in
``trace_operation`` spans. Nothing is configured until the host application
calls ``configure_telemetry``, so by default structlog and OpenTelemetry
behave as the application set them up.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from .config import TelemetryConfig

INSTRUMENTATION_NAME = "identity-kit"
INSTRUMENTATION_VERSION = "1.0.0"

_tracer: trace.Tracer | None = None
_logger: structlog.typing.FilteringBoundLogger | None = None


def get_tracer() -> trace.Tracer:
    """Tracer for Identity Kit spans."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(INSTRUMENTATION_NAME, INSTRUMENTATION_VERSION)
    return _tracer


def get_logger() -> structlog.typing.FilteringBoundLogger:
    """Logger shared by Identity Kit components."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(INSTRUMENTATION_NAME)
    return _logger


def configure_telemetry(config: TelemetryConfig) -> None:
    """Apply a telemetry configuration.

    Disabled telemetry swaps in a no-op tracer and a logger that drops
    everything. Enabled telemetry renders JSON log lines at ``log_level`` and
    names spans after ``service_name``.
    """
    global _tracer, _logger

    if not config.enabled:
        _tracer = trace.NoOpTracer()
        _logger = structlog.wrap_logger(
            structlog.PrintLogger(),
            wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL + 1),
        )
        return

    level = logging.getLevelNamesMapping()[config.log_level]
    structlog.configure(
        processors=_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _tracer = trace.get_tracer(config.service_name, INSTRUMENTATION_VERSION)
    _logger = structlog.get_logger(config.service_name)


def _processors() -> list[structlog.typing.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: Mapping[str, Any] | None = None,
) -> Iterator[trace.Span]:
    """Run a block inside a span named ``identity_kit.<name>``.

    Attributes with a None value are skipped. An exception leaving the block
    marks the span as failed and is re-raised unchanged.
    """
    span_attributes = {
        key: value for key, value in (attributes or {}).items() if value is not None
    }
    with get_tracer().start_as_current_span(
        f"identity_kit.{name}",
        attributes=span_attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, type(e).__name__))
            raise
