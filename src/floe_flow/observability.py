"""Structured logging, OpenTelemetry spans and meters for floe-flow.

This module provides:
- structlog setup for applications embedding the compiler
- The ``floe.flow`` tracer and meter
- ``span()`` for any traced compiler step and ``compile_operation()`` for a
  whole compile call, which also binds the flow URI into the log context
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import metrics, trace
from opentelemetry.trace import SpanKind, Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.metrics import Meter
    from opentelemetry.trace import Span, Tracer
    from structlog.stdlib import BoundLogger

    from floe_flow.schemas.flow_spec import FlowSpec

# Instrumentation scope shared by logs, traces and metrics
TRACER_NAME = "floe.flow"

_logger: BoundLogger | None = None
_tracer: Tracer | None = None


def get_logger() -> BoundLogger:
    """Return the ``floe.flow`` structlog logger."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(TRACER_NAME)
    return _logger


def get_tracer() -> Tracer:
    """Return the ``floe.flow`` OpenTelemetry tracer."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def get_meter(name: str = TRACER_NAME) -> Meter:
    """Return a meter from the global MeterProvider.

    Without an SDK provider installed this is a no-op proxy meter, so
    instruments can always be created and recorded to.

    Args:
        name: Instrumentation scope name.
    """
    return metrics.get_meter(name)


def configure_logging(*, log_level: str = "INFO", json_format: bool = True) -> None:
    """Route structlog output through stdlib logging.

    Context bound with ``structlog.contextvars`` (such as the flow URI bound
    by ``compile_operation``) is merged into every event.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Render JSON lines when True, console output otherwise.

    Example:
        >>> configure_logging(log_level="DEBUG", json_format=False)
    """
    renderer: Any = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=log_level.upper())


@contextmanager
def span(
    name: str,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Trace the enclosed block.

    The span ends with status OK, or with ERROR and the recorded exception,
    which is logged as ``<name>_failed`` and re-raised.

    Args:
        name: Span name, also the prefix of the log events.
        kind: Span kind.
        attributes: Span attributes, repeated on the log events.

    Yields:
        The active span.
    """
    attrs = attributes or {}
    logger = get_logger()

    with get_tracer().start_as_current_span(name, kind=kind, attributes=attrs) as current:
        logger.debug(f"{name}_started", **attrs)
        try:
            yield current
        except Exception as exc:
            current.set_status(Status(StatusCode.ERROR, str(exc)))
            current.record_exception(exc)
            logger.error(f"{name}_failed", error=str(exc), **attrs)
            raise
        current.set_status(Status(StatusCode.OK))
        logger.debug(f"{name}_completed", **attrs)


def flow_attributes(flow_spec: object) -> dict[str, str]:
    """Span attributes describing the flow being compiled.

    Accepts any object so that invalid compile inputs can still be traced.
    """
    uri = getattr(flow_spec, "uri", None)
    attrs = {"flow.uri": str(uri) if uri is not None else type(flow_spec).__name__}
    for attribute, key in (
        ("source_identifier", "flow.source"),
        ("destination_identifier", "flow.destination"),
    ):
        value = getattr(flow_spec, attribute, None)
        if value is not None:
            attrs[key] = str(value)
    return attrs


@contextmanager
def compile_operation(flow_spec: FlowSpec | object) -> Iterator[Span]:
    """Trace one compile call and bind its flow URI into the log context.

    Example:
        >>> with compile_operation(flow_spec):
        ...     hops = routing_policy.route(flow_spec, snapshot)
    """
    attrs = flow_attributes(flow_spec)
    with structlog.contextvars.bound_contextvars(flow_uri=attrs["flow.uri"]):
        with span("compile_flow", attributes=attrs) as current:
            yield current
