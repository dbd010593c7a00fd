"""Compilation instrumentation for floe-flow.

Each compile call is measured: a success counter and a duration histogram on
success, a failure counter on failure. Instrumentation is optional; the
no-op variant is used when it is disabled and never changes compile results.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from floe_flow.observability import get_meter

if TYPE_CHECKING:
    from opentelemetry.metrics import Meter

# Metric names
COMPILATION_SUCCESSFUL_METRIC = "floe.flow.compilation.successful"
COMPILATION_FAILED_METRIC = "floe.flow.compilation.failed"
COMPILATION_DURATION_METRIC = "floe.flow.compilation.duration"


class CompilationInstrumentation:
    """Records compile outcomes. The base class records nothing."""

    enabled = False

    def record_success(self, duration_ms: float, attributes: dict[str, str] | None = None) -> None:
        """Record a successful compilation and its duration."""

    def record_failure(self, attributes: dict[str, str] | None = None) -> None:
        """Record a failed compilation."""

    @contextmanager
    def measure(self, attributes: dict[str, str] | None = None) -> Iterator[None]:
        """Time the enclosed block and record its outcome.

        Exceptions are recorded as failures and re-raised.

        Example:
            >>> with instrumentation.measure({"flow.group": "group1"}):
            ...     dag = build_dag()
        """
        start = time.perf_counter()
        try:
            yield
        except Exception:
            self.record_failure(attributes)
            raise
        self.record_success((time.perf_counter() - start) * 1000.0, attributes)


class NoOpInstrumentation(CompilationInstrumentation):
    """Instrumentation used when metrics are disabled."""

    pass


class OpenTelemetryInstrumentation(CompilationInstrumentation):
    """Instrumentation backed by OpenTelemetry metrics.

    Attributes:
        meter: Meter the instruments are created from.

    Example:
        >>> from opentelemetry.sdk.metrics import MeterProvider
        >>> meter = MeterProvider().get_meter("floe.flow")
        >>> instrumentation = OpenTelemetryInstrumentation(meter)
    """

    enabled = True

    def __init__(self, meter: Meter | None = None) -> None:
        """Initialize the instruments.

        Args:
            meter: Meter to use. Defaults to the global ``floe.flow`` meter.
        """
        self.meter = meter if meter is not None else get_meter()
        self._successful = self.meter.create_counter(
            COMPILATION_SUCCESSFUL_METRIC,
            unit="1",
            description="Number of flows compiled successfully",
        )
        self._failed = self.meter.create_counter(
            COMPILATION_FAILED_METRIC,
            unit="1",
            description="Number of flow compilations that failed",
        )
        self._duration = self.meter.create_histogram(
            COMPILATION_DURATION_METRIC,
            unit="ms",
            description="Duration of successful flow compilations",
        )

    def record_success(self, duration_ms: float, attributes: dict[str, str] | None = None) -> None:
        self._successful.add(1, attributes=attributes)
        self._duration.record(duration_ms, attributes=attributes)

    def record_failure(self, attributes: dict[str, str] | None = None) -> None:
        self._failed.add(1, attributes=attributes)
