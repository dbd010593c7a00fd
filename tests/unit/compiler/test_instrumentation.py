"""Unit tests for compilation instrumentation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from floe_flow.compiler.instrumentation import (
    COMPILATION_DURATION_METRIC,
    COMPILATION_FAILED_METRIC,
    COMPILATION_SUCCESSFUL_METRIC,
    NoOpInstrumentation,
    OpenTelemetryInstrumentation,
)

if TYPE_CHECKING:
    from conftest import MetricsProbe
    from opentelemetry.sdk.metrics import MeterProvider


class TestNoOpInstrumentation:
    """Tests for NoOpInstrumentation."""

    def test_disabled(self) -> None:
        """The no-op variant reports itself disabled."""
        assert NoOpInstrumentation().enabled is False

    def test_measure_passes_through(self) -> None:
        """measure() neither swallows nor alters exceptions."""
        instrumentation = NoOpInstrumentation()
        with instrumentation.measure():
            pass
        with pytest.raises(RuntimeError, match="boom"):
            with instrumentation.measure():
                raise RuntimeError("boom")


class TestOpenTelemetryInstrumentation:
    """Tests for OpenTelemetryInstrumentation."""

    def test_success_recorded(
        self,
        meter_provider: MeterProvider,
        metrics_probe: MetricsProbe,
    ) -> None:
        """A successful block increments the success counter and timer."""
        instrumentation = OpenTelemetryInstrumentation(meter_provider.get_meter("test"))
        assert instrumentation.enabled is True

        with instrumentation.measure({"flow.group": "group1"}):
            pass

        assert metrics_probe.counter(COMPILATION_SUCCESSFUL_METRIC) == 1
        assert metrics_probe.histogram_count(COMPILATION_DURATION_METRIC) == 1
        assert metrics_probe.counter(COMPILATION_FAILED_METRIC) == 0

    def test_failure_recorded_once(
        self,
        meter_provider: MeterProvider,
        metrics_probe: MetricsProbe,
    ) -> None:
        """A failing block increments only the failure counter, once."""
        instrumentation = OpenTelemetryInstrumentation(meter_provider.get_meter("test"))

        with pytest.raises(ValueError):
            with instrumentation.measure():
                raise ValueError("bad flow")

        assert metrics_probe.counter(COMPILATION_FAILED_METRIC) == 1
        assert metrics_probe.counter(COMPILATION_SUCCESSFUL_METRIC) == 0
        assert metrics_probe.histogram_count(COMPILATION_DURATION_METRIC) == 0

    def test_duration_in_milliseconds(
        self,
        meter_provider: MeterProvider,
        metrics_probe: MetricsProbe,
    ) -> None:
        """Recorded durations are non-negative milliseconds."""
        instrumentation = OpenTelemetryInstrumentation(meter_provider.get_meter("test"))
        instrumentation.record_success(12.5)

        points = metrics_probe.data_points()[COMPILATION_DURATION_METRIC]
        assert sum(point.sum for point in points) == pytest.approx(12.5)

    def test_default_meter(self) -> None:
        """Without a meter, the global floe.flow meter is used."""
        instrumentation = OpenTelemetryInstrumentation()
        with instrumentation.measure():
            pass
