"""Shared pytest fixtures for floe-flow tests.

This module provides common fixtures used across unit and integration tests:
sample flow and topology specs, a YAML template catalog on disk, and an
in-memory OpenTelemetry metric reader.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog
import yaml
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from floe_flow.schemas import FlowSpec, TopologySpec


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def sample_flow_config() -> dict[str, Any]:
    """Return the configuration of the reference flow ``/group1/flowA``."""
    return {
        "flow.name": "flowA",
        "flow.group": "group1",
        "job.schedule": "0 0 * * *",
    }


@pytest.fixture
def flow_spec(sample_flow_config: dict[str, Any]) -> FlowSpec:
    """Return a single-hop flow with no template reference."""
    return FlowSpec(
        uri="/group1/flowA",
        config=sample_flow_config,
        description="Reference flow",
        version="3",
    )


@pytest.fixture
def routed_flow_config() -> dict[str, Any]:
    """Return a flow configuration routed from ``raw`` to ``warehouse``."""
    return {
        "flow.name": "ingest",
        "flow.group": "sales",
        "flow.sourceIdentifier": "raw",
        "flow.destinationIdentifier": "warehouse",
        "job.schedule": "*/15 * * * *",
        "source.path": "/data/raw/sales",
    }


@pytest.fixture
def routed_flow_spec(routed_flow_config: dict[str, Any]) -> FlowSpec:
    """Return a flow with source and destination identifiers."""
    return FlowSpec(uri="/sales/ingest", config=routed_flow_config)


@pytest.fixture
def topologies() -> list[TopologySpec]:
    """Return topologies forming the graph archive -> raw -> staging -> warehouse.

    - ``cluster-a``: raw:staging, archive:raw
    - ``cluster-b``: staging:warehouse
    - ``cluster-c``: raw:staging (same edge as cluster-a)

    Listed out of URI order on purpose.
    """
    return [
        TopologySpec(
            uri="/topologies/cluster-b",
            config={
                "topology.capabilities": "staging:warehouse",
                "cluster.endpoint": "https://cluster-b.internal",
            },
        ),
        TopologySpec(
            uri="/topologies/cluster-a",
            config={
                "topology.capabilities": ["raw:staging", "archive:raw"],
                "cluster.endpoint": "https://cluster-a.internal",
            },
        ),
        TopologySpec(
            uri="/topologies/cluster-c",
            config={
                "topology.capabilities": [{"source": "raw", "destination": "staging"}],
            },
        ),
    ]


def write_template(directory: Path, name: str, document: dict[str, Any]) -> Path:
    """Write a YAML template document into ``directory``."""
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(document, sort_keys=False))
    return path


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Create a template catalog directory with a small template hierarchy.

    - ``base.yaml``: shared defaults
    - ``ingest.yaml``: inherits base, requires ``source.path``
    - ``publish.yaml``: standalone defaults
    - ``broken.yaml``: not valid YAML
    """
    root = tmp_path / "templates"
    root.mkdir()
    write_template(
        root,
        "base.yaml",
        {
            "description": "Shared defaults",
            "config": {
                "writer.parallelism": 2,
                "retry.attempts": 3,
            },
        },
    )
    write_template(
        root,
        "ingest.yaml",
        {
            "description": "Ingest raw files",
            "inherits": ["base.yaml"],
            "required_attributes": ["source.path"],
            "config": {
                "source.format": "avro",
                "source.path": "/data/default",
                "writer.parallelism": 4,
                "job.schedule": "@hourly",
            },
        },
    )
    write_template(
        root,
        "publish.yaml",
        {
            "config": {
                "publish.target": "warehouse",
                "source.format": "parquet",
            },
        },
    )
    (root / "broken.yaml").write_text("config: [unclosed\n")
    return root


@pytest.fixture
def metric_reader() -> InMemoryMetricReader:
    """Return an in-memory metric reader."""
    return InMemoryMetricReader()


@pytest.fixture
def meter_provider(metric_reader: InMemoryMetricReader) -> Iterator[MeterProvider]:
    """Yield a MeterProvider exporting to ``metric_reader``."""
    provider = MeterProvider(metric_readers=[metric_reader])

    yield provider

    # Cleanup
    provider.shutdown()


class MetricsProbe:
    """Read recorded metric values back from an InMemoryMetricReader."""

    def __init__(self, reader: InMemoryMetricReader) -> None:
        self.reader = reader

    def data_points(self) -> dict[str, list[Any]]:
        """Return data points by metric name."""
        points: dict[str, list[Any]] = {}
        data = self.reader.get_metrics_data()
        if data is None:
            return points
        for resource_metrics in data.resource_metrics:
            for scope_metrics in resource_metrics.scope_metrics:
                for metric in scope_metrics.metrics:
                    points.setdefault(metric.name, []).extend(metric.data.data_points)
        return points

    def counter(self, name: str) -> int:
        """Return the value of counter ``name`` (0 if never incremented)."""
        return int(sum(point.value for point in self.data_points().get(name, [])))

    def histogram_count(self, name: str) -> int:
        """Return how many values histogram ``name`` has recorded."""
        return int(sum(point.count for point in self.data_points().get(name, [])))


@pytest.fixture
def metrics_probe(metric_reader: InMemoryMetricReader) -> MetricsProbe:
    """Return a probe over ``metric_reader``."""
    return MetricsProbe(metric_reader)
