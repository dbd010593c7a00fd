"""Unit tests for routing and template selection policies."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any

import pytest

from floe_flow.compiler.routing import (
    FirstTemplateSelector,
    IdentityRoutingPolicy,
    PerHopTemplateSelector,
    RoutingPolicy,
    ShortestPathRoutingPolicy,
    TemplateSelector,
)
from floe_flow.errors import NoRouteError
from floe_flow.schemas import FlowSpec, TopologySpec


@pytest.fixture
def snapshot(topologies: list[TopologySpec]) -> MappingProxyType[str, TopologySpec]:
    """Return the test topologies as a registry snapshot."""
    return MappingProxyType({t.uri: t for t in topologies})


def _routed_flow(source: str, destination: str, **config: Any) -> FlowSpec:
    return FlowSpec(
        uri="/group1/flowA",
        config={
            "flow.sourceIdentifier": source,
            "flow.destinationIdentifier": destination,
            **config,
        },
    )


class TestIdentityRoutingPolicy:
    """Tests for IdentityRoutingPolicy."""

    def test_first_topology_by_uri(
        self,
        flow_spec: FlowSpec,
        snapshot: MappingProxyType[str, TopologySpec],
    ) -> None:
        """Without identifiers, the first topology by URI runs the flow."""
        hops = IdentityRoutingPolicy().route(flow_spec, snapshot)
        assert len(hops) == 1
        assert hops[0].topology.uri == "/topologies/cluster-a"
        assert hops[0].source is None
        assert hops[0].destination is None

    def test_matches_capability(self, snapshot: MappingProxyType[str, TopologySpec]) -> None:
        """With identifiers, only supporting topologies are considered."""
        hops = IdentityRoutingPolicy().route(_routed_flow("staging", "warehouse"), snapshot)
        assert [hop.topology.uri for hop in hops] == ["/topologies/cluster-b"]
        assert (hops[0].source, hops[0].destination) == ("staging", "warehouse")

    def test_ties_broken_by_uri(self, snapshot: MappingProxyType[str, TopologySpec]) -> None:
        """When several topologies match, the first URI wins."""
        hops = IdentityRoutingPolicy().route(_routed_flow("raw", "staging"), snapshot)
        assert hops[0].topology.uri == "/topologies/cluster-a"

    def test_no_matching_topology(self, snapshot: MappingProxyType[str, TopologySpec]) -> None:
        """No supporting topology is a NoRouteError."""
        with pytest.raises(NoRouteError) as exc_info:
            IdentityRoutingPolicy().route(_routed_flow("raw", "warehouse"), snapshot)
        assert exc_info.value.flow_uri == "/group1/flowA"
        assert exc_info.value.source == "raw"

    def test_empty_snapshot(self, flow_spec: FlowSpec) -> None:
        """No topologies at all is a NoRouteError."""
        with pytest.raises(NoRouteError):
            IdentityRoutingPolicy().route(flow_spec, MappingProxyType({}))

    def test_satisfies_protocol(self) -> None:
        """Both routing policies satisfy RoutingPolicy."""
        assert isinstance(IdentityRoutingPolicy(), RoutingPolicy)
        assert isinstance(ShortestPathRoutingPolicy(), RoutingPolicy)


class TestShortestPathRoutingPolicy:
    """Tests for ShortestPathRoutingPolicy."""

    def test_build_graph(self, snapshot: MappingProxyType[str, TopologySpec]) -> None:
        """Edges list every topology offering them, in URI order."""
        graph = ShortestPathRoutingPolicy().build_graph(snapshot)
        assert set(graph.edges) == {
            ("archive", "raw"),
            ("raw", "staging"),
            ("staging", "warehouse"),
        }
        assert graph["raw"]["staging"]["topologies"] == [
            "/topologies/cluster-a",
            "/topologies/cluster-c",
        ]

    def test_multi_hop_route(
        self,
        routed_flow_spec: FlowSpec,
        snapshot: MappingProxyType[str, TopologySpec],
    ) -> None:
        """The flow follows the shortest capability path."""
        hops = ShortestPathRoutingPolicy().route(routed_flow_spec, snapshot)
        assert [(hop.source, hop.destination) for hop in hops] == [
            ("raw", "staging"),
            ("staging", "warehouse"),
        ]
        assert [hop.topology.uri for hop in hops] == [
            "/topologies/cluster-a",
            "/topologies/cluster-b",
        ]

    def test_hop_topologies_come_from_snapshot(
        self,
        routed_flow_spec: FlowSpec,
        snapshot: MappingProxyType[str, TopologySpec],
    ) -> None:
        """Hop topologies are the snapshot's own instances."""
        hops = ShortestPathRoutingPolicy().route(routed_flow_spec, snapshot)
        assert all(hop.topology is snapshot[hop.topology.uri] for hop in hops)

    def test_prefers_direct_edge(self, snapshot: MappingProxyType[str, TopologySpec]) -> None:
        """A direct edge beats a longer chain."""
        direct = TopologySpec(
            uri="/topologies/direct",
            config={"topology.capabilities": "raw:warehouse"},
        )
        topologies = MappingProxyType({**snapshot, direct.uri: direct})
        hops = ShortestPathRoutingPolicy().route(_routed_flow("raw", "warehouse"), topologies)
        assert [hop.topology.uri for hop in hops] == ["/topologies/direct"]

    def test_deterministic(
        self,
        routed_flow_spec: FlowSpec,
        topologies: list[TopologySpec],
    ) -> None:
        """Snapshot insertion order does not change the route."""
        forward = MappingProxyType({t.uri: t for t in topologies})
        backward = MappingProxyType({t.uri: t for t in reversed(topologies)})
        policy = ShortestPathRoutingPolicy()
        assert policy.route(routed_flow_spec, forward) == policy.route(routed_flow_spec, backward)

    def test_missing_identifiers(
        self,
        flow_spec: FlowSpec,
        snapshot: MappingProxyType[str, TopologySpec],
    ) -> None:
        """Flows without identifiers cannot be routed across hops."""
        with pytest.raises(NoRouteError, match="must declare source and destination"):
            ShortestPathRoutingPolicy().route(flow_spec, snapshot)

    @pytest.mark.parametrize(
        ("source", "destination"),
        [("warehouse", "raw"), ("unknown", "raw"), ("raw", "unknown")],
    )
    def test_no_path(
        self,
        snapshot: MappingProxyType[str, TopologySpec],
        source: str,
        destination: str,
    ) -> None:
        """Unreachable or unknown nodes are a NoRouteError."""
        with pytest.raises(NoRouteError, match="No route"):
            ShortestPathRoutingPolicy().route(_routed_flow(source, destination), snapshot)

    def test_same_source_and_destination(
        self,
        snapshot: MappingProxyType[str, TopologySpec],
    ) -> None:
        """A zero-length route is rejected."""
        with pytest.raises(NoRouteError, match="identical source and destination"):
            ShortestPathRoutingPolicy().route(_routed_flow("raw", "raw"), snapshot)


class TestTemplateSelectors:
    """Tests for template selection policies."""

    def test_no_templates(self, flow_spec: FlowSpec) -> None:
        """Flows without templates select None."""
        assert FirstTemplateSelector().select(flow_spec, 0, 1) is None
        assert PerHopTemplateSelector().select(flow_spec, 1, 2) is None

    def test_first_template(self) -> None:
        """FirstTemplateSelector always picks the first template."""
        flow = FlowSpec(uri="/g/f", template_uris=["a.yaml", "b.yaml"])
        selector = FirstTemplateSelector()
        assert [selector.select(flow, i, 2) for i in range(2)] == ["a.yaml", "a.yaml"]
        assert isinstance(selector, TemplateSelector)

    def test_per_hop_when_counts_match(self) -> None:
        """One template per hop maps template i to hop i."""
        flow = FlowSpec(uri="/g/f", template_uris=["a.yaml", "b.yaml"])
        selector = PerHopTemplateSelector()
        assert [selector.select(flow, i, 2) for i in range(2)] == ["a.yaml", "b.yaml"]

    def test_per_hop_falls_back_to_first(self) -> None:
        """Mismatched counts use the first template for every hop."""
        flow = FlowSpec(uri="/g/f", template_uris=["a.yaml", "b.yaml"])
        selector = PerHopTemplateSelector()
        assert [selector.select(flow, i, 3) for i in range(3)] == ["a.yaml"] * 3
