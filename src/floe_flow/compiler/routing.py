"""Routing and template selection policies for floe-flow.

Routing decides which topology runs each hop of a flow:
- IdentityRoutingPolicy: One hop, one topology (single-hop compilers)
- ShortestPathRoutingPolicy: Shortest chain of capability edges between
  the flow's source and destination nodes (multi-hop compilers)

Template selection decides which template reference each hop resolves:
- FirstTemplateSelector: The flow's first template for every hop
- PerHopTemplateSelector: Template i for hop i when the counts line up

All policies are deterministic: topologies are considered in ascending URI
order, so identical snapshots and flows always yield identical routes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import networkx as nx
import structlog

from floe_flow.errors import NoRouteError
from floe_flow.schemas.flow_spec import FlowSpec
from floe_flow.schemas.topology_spec import TopologySpec

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Hop:
    """One stage of a routed flow.

    Attributes:
        topology: Topology selected to run the hop.
        source: Source node identifier (None when the flow declares none).
        destination: Destination node identifier (None when the flow declares none).
    """

    topology: TopologySpec
    source: str | None = None
    destination: str | None = None


@runtime_checkable
class RoutingPolicy(Protocol):
    """Maps a flow onto an ordered list of hops."""

    def route(self, flow_spec: FlowSpec, topologies: Mapping[str, TopologySpec]) -> list[Hop]:
        """Return the hops for ``flow_spec`` using the given topology snapshot.

        Raises:
            NoRouteError: If no topology can run the flow.
        """
        ...


def _in_uri_order(topologies: Mapping[str, TopologySpec]) -> list[TopologySpec]:
    return [topologies[uri] for uri in sorted(topologies)]


class IdentityRoutingPolicy:
    """Route a flow as a single hop.

    When the flow declares source and destination identifiers, the first
    topology (by URI) supporting that pair is chosen. Otherwise the first
    topology by URI is chosen.
    """

    def route(self, flow_spec: FlowSpec, topologies: Mapping[str, TopologySpec]) -> list[Hop]:
        source = flow_spec.source_identifier
        destination = flow_spec.destination_identifier
        candidates = _in_uri_order(topologies)

        if source is not None and destination is not None:
            candidates = [t for t in candidates if t.supports(source, destination)]

        if not candidates:
            raise NoRouteError(
                f"No topology available to run flow '{flow_spec.uri}'",
                flow_uri=flow_spec.uri,
                source=source,
                destination=destination,
            )

        topology = candidates[0]
        logger.debug("flow_routed", flow_uri=flow_spec.uri, topology=topology.uri)
        return [Hop(topology=topology, source=source, destination=destination)]


class ShortestPathRoutingPolicy:
    """Route a flow across the topology capability graph.

    Every capability ``a:b`` of every topology is an edge ``a -> b``. The
    flow follows the shortest path from its source to its destination node;
    each edge on that path becomes a hop run by the first topology (by URI)
    offering it.
    """

    def build_graph(self, topologies: Mapping[str, TopologySpec]) -> nx.DiGraph:
        """Build the capability graph for a topology snapshot.

        Edges carry a ``topologies`` attribute listing the URIs (ascending)
        of every topology offering that edge.
        """
        graph = nx.DiGraph()
        edges: list[tuple[str, str, str]] = sorted(
            (capability.source, capability.destination, topology.uri)
            for topology in topologies.values()
            for capability in topology.capabilities
        )
        for source, destination, uri in edges:
            if graph.has_edge(source, destination):
                graph[source][destination]["topologies"].append(uri)
            else:
                graph.add_edge(source, destination, topologies=[uri])
        return graph

    def route(self, flow_spec: FlowSpec, topologies: Mapping[str, TopologySpec]) -> list[Hop]:
        source = flow_spec.source_identifier
        destination = flow_spec.destination_identifier
        if source is None or destination is None:
            raise NoRouteError(
                f"Flow '{flow_spec.uri}' must declare source and destination identifiers",
                flow_uri=flow_spec.uri,
                source=source,
                destination=destination,
            )

        graph = self.build_graph(topologies)
        try:
            path: list[str] = nx.shortest_path(graph, source, destination)
        except (nx.NodeNotFound, nx.NetworkXNoPath) as e:
            raise NoRouteError(
                f"No route from '{source}' to '{destination}' for flow '{flow_spec.uri}'",
                flow_uri=flow_spec.uri,
                source=source,
                destination=destination,
            ) from e

        if len(path) < 2:
            raise NoRouteError(
                f"Flow '{flow_spec.uri}' has identical source and destination '{source}'",
                flow_uri=flow_spec.uri,
                source=source,
                destination=destination,
            )

        hops = [
            Hop(
                topology=topologies[graph[hop_source][hop_destination]["topologies"][0]],
                source=hop_source,
                destination=hop_destination,
            )
            for hop_source, hop_destination in zip(path, path[1:])
        ]
        logger.debug(
            "flow_routed",
            flow_uri=flow_spec.uri,
            path=path,
            topologies=[hop.topology.uri for hop in hops],
        )
        return hops


@runtime_checkable
class TemplateSelector(Protocol):
    """Chooses the template reference for one hop of a flow."""

    def select(self, flow_spec: FlowSpec, hop_index: int, hop_count: int) -> str | None:
        """Return the template URI for hop ``hop_index``, or None."""
        ...


class FirstTemplateSelector:
    """Honour only the flow's first template URI, for every hop."""

    def select(self, flow_spec: FlowSpec, hop_index: int, hop_count: int) -> str | None:
        if not flow_spec.template_uris:
            return None
        return flow_spec.template_uris[0]


class PerHopTemplateSelector:
    """Use template i for hop i when the flow lists one template per hop.

    Otherwise every hop uses the flow's first template.
    """

    def select(self, flow_spec: FlowSpec, hop_index: int, hop_count: int) -> str | None:
        if not flow_spec.template_uris:
            return None
        if len(flow_spec.template_uris) == hop_count:
            return flow_spec.template_uris[hop_index]
        return flow_spec.template_uris[0]
