"""Job execution plans and the DAG that orders them.

A compiled flow is a ``Dag[JobExecutionPlan]``: nodes are plans keyed by the
job URI, edges point from an upstream hop to the hop that must follow it.
The graph rejects any edge that would introduce a cycle.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, TypeVar

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field

from floe_flow.errors import DagCycleError
from floe_flow.schemas.job_spec import JobSpec
from floe_flow.schemas.topology_spec import TopologySpec

NodeT = TypeVar("NodeT")

_VALUE = "value"


class JobExecutionPlan(BaseModel):
    """A compiled job bound to the topology chosen to run it.

    Attributes:
        job_spec: Compiled job specification.
        topology: Topology that will execute the job.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    job_spec: JobSpec = Field(
        ...,
        description="Compiled job specification",
    )
    topology: TopologySpec = Field(
        ...,
        description="Topology selected to run the job",
    )

    @property
    def id(self) -> str:
        """Plan id; the job URI."""
        return self.job_spec.uri


class Dag(Generic[NodeT]):
    """Directed acyclic graph of values keyed by string node id.

    Example:
        >>> dag: Dag[str] = Dag()
        >>> dag.add_node("a", "extract")
        >>> dag.add_node("b", "load")
        >>> dag.add_edge("a", "b")
        >>> dag.start_nodes
        ['a']
        >>> dag.add_edge("b", "a")
        Traceback (most recent call last):
        ...
        floe_flow.errors.DagCycleError: Edge 'b' -> 'a' would create a cycle
    """

    def __init__(self) -> None:
        self._graph = nx.DiGraph()

    def add_node(self, node_id: str, value: NodeT) -> None:
        """Add a node, replacing the value if ``node_id`` already exists."""
        self._graph.add_node(node_id, **{_VALUE: value})

    def add_edge(self, parent: str, child: str) -> None:
        """Add an ordering edge ``parent -> child``.

        Raises:
            KeyError: If either node is unknown.
            DagCycleError: If the edge would create a cycle.
        """
        for node_id in (parent, child):
            if node_id not in self._graph:
                raise KeyError(f"Unknown DAG node: '{node_id}'")
        if parent == child or nx.has_path(self._graph, child, parent):
            raise DagCycleError(parent, child)
        self._graph.add_edge(parent, child)

    def get(self, node_id: str) -> NodeT:
        """Return the value stored at ``node_id``."""
        return self._graph.nodes[node_id][_VALUE]

    @property
    def node_ids(self) -> list[str]:
        """Node ids in insertion order."""
        return list(self._graph.nodes)

    @property
    def nodes(self) -> list[NodeT]:
        """Node values in insertion order."""
        return [data[_VALUE] for _, data in self._graph.nodes(data=True)]

    @property
    def edges(self) -> list[tuple[str, str]]:
        """Edges as ``(parent, child)`` node id pairs."""
        return list(self._graph.edges)

    @property
    def start_nodes(self) -> list[str]:
        """Node ids with no parents."""
        return [node for node in self._graph.nodes if self._graph.in_degree(node) == 0]

    @property
    def end_nodes(self) -> list[str]:
        """Node ids with no children."""
        return [node for node in self._graph.nodes if self._graph.out_degree(node) == 0]

    def parents(self, node_id: str) -> list[str]:
        """Direct upstream node ids."""
        return list(self._graph.predecessors(node_id))

    def children(self, node_id: str) -> list[str]:
        """Direct downstream node ids."""
        return list(self._graph.successors(node_id))

    def topological_order(self) -> list[str]:
        """Node ids ordered so every parent precedes its children."""
        return list(nx.lexicographical_topological_sort(self._graph))

    def is_acyclic(self) -> bool:
        """Return True if the graph has no cycle."""
        return nx.is_directed_acyclic_graph(self._graph)

    @property
    def is_empty(self) -> bool:
        """Return True if the DAG has no nodes."""
        return self._graph.number_of_nodes() == 0

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._graph

    def __iter__(self) -> Iterator[NodeT]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return self._graph.number_of_nodes()
