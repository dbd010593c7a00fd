"""Compile-scoped state for floe-flow.

A CompilationContext is created at the start of every compile call and owned
exclusively by it. It carries the topology snapshot taken at compile start
and the flow execution ids assigned during the call.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from floe_flow.errors import CompilationError
from floe_flow.keys import FLOW_EXECUTION_ID_KEY
from floe_flow.schemas.flow_spec import FlowSpec
from floe_flow.schemas.topology_spec import TopologySpec


def new_flow_execution_id() -> int:
    """Return a fresh flow execution id (epoch milliseconds)."""
    return time.time_ns() // 1_000_000


@dataclass
class CompilationContext:
    """State shared by every step of one compile call.

    Attributes:
        topologies: Read-only topology snapshot taken at compile start.

    Example:
        >>> context = CompilationContext()
        >>> first = context.get_or_create_flow_execution_id(flow_spec)
        >>> context.get_or_create_flow_execution_id(flow_spec) == first
        True
    """

    topologies: Mapping[str, TopologySpec] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    _execution_ids: dict[int, tuple[FlowSpec, int]] = field(
        default_factory=dict,
        init=False,
        repr=False,
    )

    def get_or_create_flow_execution_id(self, flow_spec: FlowSpec) -> int:
        """Return the execution id for ``flow_spec`` within this compile.

        An id already present in the flow config under ``flow.execution.id``
        is honoured. Otherwise an id is created on first lookup for this
        FlowSpec instance and returned unchanged on every later lookup.

        Raises:
            CompilationError: If the configured execution id is not an integer.
        """
        configured = flow_spec.get(FLOW_EXECUTION_ID_KEY)
        if configured is not None:
            try:
                return int(configured)
            except (TypeError, ValueError) as e:
                raise CompilationError(
                    f"Flow execution id must be an integer, got '{configured}'",
                    flow_uri=flow_spec.uri,
                    internal_details=str(e),
                ) from e

        # Keyed by identity; the spec reference keeps the id from being reused.
        entry = self._execution_ids.get(id(flow_spec))
        if entry is None or entry[0] is not flow_spec:
            entry = (flow_spec, new_flow_execution_id())
            self._execution_ids[id(flow_spec)] = entry
        return entry[1]
