"""Schema models for floe-flow.

This module exports the spec models consumed and produced by the compiler:
- FlowSpec: User-declared pipeline (compiler input)
- TopologySpec: Execution environment, with its Capabilities
- JobTemplate: Reusable job configuration skeleton
- JobSpec: Compiled job specification (compiler output)
"""

from __future__ import annotations

from floe_flow.schemas.flow_spec import FlowSpec, uri_segments
from floe_flow.schemas.job_spec import JobSpec
from floe_flow.schemas.job_template import JobTemplate
from floe_flow.schemas.spec import DEFAULT_SPEC_VERSION, Spec
from floe_flow.schemas.topology_spec import (
    NODE_IDENTIFIER_PATTERN,
    Capability,
    TopologySpec,
    parse_capabilities,
)

__all__: list[str] = [
    "Spec",
    "DEFAULT_SPEC_VERSION",
    "FlowSpec",
    "uri_segments",
    "TopologySpec",
    "Capability",
    "NODE_IDENTIFIER_PATTERN",
    "parse_capabilities",
    "JobTemplate",
    "JobSpec",
]
