"""Compiler module for floe-flow.

This module exports the FlowCompiler and the building blocks it is composed of:
- FlowCompiler: Compile FlowSpec -> Dag[JobExecutionPlan]
- identity_flow_compiler / multi_hop_flow_compiler / create_flow_compiler
- TopologyRegistry: Live, concurrency-safe topology map
- JobSpecBuilder: Build one resolved JobSpec per hop
- TemplateResolver and template catalogs
- Routing, naming and template selection policies
- Dag and JobExecutionPlan output models
- Compile instrumentation
"""

from __future__ import annotations

from floe_flow.compiler.compiler import (
    AddSpecResponse,
    FlowCompiler,
    SpecCatalogListener,
    create_flow_compiler,
    identity_flow_compiler,
    multi_hop_flow_compiler,
)
from floe_flow.compiler.context import CompilationContext, new_flow_execution_id
from floe_flow.compiler.dag import Dag, JobExecutionPlan
from floe_flow.compiler.instrumentation import (
    COMPILATION_DURATION_METRIC,
    COMPILATION_FAILED_METRIC,
    COMPILATION_SUCCESSFUL_METRIC,
    CompilationInstrumentation,
    NoOpInstrumentation,
    OpenTelemetryInstrumentation,
)
from floe_flow.compiler.job_spec_builder import JobSpecBuilder
from floe_flow.compiler.naming import (
    FLOW_NAME_SEGMENT_INDEX,
    FlowUriNamingPolicy,
    HopNamingPolicy,
    NamingPolicy,
    check_job_uri,
)
from floe_flow.compiler.registry import TopologyRegistry
from floe_flow.compiler.routing import (
    FirstTemplateSelector,
    Hop,
    IdentityRoutingPolicy,
    PerHopTemplateSelector,
    RoutingPolicy,
    ShortestPathRoutingPolicy,
    TemplateSelector,
)
from floe_flow.compiler.template_catalog import (
    FileSystemTemplateCatalog,
    InMemoryTemplateCatalog,
    TemplateCatalog,
    TemplateResolver,
)

__all__: list[str] = [
    # Compiler
    "FlowCompiler",
    "AddSpecResponse",
    "SpecCatalogListener",
    "identity_flow_compiler",
    "multi_hop_flow_compiler",
    "create_flow_compiler",
    "CompilationContext",
    "new_flow_execution_id",
    # Output models
    "Dag",
    "JobExecutionPlan",
    # Registry
    "TopologyRegistry",
    # Job spec building
    "JobSpecBuilder",
    "TemplateCatalog",
    "FileSystemTemplateCatalog",
    "InMemoryTemplateCatalog",
    "TemplateResolver",
    # Policies
    "NamingPolicy",
    "FlowUriNamingPolicy",
    "HopNamingPolicy",
    "check_job_uri",
    "FLOW_NAME_SEGMENT_INDEX",
    "RoutingPolicy",
    "IdentityRoutingPolicy",
    "ShortestPathRoutingPolicy",
    "Hop",
    "TemplateSelector",
    "FirstTemplateSelector",
    "PerHopTemplateSelector",
    # Instrumentation
    "CompilationInstrumentation",
    "NoOpInstrumentation",
    "OpenTelemetryInstrumentation",
    "COMPILATION_SUCCESSFUL_METRIC",
    "COMPILATION_FAILED_METRIC",
    "COMPILATION_DURATION_METRIC",
]
