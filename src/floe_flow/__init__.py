"""floe-flow: Flow compilation for floe-runtime.

This package provides:
- FlowSpec / TopologySpec / JobSpec: Pydantic spec models
- FlowCompiler: Compile FlowSpec -> Dag[JobExecutionPlan]
- TopologyRegistry: Live topology map fed by spec catalog notifications
- Template catalogs and resolution for reusable job templates
"""

from __future__ import annotations

__version__ = "0.1.0"

# Compiler and output models
from floe_flow.compiler import (
    AddSpecResponse,
    Dag,
    FileSystemTemplateCatalog,
    FlowCompiler,
    InMemoryTemplateCatalog,
    JobExecutionPlan,
    JobSpecBuilder,
    TemplateResolver,
    TopologyRegistry,
    create_flow_compiler,
    identity_flow_compiler,
    multi_hop_flow_compiler,
)

# Error types
from floe_flow.errors import (
    CompilationError,
    CompilerInitializationError,
    ConfigurationError,
    DagCycleError,
    FloeError,
    MalformedTemplateError,
    NoRouteError,
    TemplateError,
    TemplateNotFoundError,
    TemplateResolutionError,
)

# Schema models
from floe_flow.schemas import (
    Capability,
    FlowSpec,
    JobSpec,
    JobTemplate,
    TopologySpec,
)
from floe_flow.settings import CompilerConfig

__all__ = [
    "__version__",
    # Compiler
    "FlowCompiler",
    "identity_flow_compiler",
    "multi_hop_flow_compiler",
    "create_flow_compiler",
    "CompilerConfig",
    "AddSpecResponse",
    "TopologyRegistry",
    "JobSpecBuilder",
    "TemplateResolver",
    "FileSystemTemplateCatalog",
    "InMemoryTemplateCatalog",
    "Dag",
    "JobExecutionPlan",
    # Errors
    "FloeError",
    "ConfigurationError",
    "CompilerInitializationError",
    "CompilationError",
    "TemplateResolutionError",
    "NoRouteError",
    "TemplateError",
    "TemplateNotFoundError",
    "MalformedTemplateError",
    "DagCycleError",
    # Schema models
    "FlowSpec",
    "TopologySpec",
    "Capability",
    "JobTemplate",
    "JobSpec",
]
