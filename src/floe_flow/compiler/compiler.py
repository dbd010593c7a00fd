"""Flow compiler for floe-flow.

The FlowCompiler turns a FlowSpec into a ``Dag[JobExecutionPlan]``. It is
assembled from strategy objects rather than subclassed:

- RoutingPolicy: which topology runs which hop
- NamingPolicy: the URI of each compiled job
- TemplateSelector: which template reference each hop resolves

The compiler also listens to topology spec catalog notifications and keeps
its TopologyRegistry current. Each compile call works on one registry
snapshot taken at its start; registry changes committed later are not seen.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import structlog

from floe_flow.compiler.context import CompilationContext
from floe_flow.compiler.dag import Dag, JobExecutionPlan
from floe_flow.compiler.instrumentation import (
    CompilationInstrumentation,
    NoOpInstrumentation,
    OpenTelemetryInstrumentation,
)
from floe_flow.compiler.job_spec_builder import JobSpecBuilder
from floe_flow.compiler.naming import FlowUriNamingPolicy, HopNamingPolicy
from floe_flow.compiler.registry import TopologyRegistry
from floe_flow.compiler.routing import (
    FirstTemplateSelector,
    IdentityRoutingPolicy,
    PerHopTemplateSelector,
    ShortestPathRoutingPolicy,
)
from floe_flow.compiler.template_catalog import FileSystemTemplateCatalog, TemplateResolver
from floe_flow.errors import CompilationError, CompilerInitializationError
from floe_flow.observability import compile_operation, get_meter
from floe_flow.schemas.flow_spec import FlowSpec
from floe_flow.schemas.topology_spec import TopologySpec
from floe_flow.settings import CompilerConfig

if TYPE_CHECKING:
    from floe_flow.compiler.naming import NamingPolicy
    from floe_flow.compiler.routing import RoutingPolicy, TemplateSelector
    from floe_flow.compiler.template_catalog import TemplateCatalog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AddSpecResponse:
    """Acknowledgement returned to the spec catalog for an added spec."""

    value: Any = None


@runtime_checkable
class SpecCatalogListener(Protocol):
    """Receives spec catalog change notifications."""

    def on_add_spec(self, spec: Any) -> AddSpecResponse:
        """Handle a newly added spec."""
        ...

    def on_update_spec(self, spec: Any) -> None:
        """Handle an updated spec."""
        ...

    def on_delete_spec(
        self,
        uri: str,
        version: str | None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Handle a deleted spec."""
        ...


class FlowCompiler:
    """Compile FlowSpecs into DAGs of job execution plans.

    Attributes:
        config: Compiler configuration.
        registry: Live topology registry.
        routing_policy: Assigns topologies to hops.
        naming_policy: Generates job URIs.
        template_selector: Picks each hop's template reference.
        job_spec_builder: Builds each hop's JobSpec.
        instrumentation: Records compile success/failure/latency.

    Example:
        >>> compiler = identity_flow_compiler()
        >>> compiler.on_update_spec(TopologySpec(uri="/topologies/local"))
        >>> dag = compiler.compile_flow(
        ...     FlowSpec(uri="/group1/flowA", config={"flow.name": "flowA"})
        ... )
        >>> [plan.topology.uri for plan in dag.nodes]
        ['/topologies/local']
    """

    def __init__(
        self,
        config: CompilerConfig | None = None,
        *,
        routing_policy: RoutingPolicy,
        naming_policy: NamingPolicy,
        template_selector: TemplateSelector,
        registry: TopologyRegistry | None = None,
        template_catalog: TemplateCatalog | None = None,
        instrumentation: CompilationInstrumentation | None = None,
    ) -> None:
        """Initialize the FlowCompiler.

        Args:
            config: Compiler configuration. Defaults to ``CompilerConfig()``.
            routing_policy: Routing strategy.
            naming_policy: Job URI naming strategy.
            template_selector: Template selection strategy.
            registry: Topology registry. A new, empty one by default.
            template_catalog: Template catalog. When omitted, one is built
                from ``config.template_catalog_path`` if that is set.
            instrumentation: Compile instrumentation. When omitted, chosen
                from ``config.instrumentation_enabled``.

        Raises:
            CompilerInitializationError: If the template catalog cannot be
                initialized.
        """
        self.config = config or CompilerConfig()
        self.routing_policy = routing_policy
        self.naming_policy = naming_policy
        self.template_selector = template_selector
        self.registry = registry if registry is not None else TopologyRegistry()

        if template_catalog is None and self.config.template_catalog_path is not None:
            template_catalog = self._load_template_catalog(self.config)
        self.template_catalog = template_catalog

        resolver = TemplateResolver(template_catalog) if template_catalog is not None else None
        self.job_spec_builder = JobSpecBuilder(resolver)

        if instrumentation is None:
            instrumentation = (
                OpenTelemetryInstrumentation(get_meter(self.config.meter_name))
                if self.config.instrumentation_enabled
                else NoOpInstrumentation()
            )
        self.instrumentation = instrumentation

    @staticmethod
    def _load_template_catalog(config: CompilerConfig) -> FileSystemTemplateCatalog:
        try:
            return FileSystemTemplateCatalog(config.template_catalog_path)  # type: ignore[arg-type]
        except OSError as e:
            raise CompilerInitializationError(
                "Could not initialize FlowCompiler because of template catalog initialization failure",
                field_path="template_catalog_path",
                internal_details=str(e),
            ) from e

    @property
    def is_instrumentation_enabled(self) -> bool:
        """Return True if compile metrics are being recorded."""
        return self.instrumentation.enabled

    @property
    def topology_spec_map(self) -> Mapping[str, TopologySpec]:
        """Read-only snapshot of the known topologies."""
        return self.registry.snapshot()

    def await_healthy(self) -> None:
        """Block until the compiler can serve requests; it always can."""
        return None

    def on_add_spec(self, spec: TopologySpec) -> AddSpecResponse:
        """Register an added topology."""
        self.registry.add(spec)
        return AddSpecResponse()

    def on_update_spec(self, spec: TopologySpec) -> None:
        """Register an updated topology."""
        self.registry.update(spec)

    def on_delete_spec(
        self,
        uri: str,
        version: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Forget a deleted topology. ``headers`` is accepted and ignored."""
        self.registry.remove(uri, version)

    def compile_flow(self, spec: FlowSpec) -> Dag[JobExecutionPlan]:
        """Compile a FlowSpec into a DAG of job execution plans.

        Hops are chained in route order: each hop's plan is a child of the
        previous hop's plan. Compilation is all-or-nothing.

        Args:
            spec: Flow to compile. Never mutated.

        Returns:
            DAG whose nodes bind each compiled JobSpec to its topology.

        Raises:
            CompilationError: If the flow cannot be routed, a template cannot
                be resolved, or ``spec`` is not a FlowSpec.
        """
        with self.instrumentation.measure(), compile_operation(spec):
            if not isinstance(spec, FlowSpec):
                raise CompilationError(
                    f"Expected a FlowSpec, got {type(spec).__name__}",
                )

            context = CompilationContext(topologies=self.registry.snapshot())
            hops = self.routing_policy.route(spec, context.topologies)

            dag: Dag[JobExecutionPlan] = Dag()
            previous: str | None = None
            for index, hop in enumerate(hops):
                template_uri = self.template_selector.select(spec, index, len(hops))
                job_spec = self.job_spec_builder.build(
                    spec,
                    template_uri,
                    self.naming_policy,
                    hop=hop,
                    context=context,
                )
                plan = JobExecutionPlan(job_spec=job_spec, topology=hop.topology)
                if plan.id in dag:
                    raise CompilationError(
                        f"Naming policy produced duplicate job URI '{plan.id}'",
                        flow_uri=spec.uri,
                        internal_details=f"hop={hop.source}->{hop.destination}",
                    )
                dag.add_node(plan.id, plan)
                if previous is not None:
                    dag.add_edge(previous, plan.id)
                previous = plan.id

            logger.info(
                "flow_compiled",
                flow_uri=spec.uri,
                jobs=dag.node_ids,
                topologies=[plan.topology.uri for plan in dag.nodes],
            )
            return dag


def identity_flow_compiler(
    config: CompilerConfig | None = None,
    **kwargs: Any,
) -> FlowCompiler:
    """Build a single-hop compiler.

    Each flow compiles to one job named after the flow URI, resolved from
    the flow's first template and run by the first matching topology.

    Args:
        config: Compiler configuration.
        **kwargs: Extra FlowCompiler arguments (registry, template_catalog,
            instrumentation).
    """
    return FlowCompiler(
        config,
        routing_policy=IdentityRoutingPolicy(),
        naming_policy=FlowUriNamingPolicy(),
        template_selector=FirstTemplateSelector(),
        **kwargs,
    )


def multi_hop_flow_compiler(
    config: CompilerConfig | None = None,
    **kwargs: Any,
) -> FlowCompiler:
    """Build a multi-hop compiler.

    Flows are routed along the shortest capability path from their source
    to their destination node; each hop compiles to one job named
    ``/<flowGroup>/<flowName>/<source>-<destination>``.

    Args:
        config: Compiler configuration.
        **kwargs: Extra FlowCompiler arguments (registry, template_catalog,
            instrumentation).
    """
    return FlowCompiler(
        config,
        routing_policy=ShortestPathRoutingPolicy(),
        naming_policy=HopNamingPolicy(),
        template_selector=PerHopTemplateSelector(),
        **kwargs,
    )


def create_flow_compiler(config: CompilerConfig | None = None, **kwargs: Any) -> FlowCompiler:
    """Build the compiler selected by ``config.compiler``."""
    config = config or CompilerConfig()
    if config.compiler == "multi_hop":
        return multi_hop_flow_compiler(config, **kwargs)
    return identity_flow_compiler(config, **kwargs)
