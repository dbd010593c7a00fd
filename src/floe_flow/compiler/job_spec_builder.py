"""Job spec builder for floe-flow.

Builds one fully-resolved JobSpec from a FlowSpec (or from one hop of it) in
a single pass:

1. Generate the job URI with the naming policy and check the positional
   naming contract.
2. Start from a copy of the flow's config, description and version.
3. Resolve the template reference, if any and if a resolver is configured:
   template defaults overridden by the flow config.
4. Otherwise use the flow config unresolved.
5. Strip the flow schedule.
6. Inject job name and group from the flow name and group, when present.
7. Inject the flow execution id shared by every job of this compile.
8. Construct the immutable JobSpec; its property view derives from config.
"""

from __future__ import annotations

from copy import deepcopy
from typing import TYPE_CHECKING, Any

import structlog

from floe_flow.compiler.context import CompilationContext
from floe_flow.compiler.naming import check_job_uri
from floe_flow.config_paths import to_properties, with_value, without_path
from floe_flow.errors import TemplateError, TemplateResolutionError
from floe_flow.keys import (
    FLOW_EXECUTION_ID_KEY,
    FLOW_GROUP_KEY,
    FLOW_NAME_KEY,
    JOB_GROUP_KEY,
    JOB_NAME_KEY,
    JOB_SCHEDULE_KEY,
)
from floe_flow.schemas.job_spec import JobSpec

if TYPE_CHECKING:
    from floe_flow.compiler.naming import NamingPolicy
    from floe_flow.compiler.routing import Hop
    from floe_flow.compiler.template_catalog import TemplateResolver
    from floe_flow.schemas.flow_spec import FlowSpec

logger = structlog.get_logger(__name__)


class JobSpecBuilder:
    """Build compiled JobSpecs from FlowSpecs.

    Attributes:
        template_resolver: Resolver for template references. When None,
            template references are ignored and jobs are built unresolved.

    Example:
        >>> builder = JobSpecBuilder(TemplateResolver(catalog))
        >>> job_spec = builder.build(flow_spec, "ingest.yaml", FlowUriNamingPolicy())
        >>> job_spec.get("job.name")
        'flowA'
    """

    def __init__(self, template_resolver: TemplateResolver | None = None) -> None:
        self.template_resolver = template_resolver

    def build(
        self,
        flow_spec: FlowSpec,
        template_uri: str | None,
        naming_policy: NamingPolicy,
        *,
        hop: Hop | None = None,
        context: CompilationContext | None = None,
    ) -> JobSpec:
        """Build the JobSpec for ``flow_spec``.

        Args:
            flow_spec: Flow being compiled. Never mutated.
            template_uri: Template reference for this job, if any.
            naming_policy: Generates the job URI.
            hop: Hop being compiled, for multi-hop naming.
            context: Compile-scoped context supplying the flow execution id.
                A fresh context is used when omitted.

        Returns:
            Immutable JobSpec.

        Raises:
            TemplateResolutionError: If the template cannot be resolved.
            CompilationError: If the naming policy breaks the URI contract or the
                configured flow execution id is not an integer.
        """
        context = context if context is not None else CompilationContext()
        job_uri = check_job_uri(naming_policy.generate(flow_spec, hop), flow_spec)

        config: dict[str, Any] = deepcopy(flow_spec.config)
        resolved_template: str | None = None

        if template_uri is not None and self.template_resolver is not None:
            try:
                config = self.template_resolver.resolve(template_uri, config)
            except TemplateError as e:
                raise TemplateResolutionError(
                    template_uri,
                    flow_uri=flow_spec.uri,
                    internal_details=f"{type(e).__name__}: {e}",
                ) from e
            resolved_template = template_uri
            logger.info(
                "resolved_job_spec",
                job_uri=job_uri,
                template_uri=template_uri,
                properties=to_properties(config),
            )
        else:
            logger.info(
                "unresolved_job_spec",
                job_uri=job_uri,
                template_uri=template_uri,
                properties=to_properties(config),
            )

        config = self._apply_flow_settings(config, flow_spec, context)

        return JobSpec(
            uri=job_uri,
            version=flow_spec.version,
            description=flow_spec.description,
            config=config,
            template_uri=resolved_template,
        )

    def _apply_flow_settings(
        self,
        config: dict[str, Any],
        flow_spec: FlowSpec,
        context: CompilationContext,
    ) -> dict[str, Any]:
        """Strip the schedule and inject job name, group and execution id."""
        config = without_path(config, JOB_SCHEDULE_KEY)

        if flow_spec.has_path(FLOW_NAME_KEY):
            config = with_value(config, JOB_NAME_KEY, flow_spec.get(FLOW_NAME_KEY))
        if flow_spec.has_path(FLOW_GROUP_KEY):
            config = with_value(config, JOB_GROUP_KEY, flow_spec.get(FLOW_GROUP_KEY))

        execution_id = context.get_or_create_flow_execution_id(flow_spec)
        return with_value(config, FLOW_EXECUTION_ID_KEY, execution_id)
