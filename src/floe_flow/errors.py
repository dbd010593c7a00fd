"""Custom exception hierarchy for floe-flow.

This module defines the exception classes raised by the flow compiler:
- FloeError: Base exception for all floe-flow errors
- ConfigurationError: Compiler configuration is invalid or unusable
- CompilationError: A FlowSpec could not be compiled into a plan
- TemplateError: A job template could not be loaded or resolved
- DagCycleError: An edge would introduce a cycle into a plan DAG

User-facing messages are safe to display; technical details are logged
internally via structlog and never included in the message.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


class FloeError(Exception):
    """Base exception for floe-flow.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details, logged but never
            exposed through ``str(error)``.

    Example:
        >>> raise FloeError(
        ...     "Flow compilation failed",
        ...     internal_details="template ingest.yaml: missing key 'config'",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "floe_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigurationError(FloeError):
    """Raised when compiler configuration is invalid.

    Attributes:
        field_path: Dotted path of the offending setting, if known.
    """

    def __init__(
        self,
        user_message: str,
        *,
        field_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        full_message = f"{user_message} (field '{field_path}')" if field_path else user_message
        super().__init__(full_message, internal_details=internal_details)
        self.field_path = field_path


class CompilerInitializationError(ConfigurationError):
    """Raised when a FlowCompiler cannot be constructed.

    The typical cause is a template catalog path that does not exist or
    cannot be read. A compiler that failed initialization is never returned.
    """

    pass


class CompilationError(FloeError):
    """Raised when a FlowSpec cannot be compiled.

    Compilation is all-or-nothing: when this is raised no DAG is produced.

    Attributes:
        flow_uri: URI of the flow being compiled, if known.
    """

    def __init__(
        self,
        user_message: str,
        *,
        flow_uri: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message, internal_details=internal_details)
        self.flow_uri = flow_uri


class TemplateResolutionError(CompilationError):
    """Raised when a job's template reference cannot be resolved.

    The originating TemplateError is chained as ``__cause__``.

    Attributes:
        template_uri: The template reference that failed.
    """

    def __init__(
        self,
        template_uri: str,
        *,
        flow_uri: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(
            f"Could not resolve template '{template_uri}' in JobSpec from template catalog",
            flow_uri=flow_uri,
            internal_details=internal_details,
        )
        self.template_uri = template_uri


class NoRouteError(CompilationError):
    """Raised when no topology (or chain of topologies) can run a flow.

    Attributes:
        source: Source node identifier requested by the flow, if any.
        destination: Destination node identifier requested by the flow, if any.
    """

    def __init__(
        self,
        user_message: str,
        *,
        flow_uri: str | None = None,
        source: str | None = None,
        destination: str | None = None,
    ) -> None:
        super().__init__(user_message, flow_uri=flow_uri)
        self.source = source
        self.destination = destination


class TemplateError(FloeError):
    """Base class for template catalog failures.

    Attributes:
        template_uri: URI of the template that failed.
    """

    def __init__(
        self,
        user_message: str,
        *,
        template_uri: str,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message, internal_details=internal_details)
        self.template_uri = template_uri


class TemplateNotFoundError(TemplateError):
    """Raised when a template URI does not exist in the catalog."""

    def __init__(self, template_uri: str, *, internal_details: str | None = None) -> None:
        super().__init__(
            f"Template '{template_uri}' not found",
            template_uri=template_uri,
            internal_details=internal_details,
        )


class MalformedTemplateError(TemplateError):
    """Raised when a template cannot be parsed or its contract is not met.

    Covers unreadable or unparseable template documents, invalid template
    fields, cyclic inheritance and required attributes missing after
    resolution.
    """

    pass


class DagCycleError(FloeError):
    """Raised when adding an edge would create a cycle in a DAG.

    Attributes:
        parent: Node id of the edge source.
        child: Node id of the edge target.
    """

    def __init__(self, parent: str, child: str) -> None:
        super().__init__(f"Edge '{parent}' -> '{child}' would create a cycle")
        self.parent = parent
        self.child = child
