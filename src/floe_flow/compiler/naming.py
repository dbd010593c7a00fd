"""Job URI naming policies for floe-flow.

Every generated job URI keeps the owning flow's group and name at path
segments two and three (``/<flowGroup>/<flowName>[/<hop-qualifier>]``).
The state store and log monitoring parse the job name positionally, so no
policy may shift it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from floe_flow.errors import CompilationError
from floe_flow.schemas.flow_spec import URI_SEPARATOR, uri_segments

if TYPE_CHECKING:
    from floe_flow.compiler.routing import Hop
    from floe_flow.schemas.flow_spec import FlowSpec

# Zero-based index of the flow name in ``uri.split("/")``
FLOW_NAME_SEGMENT_INDEX = 2

HOP_QUALIFIER_SEPARATOR = "-"


@runtime_checkable
class NamingPolicy(Protocol):
    """Generates the URI of a compiled job."""

    def generate(self, flow_spec: FlowSpec, hop: Hop | None = None) -> str:
        """Return the job URI for ``flow_spec`` (and ``hop``, if multi-hop)."""
        ...


class FlowUriNamingPolicy:
    """Use the flow URI as the job URI (single-hop compilers)."""

    def generate(self, flow_spec: FlowSpec, hop: Hop | None = None) -> str:
        return flow_spec.uri


class HopNamingPolicy:
    """Derive one URI per hop: ``/<flowGroup>/<flowName>/<source>-<destination>``.

    Falls back to the flow URI when no hop is given.

    Example:
        >>> HopNamingPolicy().generate(flow_spec, hop)
        '/group1/flowA/raw-staging'
    """

    def generate(self, flow_spec: FlowSpec, hop: Hop | None = None) -> str:
        if hop is None:
            return flow_spec.uri
        qualifier = f"{hop.source}{HOP_QUALIFIER_SEPARATOR}{hop.destination}"
        return URI_SEPARATOR.join((flow_spec.uri.rstrip(URI_SEPARATOR), qualifier))


def check_job_uri(job_uri: str, flow_spec: FlowSpec) -> str:
    """Verify a job URI keeps the flow name at path segment three.

    Raises:
        CompilationError: If the positional naming contract is violated.
    """
    segments = uri_segments(job_uri)
    if len(segments) <= FLOW_NAME_SEGMENT_INDEX or segments[FLOW_NAME_SEGMENT_INDEX] != (
        flow_spec.flow_name
    ):
        raise CompilationError(
            "Generated job URI does not carry the flow name at path segment three",
            flow_uri=flow_spec.uri,
            internal_details=f"job_uri={job_uri!r} flow_name={flow_spec.flow_name!r}",
        )
    return job_uri
