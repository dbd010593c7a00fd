"""Well-known configuration keys for floe-flow.

Keys are dotted paths into a spec's nested configuration. The flow keys are
read from FlowSpec config; the job keys are written into compiled JobSpec
config by the JobSpecBuilder.
"""

from __future__ import annotations

# Flow identity
FLOW_NAME_KEY = "flow.name"
FLOW_GROUP_KEY = "flow.group"

# Routing endpoints for a flow (node identifiers in the topology graph)
FLOW_SOURCE_IDENTIFIER_KEY = "flow.sourceIdentifier"
FLOW_DESTINATION_IDENTIFIER_KEY = "flow.destinationIdentifier"

# Correlation id shared by every job compiled from one flow invocation
FLOW_EXECUTION_ID_KEY = "flow.execution.id"

# Job keys injected into compiled JobSpecs
JOB_NAME_KEY = "job.name"
JOB_GROUP_KEY = "job.group"

# Schedules belong to the flow and are stripped from every compiled job
JOB_SCHEDULE_KEY = "job.schedule"

# Execution capabilities declared by a TopologySpec
TOPOLOGY_CAPABILITIES_KEY = "topology.capabilities"
