"""Topology registry for floe-flow.

The registry owns the live URI -> TopologySpec mapping fed by spec catalog
notifications. Writers are serialized by a lock and publish a new read-only
mapping on every change (copy-on-write), so readers never block and a
snapshot taken by a compile call is never altered by later notifications.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType

import structlog

from floe_flow.schemas.topology_spec import TopologySpec

logger = structlog.get_logger(__name__)


class TopologyRegistry:
    """Concurrency-safe registry of known execution topologies.

    Example:
        >>> registry = TopologyRegistry()
        >>> registry.add(TopologySpec(uri="/topologies/a"))
        >>> snapshot = registry.snapshot()
        >>> registry.remove("/topologies/a")
        >>> "/topologies/a" in snapshot
        True
        >>> "/topologies/a" in registry
        False
    """

    def __init__(self, topologies: Iterable[TopologySpec] | None = None) -> None:
        """Initialize the registry.

        Args:
            topologies: Optional initial topologies.
        """
        self._lock = threading.Lock()
        initial = {topology.uri: topology for topology in topologies or ()}
        self._topologies: Mapping[str, TopologySpec] = MappingProxyType(initial)

    def add(self, topology: TopologySpec) -> None:
        """Insert or overwrite the entry for ``topology.uri``.

        Logs the full topology configuration.
        """
        with self._lock:
            logger.info("topology_loaded", topology=topology.to_long_string())
            for key, value in topology.properties.items():
                logger.info("topology_property", uri=topology.uri, key=key, value=value)
            self._publish({**self._topologies, topology.uri: topology})

    def update(self, topology: TopologySpec) -> None:
        """Overwrite the entry for ``topology.uri``.

        Behaves exactly like ``add``; kept separate so update notifications
        stay distinguishable in logs.
        """
        with self._lock:
            logger.info("topology_updated", uri=topology.uri, version=topology.version)
            self._publish({**self._topologies, topology.uri: topology})

    def remove(self, uri: str, version: str | None = None) -> None:
        """Delete the entry for ``uri``; removing an absent URI is a no-op."""
        with self._lock:
            if uri not in self._topologies:
                logger.debug("topology_remove_skipped", uri=uri, version=version)
                return
            remaining = {key: value for key, value in self._topologies.items() if key != uri}
            self._publish(remaining)
            logger.info("topology_removed", uri=uri, version=version)

    def snapshot(self) -> Mapping[str, TopologySpec]:
        """Return the current read-only URI -> TopologySpec view.

        The returned mapping is never modified by later registry changes.
        """
        return self._topologies

    def get(self, uri: str) -> TopologySpec | None:
        """Return the topology registered under ``uri``, if any."""
        return self._topologies.get(uri)

    def _publish(self, topologies: dict[str, TopologySpec]) -> None:
        # Callers hold self._lock; the new dict is never mutated after this.
        self._topologies = MappingProxyType(topologies)

    def __contains__(self, uri: object) -> bool:
        return uri in self._topologies

    def __len__(self) -> int:
        return len(self._topologies)
