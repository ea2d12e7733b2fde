"""Fakes shared by the collector tests."""
import threading
import time
from typing import Any, Dict, Iterable, List, Optional

from couchbase_exporter.client import ClusterClientError, ClusterInfo, Node
from couchbase_exporter.config import CollectorConfig, MetricDefinition


class FakeClient:
    """In-memory stand-in for ClusterClient.

    Operations named in ``fail`` raise ClusterClientError; ``stats_delay_s``
    makes fetch_stats slow so overlapping scrapes can be observed.
    """

    def __init__(
        self,
        cluster_name: str = "cb-cluster",
        services: Iterable[str] = ("kv", "index"),
        stats: Optional[Dict[str, List[Any]]] = None,
        breakdown: Optional[Dict[str, Dict[str, Any]]] = None,
        fail: Iterable[str] = (),
        stats_delay_s: float = 0.0,
    ):
        self.cluster_name = cluster_name
        self.services = list(services)
        self.stats = stats or {}
        self.breakdown = breakdown or {}
        self.fail = set(fail)
        self.stats_delay_s = stats_delay_s
        self.calls: List[str] = []

        self._active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def _call(self, op: str):
        self.calls.append(op)
        if op in self.fail:
            raise ClusterClientError(f"{op} unavailable")

    def cluster_info(self) -> ClusterInfo:
        self._call("cluster_info")
        return ClusterInfo(
            name=self.cluster_name,
            nodes=[Node(hostname="10.0.0.1:8091", services=self.services, this_node=True)],
        )

    def node_services(self):
        self._call("node_services")
        return set(self.services)

    def fetch_stats(self, subsystem: str):
        with self._lock:
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            if self.stats_delay_s:
                time.sleep(self.stats_delay_s)
            self._call("fetch_stats")
            return self.stats
        finally:
            with self._lock:
                self._active -= 1

    def fetch_breakdown(self, subsystem: str):
        self._call("fetch_breakdown")
        return self.breakdown


def collector_config(subsystem: str, *definitions: MetricDefinition) -> CollectorConfig:
    return CollectorConfig(namespace="cb", subsystem=subsystem, metrics=list(definitions))


def samples_named(samples, fq_name: str):
    return [s for s in samples if s.descriptor.fq_name == fq_name]
