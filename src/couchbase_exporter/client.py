"""HTTP client for the cluster's administrative REST API."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urlparse, urlunparse
import logging

import requests
from requests.auth import HTTPBasicAuth

from couchbase_exporter.config import ClusterConfig

logger = logging.getLogger(__name__)


class ClusterClientError(Exception):
    """Raised when the admin API cannot be reached or returns unusable data."""


@dataclass
class Node:
    """A cluster node as reported by /pools/default."""
    hostname: str
    services: List[str] = field(default_factory=list)
    this_node: bool = False


@dataclass
class ClusterInfo:
    """Cluster identity and membership."""
    name: str
    nodes: List[Node] = field(default_factory=list)

    def current_node(self) -> Optional[Node]:
        """The node that answered the request, falling back to the first one."""
        for node in self.nodes:
            if node.this_node:
                return node
        return self.nodes[0] if self.nodes else None


class ClusterClient:
    """Thin wrapper over the admin API returning decoded stats."""

    def __init__(self, config: ClusterConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(config.username, config.password)

    def _url(self, path: str, port: Optional[int] = None) -> str:
        base = urlparse(self.config.url)
        netloc = base.netloc
        if port is not None:
            netloc = f"{base.hostname}:{port}"
        return urlunparse((base.scheme, netloc, path, "", "", ""))

    def _get(self, url: str) -> Any:
        logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.config.timeout_s)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise ClusterClientError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise ClusterClientError(f"Invalid JSON from {url}: {e}") from e

    def cluster_info(self) -> ClusterInfo:
        data = self._get(self._url("/pools/default"))
        if not isinstance(data, dict):
            raise ClusterClientError("Unexpected /pools/default payload")

        nodes = [
            Node(
                hostname=n.get("hostname", ""),
                services=list(n.get("services", [])),
                this_node=bool(n.get("thisNode", False)),
            )
            for n in data.get("nodes", [])
        ]
        return ClusterInfo(name=data.get("clusterName", ""), nodes=nodes)

    def cluster_name(self) -> str:
        return self.cluster_info().name

    def current_node(self) -> Node:
        node = self.cluster_info().current_node()
        if node is None:
            raise ClusterClientError("Cluster reported no nodes")
        return node

    def node_services(self) -> Set[str]:
        """Services running on the node that answered the request."""
        return set(self.current_node().services)

    def fetch_stats(self, subsystem: str) -> Dict[str, List[Any]]:
        """Sample series for a service's stats bucket, keyed by series name."""
        data = self._get(self._url(f"/pools/default/buckets/@{subsystem}/stats"))
        if not isinstance(data, dict):
            raise ClusterClientError(f"Unexpected @{subsystem} stats payload")
        return data.get("op", {}).get("samples", {}) or {}

    def fetch_breakdown(self, subsystem: str) -> Dict[str, Dict[str, Any]]:
        """Per-resource stats keyed by resource name."""
        if subsystem != "index":
            raise ClusterClientError(f"No per-resource stats for subsystem '{subsystem}'")

        data = self._get(self._url("/api/v1/stats", port=self.config.indexer_port))
        if not isinstance(data, dict):
            raise ClusterClientError("Unexpected indexer stats payload")
        return {key: value for key, value in data.items() if isinstance(value, dict)}
