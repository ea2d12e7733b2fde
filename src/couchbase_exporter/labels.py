"""Label context resolution for emitted samples."""
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from couchbase_exporter.client import ClusterClient, ClusterClientError
from couchbase_exporter.config import (
    BUCKET_LABEL, CLUSTER_LABEL, KEYSPACE_LABEL, NODE_LABEL
)


@dataclass(frozen=True)
class MetricContext:
    """Label values available for one scope of a scrape."""
    cluster_name: str
    node: str = ""
    bucket: str = ""
    keyspace: str = ""


class LabelManager:
    """Resolves metric contexts and maps label names to their values."""

    def __init__(self, client: ClusterClient):
        self.client = client

    def get_basic_metric_context(self) -> MetricContext:
        """Cluster-wide context. Raises ClusterClientError if unresolvable."""
        info = self.client.cluster_info()
        if not info.name:
            raise ClusterClientError("Cluster name is not set")

        node = info.current_node()
        return MetricContext(
            cluster_name=info.name,
            node=node.hostname if node else "",
        )

    def get_metric_context(
        self,
        bucket: str,
        keyspace: str,
        base: Optional[MetricContext] = None
    ) -> MetricContext:
        """Context for a bucket or keyspace within the cluster.

        Keyspaces take the form ``bucket:...``; the bucket is taken from that
        prefix when none is given.
        """
        if base is None:
            base = self.get_basic_metric_context()

        if not bucket and keyspace:
            bucket = keyspace.split(":", 1)[0]

        return replace(base, bucket=bucket, keyspace=keyspace)

    def get_label_values(self, labels: Iterable[str], ctx: MetricContext) -> List[str]:
        """Label values for ctx, aligned with the order of labels."""
        values = []
        for label in labels:
            if label == CLUSTER_LABEL:
                values.append(ctx.cluster_name)
            elif label == NODE_LABEL:
                values.append(ctx.node)
            elif label == BUCKET_LABEL:
                values.append(ctx.bucket)
            elif label == KEYSPACE_LABEL:
                values.append(ctx.keyspace)
            else:
                raise ValueError(f"Unknown label '{label}'")
        return values
