"""Builds the configured collectors and the registry that serves them."""
from typing import List
import logging

from prometheus_client import CollectorRegistry

from couchbase_exporter.client import ClusterClient
from couchbase_exporter.collectors import (
    IndexCollector, QueryCollector, SearchCollector, SubsystemCollector
)
from couchbase_exporter.config import Config
from couchbase_exporter.labels import LabelManager

logger = logging.getLogger(__name__)

COLLECTOR_TYPES = {
    "index": IndexCollector,
    "search": SearchCollector,
    "query": QueryCollector,
}


def create_collectors(
    config: Config,
    client: ClusterClient,
    label_manager: LabelManager
) -> List[SubsystemCollector]:
    """Instantiate one collector per configured, non-disabled subsystem."""
    collectors = []
    for name, collector_config in config.collectors.items():
        if name in config.disabled_collectors:
            logger.info(f"Collector '{name}' disabled")
            continue

        collector = COLLECTOR_TYPES[name](client, label_manager, collector_config)
        collectors.append(collector)
        logger.info(
            f"Collector '{name}': subsystem={collector_config.subsystem}, "
            f"{len(collector_config.enabled_metrics())} enabled metrics"
        )
    return collectors


def build_registry(collectors: List[SubsystemCollector]) -> CollectorRegistry:
    """Register collectors on a fresh registry."""
    # Use a custom registry to avoid exporting default Python/process metrics
    registry = CollectorRegistry()
    for collector in collectors:
        try:
            registry.register(collector)
        except ValueError as e:
            logger.error(f"Failed to register {collector.subsystem} collector: {e}")
            raise
    return registry
