"""Subsystem collectors implementing the Prometheus collector protocol."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional
import logging
import threading
import time

from prometheus_client.core import GaugeMetricFamily

from couchbase_exporter import defaults
from couchbase_exporter.client import ClusterClient, ClusterClientError
from couchbase_exporter.config import (
    CLUSTER_LABEL, KEYSPACE_LABEL, CollectorConfig, MetricDefinition
)
from couchbase_exporter.descriptors import (
    MetricDescriptor, Sample, build_fq_name, last, numeric_value, to_metric_families
)
from couchbase_exporter.labels import LabelManager, MetricContext

logger = logging.getLogger(__name__)


class MetaCollector:
    """Liveness and scrape-duration reporting shared by every collector.

    Each collector owns its own instance, and with it the lock that
    serializes that collector's scrape cycles.
    """

    def __init__(self, client: ClusterClient, label_manager: LabelManager, config: CollectorConfig):
        self.client = client
        self.label_manager = label_manager
        self.lock = threading.Lock()

        self.up = MetricDescriptor(
            build_fq_name(config.namespace, config.subsystem, defaults.DEFAULT_UPTIME_METRIC),
            defaults.DEFAULT_UPTIME_METRIC_HELP,
            (CLUSTER_LABEL,),
        )
        self.scrape_duration = MetricDescriptor(
            build_fq_name(config.namespace, config.subsystem, defaults.DEFAULT_SCRAPE_DURATION_METRIC),
            defaults.DEFAULT_SCRAPE_DURATION_METRIC_HELP,
            (CLUSTER_LABEL,),
        )

    def up_sample(self, value: float, cluster_name: str) -> Sample:
        return Sample(self.up, value, (cluster_name,))

    def duration_sample(self, start: float, cluster_name: str) -> Sample:
        return Sample(self.scrape_duration, time.monotonic() - start, (cluster_name,))


class SubsystemCollector(ABC):
    """Base for collectors exporting one subsystem's stats."""

    def __init__(self, client: ClusterClient, label_manager: LabelManager, config: CollectorConfig):
        self.config = config
        self.m = MetaCollector(client, label_manager, config)
        self.logger = logger.getChild(config.subsystem)

        self._descriptors: Dict[str, MetricDescriptor] = {
            definition.name: definition.descriptor(config.namespace, config.subsystem)
            for definition in config.metrics
        }

    @property
    def subsystem(self) -> str:
        return self.config.subsystem

    def describe(self) -> List[GaugeMetricFamily]:
        """Descriptors for liveness, scrape duration and every enabled metric."""
        families = [self.m.up.to_family(), self.m.scrape_duration.to_family()]
        for definition in self.config.enabled_metrics():
            families.append(self._descriptors[definition.name].to_family())
        return families

    def collect(self) -> List[GaugeMetricFamily]:
        return to_metric_families(self.scrape())

    def scrape(self) -> List[Sample]:
        """Run one scrape cycle.

        Always returns a liveness sample. The duration sample is only
        present when the cycle completed.
        """
        with self.m.lock:
            start = time.monotonic()

            self.logger.info(f"Collecting {self.subsystem} metrics...")

            try:
                ctx = self.m.label_manager.get_basic_metric_context()
            except ClusterClientError as e:
                self.logger.error(f"Failed to resolve cluster context for {self.subsystem}: {e}")
                return [self.m.up_sample(0, "")]
            except Exception:
                self.logger.exception(f"Unexpected error resolving cluster context for {self.subsystem}")
                return [self.m.up_sample(0, "")]

            try:
                stats = self.m.client.fetch_stats(self.subsystem)
                samples = self._collect_subsystem(ctx, stats)
            except ClusterClientError as e:
                self.logger.error(f"Failed to scrape {self.subsystem} stats: {e}")
                return [self.m.up_sample(0, ctx.cluster_name)]
            except Exception:
                self.logger.exception(f"Unexpected error collecting {self.subsystem} metrics")
                return [self.m.up_sample(0, ctx.cluster_name)]

            samples.append(self.m.up_sample(1, ctx.cluster_name))
            samples.append(self.m.duration_sample(start, ctx.cluster_name))
            return samples

    @abstractmethod
    def _collect_subsystem(self, ctx: MetricContext, stats: Mapping[str, Any]) -> List[Sample]:
        """Subsystem-specific samples for one cycle.

        May raise ClusterClientError for additional fetches; the cycle is
        then reported as failed and nothing it produced is emitted.
        """
        pass

    def _aggregate_sample(
        self,
        definition: MetricDefinition,
        stats: Mapping[str, Any],
        ctx: MetricContext
    ) -> Optional[Sample]:
        """Sample from the last value of the subsystem-wide series.

        None when the series holds no usable number; only that value is lost.
        """
        series_name = f"{self.subsystem}_{definition.name}"
        value = last(stats.get(series_name))
        if value is None:
            self.logger.debug(f"Skipping {series_name}: last sample is not numeric")
            return None
        return Sample(
            self._descriptors[definition.name],
            value,
            tuple(self.m.label_manager.get_label_values(definition.labels, ctx)),
        )

    def _aggregate_samples(
        self,
        definitions: List[MetricDefinition],
        stats: Mapping[str, Any],
        ctx: MetricContext
    ) -> List[Sample]:
        samples = []
        for definition in definitions:
            sample = self._aggregate_sample(definition, stats, ctx)
            if sample is not None:
                samples.append(sample)
        return samples


class StatsCollector(SubsystemCollector):
    """Exports every enabled metric from the subsystem's aggregate series."""

    def _collect_subsystem(self, ctx: MetricContext, stats: Mapping[str, Any]) -> List[Sample]:
        return self._aggregate_samples(self.config.enabled_metrics(), stats, ctx)


class SearchCollector(StatsCollector):
    def __init__(self, client: ClusterClient, label_manager: LabelManager,
                 config: Optional[CollectorConfig] = None):
        super().__init__(client, label_manager, config or defaults.get_search_collector_default_config())


class QueryCollector(StatsCollector):
    def __init__(self, client: ClusterClient, label_manager: LabelManager,
                 config: Optional[CollectorConfig] = None):
        super().__init__(client, label_manager, config or defaults.get_query_collector_default_config())


class IndexCollector(SubsystemCollector):
    """Index metrics, broken down per keyspace when this node runs the indexer.

    Definitions declaring the keyspace label are reported once per index from
    the indexer's own stats. On nodes without the index service only the
    aggregate definitions are reported.
    """

    def __init__(self, client: ClusterClient, label_manager: LabelManager,
                 config: Optional[CollectorConfig] = None):
        super().__init__(client, label_manager, config or defaults.get_index_collector_default_config())

    def _collect_subsystem(self, ctx: MetricContext, stats: Mapping[str, Any]) -> List[Sample]:
        services = self.m.client.node_services()
        definitions = self.config.enabled_metrics()

        if defaults.INDEX_SERVICE not in services:
            self.logger.debug("Index service not running on this node, keyspace metrics skipped")
            aggregates = [d for d in definitions if not d.has_label(KEYSPACE_LABEL)]
            return self._aggregate_samples(aggregates, stats, ctx)

        breakdown = self.m.client.fetch_breakdown(defaults.INDEX_SERVICE)

        samples: List[Sample] = []
        for definition in definitions:
            if definition.has_label(KEYSPACE_LABEL):
                samples.extend(self._keyspace_samples(definition, breakdown, ctx))
            else:
                samples.extend(self._aggregate_samples([definition], stats, ctx))
        return samples

    def _keyspace_samples(
        self,
        definition: MetricDefinition,
        breakdown: Mapping[str, Mapping[str, Any]],
        ctx: MetricContext
    ) -> List[Sample]:
        samples = []
        for key, fields in breakdown.items():
            if key == defaults.INDEX_AGGREGATE_KEY:
                continue

            value = numeric_value(fields, definition.name)
            if value is None:
                continue

            key_ctx = self.m.label_manager.get_metric_context("", key, base=ctx)
            samples.append(Sample(
                self._descriptors[definition.name],
                value,
                tuple(self.m.label_manager.get_label_values(definition.labels, key_ctx)),
            ))
        return samples
