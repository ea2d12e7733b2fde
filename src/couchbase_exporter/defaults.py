"""Reserved metric names and default collector configurations."""
from couchbase_exporter.config import (
    CLUSTER_LABEL, KEYSPACE_LABEL, CollectorConfig, MetricDefinition
)

DEFAULT_NAMESPACE = "cb"

DEFAULT_UPTIME_METRIC = "up"
DEFAULT_UPTIME_METRIC_HELP = "Couchbase cluster API is responding"
DEFAULT_SCRAPE_DURATION_METRIC = "scrape_duration_seconds"
DEFAULT_SCRAPE_DURATION_METRIC_HELP = "Scrape duration in seconds"

# Service names as reported in a node's service list
INDEX_SERVICE = "index"
SEARCH_SERVICE = "fts"
QUERY_SERVICE = "n1ql"

# Umbrella key in the indexer stats breakdown holding indexer-wide totals
INDEX_AGGREGATE_KEY = "indexer"


def _aggregate(name: str, help_text: str) -> MetricDefinition:
    return MetricDefinition(name=name, labels=[CLUSTER_LABEL], help=help_text)


def _per_keyspace(name: str, help_text: str) -> MetricDefinition:
    return MetricDefinition(name=name, labels=[KEYSPACE_LABEL, CLUSTER_LABEL], help=help_text)


def get_index_collector_default_config() -> CollectorConfig:
    return CollectorConfig(
        namespace=DEFAULT_NAMESPACE,
        subsystem="index",
        metrics=[
            _aggregate("memory_quota", "Index service memory quota in bytes"),
            _aggregate("memory_used", "Memory used by the index service in bytes"),
            _aggregate("ram_percent", "Percentage of the index memory quota in use"),
            _aggregate("remaining_ram", "Bytes of index memory quota remaining"),
            _per_keyspace("items_count", "Number of items in the index"),
            _per_keyspace("num_docs_indexed", "Number of documents indexed since last restart"),
            _per_keyspace("num_docs_pending", "Number of documents pending to be indexed"),
            _per_keyspace("num_docs_queued", "Number of documents queued to be indexed"),
            _per_keyspace("num_requests", "Number of requests served by the index"),
            _per_keyspace("num_rows_returned", "Number of rows returned by index scans"),
            _per_keyspace("frag_percent", "Percentage of index data that is fragmented"),
            _per_keyspace("resident_percent", "Percentage of index data resident in memory"),
            _per_keyspace("cache_hits", "Number of index cache hits"),
            _per_keyspace("cache_misses", "Number of index cache misses"),
            _per_keyspace("avg_scan_latency", "Average time to serve a scan request in nanoseconds"),
            _per_keyspace("data_size", "Size of indexed data in bytes"),
            _per_keyspace("disk_size", "Size of the index on disk in bytes"),
        ],
    )


def get_search_collector_default_config() -> CollectorConfig:
    return CollectorConfig(
        namespace=DEFAULT_NAMESPACE,
        subsystem="fts",
        metrics=[
            _aggregate("curr_batches_blocked_by_herder",
                       "Number of batches blocked by the memory herder"),
            _aggregate("num_bytes_used_ram", "Bytes of RAM used by the search service"),
            _aggregate("total_queries_rejected_by_herder",
                       "Number of queries rejected by the memory herder"),
        ],
    )


def get_query_collector_default_config() -> CollectorConfig:
    return CollectorConfig(
        namespace=DEFAULT_NAMESPACE,
        subsystem="query",
        metrics=[
            _aggregate("active_requests", "Number of active query requests"),
            _aggregate("avg_req_time", "Average end-to-end request time in seconds"),
            _aggregate("avg_svc_time", "Average request service time in seconds"),
            _aggregate("avg_response_size", "Average response size in bytes"),
            _aggregate("avg_result_count", "Average number of results per request"),
            _aggregate("errors", "Number of query errors per second"),
            _aggregate("requests", "Number of query requests per second"),
            _aggregate("selects", "Number of SELECT requests per second"),
            _aggregate("warnings", "Number of query warnings per second"),
        ],
    )
