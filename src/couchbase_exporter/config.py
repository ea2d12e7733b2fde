"""Configuration models using Pydantic for validation."""
from typing import Dict, List, Optional, Literal
from pydantic import BaseModel, Field, field_validator, model_validator
import os
import re

from couchbase_exporter.descriptors import MetricDescriptor, build_fq_name


# Label names a metric definition may declare
CLUSTER_LABEL = "cluster"
NODE_LABEL = "node"
BUCKET_LABEL = "bucket"
KEYSPACE_LABEL = "keyspace"

KNOWN_LABELS = (CLUSTER_LABEL, NODE_LABEL, BUCKET_LABEL, KEYSPACE_LABEL)

_LABEL_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


class MetricDefinition(BaseModel):
    """Declarative definition of one exportable metric."""
    name: str
    enabled: bool = True
    labels: List[str] = Field(default_factory=lambda: [CLUSTER_LABEL])
    help: str = ""

    model_config = {"frozen": True}

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not _LABEL_NAME_PATTERN.match(v):
            raise ValueError(f"Invalid metric name '{v}'")
        return v

    @field_validator('labels')
    @classmethod
    def validate_labels(cls, v):
        """Labels must be unique and resolvable from a metric context."""
        if len(v) != len(set(v)):
            raise ValueError(f"Duplicate label names: {v}")

        for label in v:
            if label not in KNOWN_LABELS:
                raise ValueError(
                    f"Unknown label '{label}', expected one of {list(KNOWN_LABELS)}"
                )
        return v

    def has_label(self, label: str) -> bool:
        return label in self.labels

    def descriptor(self, namespace: str, subsystem: str) -> MetricDescriptor:
        """Build the Prometheus descriptor for this definition."""
        return MetricDescriptor(
            build_fq_name(namespace, subsystem, self.name),
            self.help,
            tuple(self.labels),
        )


class CollectorConfig(BaseModel):
    """Namespace, subsystem and metric definitions for one collector."""
    namespace: str = "cb"
    subsystem: str
    metrics: List[MetricDefinition] = Field(default_factory=list)

    @field_validator('metrics')
    @classmethod
    def validate_metrics(cls, v):
        names = [m.name for m in v]
        if len(names) != len(set(names)):
            raise ValueError("Metric names must be unique")
        return v

    def enabled_metrics(self) -> List[MetricDefinition]:
        return [m for m in self.metrics if m.enabled]


class ClusterConfig(BaseModel):
    """Connection settings for the cluster admin API."""
    url: str = "http://localhost:8091"
    username: str = "Administrator"
    password: str = "password"
    timeout_s: float = 10.0
    indexer_port: int = 9102


class ServerConfig(BaseModel):
    """Scrape endpoint settings."""
    bind_address: str = "0.0.0.0"
    port: int = 9420


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"


class CollectorsConfig(BaseModel):
    """Per-subsystem collector configs. Missing sections use the defaults."""
    index: Optional[CollectorConfig] = None
    search: Optional[CollectorConfig] = None
    query: Optional[CollectorConfig] = None

    @model_validator(mode='after')
    def fill_defaults(self):
        from couchbase_exporter import defaults

        if self.index is None:
            self.index = defaults.get_index_collector_default_config()
        if self.search is None:
            self.search = defaults.get_search_collector_default_config()
        if self.query is None:
            self.query = defaults.get_query_collector_default_config()
        return self

    def items(self) -> List[tuple]:
        return [("index", self.index), ("search", self.search), ("query", self.query)]


class Config(BaseModel):
    """Root configuration model."""
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    collectors: CollectorsConfig = Field(default_factory=CollectorsConfig)
    disabled_collectors: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @field_validator('disabled_collectors')
    @classmethod
    def validate_disabled(cls, v):
        for name in v:
            if name not in ("index", "search", "query"):
                raise ValueError(f"Unknown collector '{name}'")
        return v


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate configuration from YAML file.

    With no path, the built-in defaults are used. Environment variables
    override the file in both cases.
    """
    import yaml

    raw_config: Dict = {}
    if config_path is not None:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    for env_name, key in (("CB_URL", "url"), ("CB_USERNAME", "username"), ("CB_PASSWORD", "password")):
        if env_value := os.getenv(env_name):
            raw_config.setdefault('cluster', {})[key] = env_value

    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})['log_level'] = env_log_level

    try:
        return Config(**raw_config)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
