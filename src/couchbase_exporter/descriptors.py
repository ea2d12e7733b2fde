"""Metric descriptors, emitted samples and raw value helpers."""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from prometheus_client.core import GaugeMetricFamily


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join namespace, subsystem and name, skipping empty parts.

    An empty name yields an empty string, matching the Prometheus client
    convention for fully-qualified names.
    """
    if not name:
        return ""
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass(frozen=True)
class MetricDescriptor:
    """Fully-qualified identity of one exported gauge."""
    fq_name: str
    help: str
    label_names: Tuple[str, ...]

    def to_family(self) -> GaugeMetricFamily:
        """Empty metric family, as returned from a collector's describe()."""
        return GaugeMetricFamily(self.fq_name, self.help, labels=list(self.label_names))


@dataclass(frozen=True)
class Sample:
    """A single value emitted for a descriptor during a scrape."""
    descriptor: MetricDescriptor
    value: float
    label_values: Tuple[str, ...]

    def __post_init__(self):
        if len(self.label_values) != len(self.descriptor.label_names):
            raise ValueError(
                f"{self.descriptor.fq_name}: expected labels "
                f"{list(self.descriptor.label_names)}, got {list(self.label_values)}"
            )

    def labels(self) -> dict:
        return dict(zip(self.descriptor.label_names, self.label_values))


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def last(series: Any) -> Optional[float]:
    """Current value of a time series.

    An absent or empty series reads as 0. A series that is not a list, or
    whose last sample is not a number, has no usable value and gives None.
    """
    if series is None:
        return 0.0
    if not isinstance(series, (list, tuple)):
        return None
    if not series:
        return 0.0
    return _as_number(series[-1])


def numeric_value(fields: Mapping[str, Any], name: str) -> Optional[float]:
    """Numeric value of a breakdown field, or None if absent or not a number."""
    return _as_number(fields.get(name))


def to_metric_families(samples: Iterable[Sample]) -> List[GaugeMetricFamily]:
    """Group samples into one gauge family per descriptor, in first-seen order."""
    families: Dict[MetricDescriptor, GaugeMetricFamily] = {}
    for sample in samples:
        family = families.get(sample.descriptor)
        if family is None:
            family = sample.descriptor.to_family()
            families[sample.descriptor] = family
        family.add_metric(list(sample.label_values), sample.value)
    return list(families.values())
