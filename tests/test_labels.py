"""Tests for label context resolution."""
import pytest

from couchbase_exporter.client import ClusterClientError
from couchbase_exporter.labels import LabelManager, MetricContext

from helpers import FakeClient


def test_basic_context():
    manager = LabelManager(FakeClient(cluster_name="prod"))

    ctx = manager.get_basic_metric_context()

    assert ctx == MetricContext(cluster_name="prod", node="10.0.0.1:8091")


def test_basic_context_failures():
    with pytest.raises(ClusterClientError):
        LabelManager(FakeClient(fail=["cluster_info"])).get_basic_metric_context()
    with pytest.raises(ClusterClientError):
        LabelManager(FakeClient(cluster_name="")).get_basic_metric_context()


def test_metric_context_reuses_base():
    client = FakeClient()
    manager = LabelManager(client)
    base = manager.get_basic_metric_context()

    ctx = manager.get_metric_context("", "travel-sample:def_type", base=base)

    assert ctx.cluster_name == "cb-cluster"
    assert ctx.bucket == "travel-sample"
    assert ctx.keyspace == "travel-sample:def_type"
    assert client.calls == ["cluster_info"]
    # The base context is left untouched
    assert base.keyspace == ""


def test_metric_context_resolves_base_when_missing():
    client = FakeClient()
    manager = LabelManager(client)

    ctx = manager.get_metric_context("beer-sample", "")

    assert ctx.bucket == "beer-sample"
    assert ctx.keyspace == ""
    assert client.calls == ["cluster_info"]


def test_label_values_follow_label_order():
    manager = LabelManager(FakeClient())
    ctx = MetricContext(cluster_name="c", node="n", bucket="b", keyspace="b:i")

    assert manager.get_label_values(["keyspace", "cluster"], ctx) == ["b:i", "c"]
    assert manager.get_label_values(["node", "bucket"], ctx) == ["n", "b"]
    assert manager.get_label_values([], ctx) == []

    with pytest.raises(ValueError):
        manager.get_label_values(["scope"], ctx)
