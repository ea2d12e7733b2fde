"""Tests for the admin API client against a fake HTTP session."""
import pytest
import requests

from couchbase_exporter.client import ClusterClient, ClusterClientError
from couchbase_exporter.config import ClusterConfig


class FakeResponse:
    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.payload


class FakeSession:
    """Maps request URLs to canned responses."""

    def __init__(self, routes):
        self.routes = routes
        self.auth = None
        self.requests = []

    def get(self, url, timeout=None):
        self.requests.append((url, timeout))
        route = self.routes.get(url)
        if isinstance(route, Exception):
            raise route
        if route is None:
            return FakeResponse(status_code=404)
        return route


POOLS_DEFAULT = {
    "clusterName": "prod",
    "nodes": [
        {"hostname": "10.0.0.2:8091", "services": ["kv"]},
        {"hostname": "10.0.0.1:8091", "services": ["kv", "index", "fts"], "thisNode": True},
    ],
}


def make_client(routes):
    config = ClusterConfig(url="http://cb.local:8091", username="u", password="p", timeout_s=3)
    session = FakeSession(routes)
    return ClusterClient(config, session=session), session


def test_cluster_info_and_current_node():
    client, session = make_client({
        "http://cb.local:8091/pools/default": FakeResponse(POOLS_DEFAULT),
    })

    assert client.cluster_name() == "prod"
    assert client.current_node().hostname == "10.0.0.1:8091"
    assert client.node_services() == {"kv", "index", "fts"}
    assert session.auth.username == "u"
    assert session.requests[0][1] == 3


def test_current_node_falls_back_to_first():
    payload = {"clusterName": "prod", "nodes": [{"hostname": "a:8091", "services": ["kv"]}]}
    client, _ = make_client({"http://cb.local:8091/pools/default": FakeResponse(payload)})

    assert client.current_node().hostname == "a:8091"


def test_no_nodes_is_an_error():
    client, _ = make_client({
        "http://cb.local:8091/pools/default": FakeResponse({"clusterName": "prod", "nodes": []}),
    })

    with pytest.raises(ClusterClientError):
        client.node_services()


def test_fetch_stats_returns_samples():
    samples = {"index_memory_used": [1, 2, 3]}
    client, _ = make_client({
        "http://cb.local:8091/pools/default/buckets/@index/stats": FakeResponse({"op": {"samples": samples}}),
        "http://cb.local:8091/pools/default/buckets/@fts/stats": FakeResponse({}),
    })

    assert client.fetch_stats("index") == samples
    assert client.fetch_stats("fts") == {}


def test_fetch_breakdown_uses_indexer_port():
    client, session = make_client({
        "http://cb.local:9102/api/v1/stats": FakeResponse({
            "indexer": {"memory_used": 10},
            "b:idx": {"items_count": 4},
            "version": "7.2",
        }),
    })

    breakdown = client.fetch_breakdown("index")

    assert breakdown == {"indexer": {"memory_used": 10}, "b:idx": {"items_count": 4}}
    assert session.requests[0][0] == "http://cb.local:9102/api/v1/stats"


def test_fetch_breakdown_unsupported_subsystem():
    client, session = make_client({})

    with pytest.raises(ClusterClientError):
        client.fetch_breakdown("fts")
    assert session.requests == []


@pytest.mark.parametrize("route", [
    requests.ConnectionError("refused"),
    requests.Timeout("timed out"),
    FakeResponse(status_code=401),
    FakeResponse(invalid_json=True),
    FakeResponse(["not", "a", "dict"]),
])
def test_failures_raise_client_error(route):
    client, _ = make_client({"http://cb.local:8091/pools/default/buckets/@index/stats": route})

    with pytest.raises(ClusterClientError):
        client.fetch_stats("index")
