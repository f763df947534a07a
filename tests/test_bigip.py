import json

import pytest
import requests

from swarm_listener.core import config
from swarm_listener.core.errors import ConfigurationError, RouteSyncError
from swarm_listener.lib.bigip import BigIp, DataGroup, Record, read_config, read_key, service_paths

from conftest import BIGIP_HOST, DG, DG_URL, KEY, PATTERN, DataGroupStore, make_service, routed

CONFIG_API = "http://config.example/bigip"


@pytest.fixture
def key_file(tmp_path):
    path = tmp_path / "bigip-test-key"
    path.write_text("  test-key-value\n")
    return str(path)


@pytest.fixture
def config_api(requests_mock):
    requests_mock.get(CONFIG_API, json={"BIGIP_HOST": BIGIP_HOST, "BIGIP_DG": DG, "BIGIP_RWP": PATTERN})
    return CONFIG_API


# --- Construction ---
def test_from_config_builds_data_group_url(config_api, key_file):
    bigip = BigIp.from_config(config_api, key_file)
    assert bigip.url == DG_URL
    assert bigip.key == KEY
    assert bigip.pattern == PATTERN
    assert bigip.services == {}
    assert bigip.session.verify is False


def test_from_env_requires_config_api(monkeypatch):
    monkeypatch.setattr(config, "CONFIG_API", "")
    with pytest.raises(ConfigurationError):
        BigIp.from_env()


def test_from_env_reads_config_and_key(monkeypatch, config_api, key_file):
    monkeypatch.setattr(config, "CONFIG_API", config_api)
    monkeypatch.setattr(config, "BIGIP_KEY_FILE", key_file)
    bigip = BigIp.from_env()
    assert bigip.key == KEY
    assert bigip.pattern == PATTERN
    assert bigip.url == DG_URL


def test_read_key_missing_file_is_fatal(tmp_path):
    with pytest.raises(ConfigurationError):
        read_key(str(tmp_path / "missing"))


@pytest.mark.parametrize("kwargs", [
    {"status_code": 404},
    {"text": "{not json"},
    {"json": {"BIGIP_HOST": BIGIP_HOST}},
    {"exc": requests.exceptions.ConnectTimeout},
])
def test_read_config_failures_are_fatal(requests_mock, kwargs):
    requests_mock.get(CONFIG_API, **kwargs)
    with pytest.raises(ConfigurationError):
        read_config(CONFIG_API)


# --- Helpers ---
def test_service_paths_lowercases_and_drops_empty_segments():
    assert service_paths(routed("svc", "/Orders,/Billing")) == ["/orders", "/billing"]
    assert service_paths(routed("svc", ",, ,")) == []
    assert service_paths(make_service("svc")) == []


def test_get_records(bigip):
    records = bigip.get_records(["/test-1", "/test-2"])
    assert records == [Record("/test-1", PATTERN), Record("/test-2", PATTERN)]


def test_contains_record_matches_by_name_only(bigip):
    records = [Record(f"/test-{i}", PATTERN) for i in range(1, 5)]
    assert bigip.contains_record(records, Record("/test-3", "other-pattern"))
    assert not bigip.contains_record(records, Record("/test-5", PATTERN))


def test_remove_records(bigip):
    records = [Record(f"/test-{i}", PATTERN) for i in range(1, 5)]
    remaining = bigip.remove_records(records, [Record("/test-1", PATTERN), Record("/test-2", PATTERN)])
    assert [r.name for r in remaining] == ["/test-3", "/test-4"]


def test_data_group_encoding_omits_empty_fields():
    group = DataGroup([Record("/a", PATTERN), Record("/b", "")])
    assert json.loads(group.to_json()) == {"records": [{"name": "/a", "data": PATTERN}, {"name": "/b"}]}
    assert json.loads(DataGroup([]).to_json()) == {"records": []}


def test_requests_carry_secret_header(bigip, store):
    bigip.add_routes([routed("svc", "/a")])
    for request in store.get_matcher.request_history + store.put_matcher.request_history:
        assert request.headers["X-f5key"] == KEY
        assert request.headers["Content-Type"] == "application/json"


# --- Routes ---
def test_add_then_remove_single_route(bigip, store):
    bigip.add_routes([routed("svc1", "/a")])

    assert store.puts == [{"records": [{"name": "/a", "data": PATTERN}]}]
    assert bigip.services == {"svc1": ["/a"]}

    bigip.remove_routes(["svc1"])

    assert store.get_matcher.call_count == 2
    assert store.puts[-1] == {"records": []}
    assert bigip.services == {}


def test_multi_path_label_yields_lowercased_routes(bigip, store):
    bigip.add_routes([routed("orders", "/Orders,/Billing")])
    assert bigip.services == {"orders": ["/orders", "/billing"]}
    assert [r["name"] for r in store.records] == ["/orders", "/billing"]


def test_round_trip_restores_existing_records(bigip, requests_mock):
    existing = [{"name": "/keep", "data": "other"}]
    store = DataGroupStore(requests_mock, records=existing)

    bigip.add_routes([routed("svc", "/p1,/p2")])
    bigip.remove_routes(["svc"])

    assert store.records == existing
    assert "svc" not in bigip.services


def test_services_without_paths_are_skipped(bigip, store):
    bigip.add_routes([make_service("plain"), routed("empty", " , ")])
    assert store.get_matcher.call_count == 0
    assert store.put_matcher.call_count == 0
    assert bigip.services == {}


def test_remove_unknown_service_is_silent(bigip, store):
    bigip.remove_routes(["never-added"])
    assert store.get_matcher.call_count == 0


def test_repeated_add_accumulates_duplicates_and_remove_drops_all(bigip, store):
    bigip.add_routes([routed("svc", "/a")])
    bigip.add_routes([routed("svc", "/a")])
    assert [r["name"] for r in store.records] == ["/a", "/a"]

    bigip.remove_routes(["svc"])
    assert store.records == []


@pytest.mark.parametrize("kwargs", [
    {"status_code": 404},
    {"text": '{bad-json : [{"invalid-name":"/test-path"'},
    {"exc": requests.exceptions.ConnectionError},
])
def test_failed_get_leaves_route_cache_unchanged(bigip, requests_mock, kwargs):
    requests_mock.get(DG_URL, **kwargs)
    put = requests_mock.put(DG_URL, json={})

    with pytest.raises(RouteSyncError) as excinfo:
        bigip.add_routes([routed("test", "/test")])

    assert excinfo.value.failed == ["test"]
    assert bigip.services == {}
    assert put.call_count == 0


def test_failed_remove_keeps_route_cache_entry(bigip, requests_mock):
    requests_mock.get(DG_URL, status_code=404)
    bigip.services["test"] = ["/test"]

    with pytest.raises(RouteSyncError):
        bigip.remove_routes(["test"])

    assert bigip.services == {"test": ["/test"]}


def test_failed_put_is_reported(bigip, requests_mock):
    requests_mock.get(DG_URL, json={"records": []})
    requests_mock.put(DG_URL, status_code=500, text="boom")

    with pytest.raises(RouteSyncError):
        bigip.add_routes([routed("svc", "/a")])

    assert bigip.services == {}


def test_failure_does_not_stop_the_batch(bigip, requests_mock):
    records = []
    calls = {"get": 0}

    def get(request, context):
        calls["get"] += 1
        if calls["get"] == 1:
            context.status_code = 503
            return {}
        return {"records": list(records)}

    def put(request, context):
        records[:] = json.loads(request.body)["records"]
        return {}

    requests_mock.get(DG_URL, json=get)
    requests_mock.put(DG_URL, json=put)

    with pytest.raises(RouteSyncError) as excinfo:
        bigip.add_routes([routed("x", "/x"), routed("y", "/y")])

    assert excinfo.value.failed == ["x"]
    assert bigip.services == {"y": ["/y"]}
    assert records == [{"name": "/y", "data": PATTERN}]
