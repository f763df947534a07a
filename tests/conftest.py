import json

import pytest
import requests

from swarm_listener.lib import metrics
from swarm_listener.lib.bigip import BigIp
from swarm_listener.lib.notifications import Notifier
from swarm_listener.lib.service_cache import ServiceCache
from swarm_listener.lib.swarm_services import Service

BIGIP_HOST = "https://bigip.example"
DG = "test-dg"
DG_URL = f"{BIGIP_HOST}/mgmt/tm/ltm/data-group/internal/{DG}"
PATTERN = "test-pattern"
KEY = "test-key-value"
CREATE_URL = "http://proxy:8080/v1/docker-flow-proxy/reconfigure"
REMOVE_URL = "http://proxy:8080/v1/docker-flow-proxy/remove"


def make_service(name, **labels):
    return Service(name=name, labels={k.replace("_", "."): v for k, v in labels.items()})


def routed(name, path):
    return Service(name=name, labels={"com.df.notify": "true", "com.df.servicePath": path})


class FakeSource:
    """Snapshot source returning queued results; exceptions in the queue are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def get_services(self):
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return list(result)


class DataGroupStore:
    """In-memory BIG-IP data group served through requests-mock."""

    def __init__(self, requests_mock, records=None):
        self.records = list(records or [])
        self.puts = []
        self.get_matcher = requests_mock.get(DG_URL, json=self._get)
        self.put_matcher = requests_mock.put(DG_URL, json=self._put)

    def _get(self, request, context):
        return {"records": list(self.records)}

    def _put(self, request, context):
        body = json.loads(request.body)
        self.puts.append(body)
        self.records = body["records"]
        return {}


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def cache():
    return ServiceCache()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def notifier(cache, sleeps):
    return Notifier([CREATE_URL], [REMOVE_URL], cache, timeout=1, session=requests.Session(), sleep=sleeps.append)


@pytest.fixture
def bigip():
    return BigIp(DG_URL, KEY, PATTERN, session=requests.Session(), timeout=1)


@pytest.fixture
def store(requests_mock):
    return DataGroupStore(requests_mock)
