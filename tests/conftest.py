# shared fakes: a manual clock for the throttle, scripted transports and canned payloads
# nothing here touches the network

import json
from pathlib import Path

import pytest
import requests

from weatherdesk.dispatcher import DispatchContext
from weatherdesk.throttle import RequestThrottle

DATA_DIR = Path(__file__).parent / "data"
KEYS = ("key-alpha-0001", "key-bravo-0002", "key-charlie-0003")


def load_payload(name):
    return json.loads((DATA_DIR / name).read_text())


def http_error(status, body=None):
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body if body is not None else {}).encode()
    resp.url = "https://api.tomorrow.io/v4/weather/forecast"
    return requests.HTTPError(f"HTTP {status}", response=resp)


class FakeClock:
    # monotonic clock that only moves when the throttle sleeps or a test advances it
    def __init__(self, start=100.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds):
        self.now += seconds


class ScriptedFetch:
    # stands in for HttpTransport.get: each call consumes the next outcome
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, path, params):
        self.calls.append((path, dict(params)))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def keys_used(self):
        return [params["apikey"] for _, params in self.calls]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def context(clock):
    return DispatchContext(throttle=RequestThrottle(clock=clock, sleep=clock.sleep))
