from __future__ import annotations

import pytest

from fakes import running
from ingressd.errors import DiscoveryError
from ingressd.events import clear_events
from ingressd.inventory import Instance


@pytest.fixture(autouse=True)
def _fresh_events():
    clear_events()
    yield
    clear_events()


@pytest.fixture
def fleet() -> list[Instance]:
    return [
        running("1", "192.168.0.1"),
        running("2", "192.168.0.2"),
        Instance(id="3", public_address="192.168.0.3", state="terminated"),
        Instance(id="4", public_address="192.168.0.4", state="stopping"),
    ]


@pytest.fixture
def discovery_error() -> DiscoveryError:
    return DiscoveryError("error describing instances: aws error")
