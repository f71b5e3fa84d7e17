from __future__ import annotations

import pytest

from busadmin.adapters.memory import InMemoryTopology
from busadmin.domain.model import ExchangeSpec, ExchangeType, QueueSpec

VHOST = "/"


@pytest.fixture
def topology() -> InMemoryTopology:
    """Default exchanges plus a small orders/billing topology in vhost ``/``."""
    topology = InMemoryTopology.with_defaults()
    for name in ("q-orders", "q-invoices", "billing"):
        topology.declare_queue(QueueSpec(vhost=VHOST, name=name))
    topology.declare_exchange(ExchangeSpec(vhost=VHOST, name="orders", type=ExchangeType.TOPIC))
    topology.declare_exchange(ExchangeSpec(vhost=VHOST, name="orders.dlx"))
    return topology


@pytest.fixture(autouse=True)
def _isolated_broker_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "BUSADMIN_MANAGEMENT_URL",
        "BUSADMIN_USERNAME",
        "BUSADMIN_PASSWORD",
        "BUSADMIN_VHOST",
        "BUSADMIN_PAGE_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
