from __future__ import annotations

import json
from collections.abc import Callable  # noqa: TC003

import httpx
import pytest

from busadmin.adapters.http_resilience import ResilientClient
from busadmin.adapters.rabbitmq import (
    RabbitMqApiError,
    RabbitMqManagementClient,
    RabbitMqTopology,
    name_regex,
)
from busadmin.config import BrokerConfig, ResilienceConfig
from busadmin.domain import commands
from busadmin.domain.commands import CommandStatus
from busadmin.domain.model import BindingDescriptor, ExchangeType, QueueSpec
from busadmin.domain.ports import BrokerTopology
from busadmin.domain.resolution import Ambiguous, Found, resolve_single
from busadmin.domain.selectors import Selector, select

type Handler = Callable[[httpx.Request], httpx.Response]


def _make_client_factory(handler: Handler) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            auth=httpx.BasicAuth(*resilience.basic_auth) if resilience.basic_auth else None,
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


@pytest.fixture
def broker_config() -> BrokerConfig:
    return BrokerConfig(
        management_url="http://rabbit.local:15672",
        username="admin",
        password="secret",
        page_size=2,
    )


@pytest.fixture
def requests() -> list[httpx.Request]:
    return []


def _topology(
    broker_config: BrokerConfig, handler: Handler, requests: list[httpx.Request]
) -> RabbitMqTopology:
    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = RabbitMqManagementClient(
        config=broker_config, client_factory=_make_client_factory(recording_handler)
    )
    return RabbitMqTopology(client=client, page_size=broker_config.page_size)


def _queue(name: str, **extra: object) -> dict[str, object]:
    return {"name": name, "vhost": "/", "durable": True, "auto_delete": False, **extra}


def _queue_pages(names: list[str], page_size: int) -> Handler:
    pages = [names[index : index + page_size] for index in range(0, len(names), page_size)]

    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        return httpx.Response(
            200,
            json={
                "items": [_queue(name) for name in pages[page - 1]],
                "page": page,
                "page_count": len(pages),
                "page_size": page_size,
                "item_count": len(pages[page - 1]),
                "filtered_count": len(names),
                "total_count": len(names),
            },
        )

    return handler


def _path(request: httpx.Request) -> bytes:
    return request.url.raw_path.split(b"?", 1)[0]


def test_rabbitmq_topology_satisfies_port(broker_config: BrokerConfig) -> None:
    assert isinstance(RabbitMqTopology.from_config(broker_config), BrokerTopology)


def test_iter_queues_pages_through_all_results(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    topology = _topology(broker_config, _queue_pages(["a", "b", "c"], 2), requests)

    names = [queue.name for queue in topology.iter_queues("/")]

    assert names == ["a", "b", "c"]
    assert [request.url.params["page"] for request in requests] == ["1", "2"]
    assert all(_path(request) == b"/api/queues/%2F" for request in requests)


def test_iter_queues_sends_credentials(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    topology = _topology(broker_config, _queue_pages(["a"], 2), requests)

    list(topology.iter_queues("/"))

    assert requests[0].headers["authorization"].startswith("Basic ")


def test_iter_queues_pushes_selector_down_as_regex(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    topology = _topology(broker_config, _queue_pages(["q-a"], 2), requests)

    list(topology.iter_queues("/", name_hint=Selector.parse("q-*")))

    params = requests[0].url.params
    assert params["name"] == r"^q\-.*$"
    assert params["use_regex"] == "true"


def test_resolution_stops_paging_once_ambiguous(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    names = ["q-1", "q-2", "q-3", "q-4", "q-5", "q-6"]
    topology = _topology(broker_config, _queue_pages(names, 2), requests)

    outcome = resolve_single(select(topology.iter_queues("/"), Selector.parse("q-*")))

    assert isinstance(outcome, Ambiguous)
    assert len(requests) == 1


def test_resolution_reads_every_page_to_prove_uniqueness(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    names = ["a", "b", "c", "target", "d"]
    topology = _topology(broker_config, _queue_pages(names, 2), requests)

    outcome = resolve_single(select(topology.iter_queues("/"), Selector.parse("target")))

    assert isinstance(outcome, Found)
    assert outcome.item.name == "target"
    assert len(requests) == 3


def test_empty_vhost_yields_nothing(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"items": [], "page": 1, "page_count": 0, "page_size": 2, "item_count": 0},
        )

    topology = _topology(broker_config, handler, requests)

    assert list(topology.iter_queues("/")) == []
    assert len(requests) == 1


def test_api_error_carries_status_and_reason(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "not_authorised", "reason": "Login failed"})

    topology = _topology(broker_config, handler, requests)

    with pytest.raises(RabbitMqApiError) as excinfo:
        list(topology.iter_queues("/"))

    assert excinfo.value.code == 401
    assert "Login failed" in str(excinfo.value)


def test_api_error_is_logged_with_lazy_arguments(
    broker_config: BrokerConfig,
    requests: list[httpx.Request],
    caplog: pytest.LogCaptureFixture,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "not_authorised", "reason": "Login failed"})

    topology = _topology(broker_config, handler, requests)

    with (
        caplog.at_level("DEBUG", logger="busadmin.adapters.rabbitmq.client"),
        pytest.raises(RabbitMqApiError),
    ):
        list(topology.iter_queues("/"))

    [record] = [r for r in caplog.records if r.msg.startswith("RabbitMQ API error")]
    assert record.args == (401, "GET", "queues/%2F", "Login failed")
    assert record.getMessage() == "RabbitMQ API error 401 on GET queues/%2F: Login failed"


def test_unexpected_payload_raises_api_error(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    topology = _topology(broker_config, handler, requests)

    with pytest.raises(RabbitMqApiError, match="QueuePage"):
        list(topology.iter_queues("/"))


def test_iter_exchanges_keeps_plugin_exchange_types(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "items": [
                    {"name": "orders", "vhost": "/", "type": "topic"},
                    {"name": "delayed", "vhost": "/", "type": "x-delayed-message"},
                ],
                "page": 1,
                "page_count": 1,
                "page_size": 2,
                "item_count": 2,
            },
        )

    topology = _topology(broker_config, handler, requests)

    exchanges = list(topology.iter_exchanges("/"))

    assert _path(requests[0]) == b"/api/exchanges/%2F"
    assert exchanges[0].type is ExchangeType.TOPIC
    assert exchanges[1].type == "x-delayed-message"


def test_iter_bindings_skips_exchange_to_exchange_bindings(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=[
                {
                    "source": "orders",
                    "vhost": "/",
                    "destination": "billing",
                    "destination_type": "queue",
                    "routing_key": "invoice.*",
                    "properties_key": "invoice.*",
                },
                {
                    "source": "orders",
                    "vhost": "/",
                    "destination": "audit",
                    "destination_type": "exchange",
                    "routing_key": "",
                    "properties_key": "~",
                },
            ],
        )

    topology = _topology(broker_config, handler, requests)

    bindings = list(topology.iter_bindings("/"))

    assert [(binding.destination, binding.properties_key) for binding in bindings] == [
        ("billing", "invoice.*")
    ]


def test_declare_queue_puts_declaration(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201)

    topology = _topology(broker_config, handler, requests)

    queue = topology.declare_queue(
        QueueSpec(vhost="/", name="orders v2", arguments={"x-max-length": 1000})
    )

    request = requests[0]
    assert request.method == "PUT"
    assert _path(request) == b"/api/queues/%2F/orders%20v2"
    assert json.loads(request.content) == {
        "durable": True,
        "auto_delete": False,
        "arguments": {"x-max-length": 1000},
    }
    assert queue.name == "orders v2"


def test_bind_reads_properties_key_from_location(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and _path(request).startswith(b"/api/bindings"):
            return httpx.Response(200, json=[])
        if request.method == "GET":
            kind = "exchanges" if b"exchanges" in _path(request) else "queues"
            item = (
                {"name": "orders", "vhost": "/", "type": "topic"}
                if kind == "exchanges"
                else _queue("billing")
            )
            return httpx.Response(
                200,
                json={"items": [item], "page": 1, "page_count": 1, "page_size": 2, "item_count": 1},
            )
        return httpx.Response(
            201, headers={"Location": "bindings/%2F/e/orders/q/billing/invoice.%2A"}
        )

    topology = _topology(broker_config, handler, requests)

    result = commands.bind_queue(
        topology, "/", Selector.parse("orders"), Selector.parse("billing"), routing_key="invoice.*"
    )

    post = requests[-1]
    assert result.status is CommandStatus.SUCCESS
    assert post.method == "POST"
    assert _path(post) == b"/api/bindings/%2F/e/orders/q/billing"
    assert json.loads(post.content) == {"routing_key": "invoice.*", "arguments": {}}
    assert result.resource is not None
    assert getattr(result.resource, "properties_key") == "invoice.*"


def test_unbind_deletes_by_properties_key(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    topology = _topology(broker_config, handler, requests)

    topology.unbind(
        BindingDescriptor(
            vhost="/",
            source="orders",
            destination="billing",
            routing_key="invoice.*",
            properties_key="invoice.*",
        )
    )

    assert requests[0].method == "DELETE"
    assert _path(requests[0]) == b"/api/bindings/%2F/e/orders/q/billing/invoice.%2A"


def test_delete_with_ambiguous_selector_sends_no_delete(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    topology = _topology(broker_config, _queue_pages(["q-a", "q-b", "q-c"], 2), requests)

    result = commands.delete_queue(topology, "/", Selector.parse("q-*"))

    assert result.status is CommandStatus.AMBIGUOUS
    assert [request.method for request in requests] == ["GET"]


def test_delete_maps_not_found_to_failed_result(
    broker_config: BrokerConfig, requests: list[httpx.Request]
) -> None:
    listing = _queue_pages(["billing"], 2)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return listing(request)
        return httpx.Response(404, json={"error": "Object Not Found", "reason": "Not Found"})

    topology = _topology(broker_config, handler, requests)

    result = commands.delete_queue(topology, "/", Selector.parse("billing"))

    assert result.status is CommandStatus.FAILED
    assert "404" in result.message
    assert _path(requests[-1]) == b"/api/queues/%2F/billing"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("billing", "^billing$"),
        ("q-*", r"^q\-.*$"),
        ("orders.?", r"^orders\..$"),
        ("q-[ab]", None),
    ],
)
def test_name_regex(text: str, expected: str | None) -> None:
    assert name_regex(Selector.parse(text)) == expected


def test_name_regex_without_selector() -> None:
    assert name_regex(None) is None
