"""Dict-backed broker topology for tests and dry runs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, Any

from busadmin.domain.model import (
    BindingDescriptor,
    ExchangeDescriptor,
    ExchangeType,
    QueueDescriptor,
)
from busadmin.domain.ports import BrokerError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from busadmin.domain.model import ExchangeSpec, QueueSpec
    from busadmin.domain.ports import BrokerTopology
    from busadmin.domain.selectors import Selector

log = getLogger(__name__)

_DEFAULT_EXCHANGES = (
    ("", ExchangeType.DIRECT),
    ("amq.direct", ExchangeType.DIRECT),
    ("amq.fanout", ExchangeType.FANOUT),
    ("amq.headers", ExchangeType.HEADERS),
    ("amq.topic", ExchangeType.TOPIC),
)


@dataclass(slots=True)
class InMemoryTopology:
    """Keeps queues, exchanges and bindings per vhost in plain dicts.

    Enumeration iterates over a snapshot, so mutating the topology while a
    listing is in flight does not disturb it.
    """

    queues: dict[tuple[str, str], QueueDescriptor] = field(default_factory=dict)
    exchanges: dict[tuple[str, str], ExchangeDescriptor] = field(default_factory=dict)
    bindings: list[BindingDescriptor] = field(default_factory=list)
    depths: dict[tuple[str, str], int] = field(default_factory=dict)

    @classmethod
    def with_defaults(cls, vhosts: Iterable[str] = ("/",)) -> InMemoryTopology:
        topology = cls()
        for vhost in vhosts:
            for name, exchange_type in _DEFAULT_EXCHANGES:
                topology.exchanges[(vhost, name)] = ExchangeDescriptor(
                    vhost=vhost, name=name, type=exchange_type
                )
        return topology

    # Queues

    def iter_queues(
        self, vhost: str, *, name_hint: Selector | None = None
    ) -> Iterator[QueueDescriptor]:
        for (queue_vhost, name), queue in list(self.queues.items()):
            if queue_vhost != vhost:
                continue
            if name_hint is not None and not name_hint.matches(name):
                continue
            yield replace(queue, messages=self.depths.get((vhost, name), 0))

    def declare_queue(self, spec: QueueSpec) -> QueueDescriptor:
        key = (spec.vhost, spec.name)
        if key in self.queues:
            raise BrokerError(f"Queue '{spec.name}' already exists", code=406)
        queue = QueueDescriptor(
            vhost=spec.vhost,
            name=spec.name,
            durable=spec.durable,
            auto_delete=spec.auto_delete,
            arguments=dict(spec.arguments),
            messages=0,
            consumers=0,
        )
        self.queues[key] = queue
        log.debug("Declared in-memory queue %s", key)
        return queue

    def delete_queue(self, queue: QueueDescriptor) -> None:
        key = (queue.vhost, queue.name)
        if self.queues.pop(key, None) is None:
            raise BrokerError(f"Queue '{queue.name}' does not exist", code=404)
        self.depths.pop(key, None)
        self.bindings = [
            binding
            for binding in self.bindings
            if not (binding.vhost == queue.vhost and binding.destination == queue.name)
        ]

    def purge_queue(self, queue: QueueDescriptor) -> int | None:
        key = (queue.vhost, queue.name)
        if key not in self.queues:
            raise BrokerError(f"Queue '{queue.name}' does not exist", code=404)
        return self.depths.pop(key, 0)

    def publish(self, vhost: str, queue_name: str, count: int = 1) -> None:
        """Pretend ``count`` messages arrived on a queue."""
        key = (vhost, queue_name)
        if key not in self.queues:
            raise BrokerError(f"Queue '{queue_name}' does not exist", code=404)
        self.depths[key] = self.depths.get(key, 0) + count

    # Exchanges

    def iter_exchanges(
        self, vhost: str, *, name_hint: Selector | None = None
    ) -> Iterator[ExchangeDescriptor]:
        for (exchange_vhost, name), exchange in list(self.exchanges.items()):
            if exchange_vhost != vhost:
                continue
            if name_hint is not None and not name_hint.matches(name):
                continue
            yield exchange

    def declare_exchange(self, spec: ExchangeSpec) -> ExchangeDescriptor:
        key = (spec.vhost, spec.name)
        if key in self.exchanges:
            raise BrokerError(f"Exchange '{spec.name}' already exists", code=406)
        exchange = ExchangeDescriptor(
            vhost=spec.vhost,
            name=spec.name,
            type=spec.type,
            durable=spec.durable,
            auto_delete=spec.auto_delete,
            internal=spec.internal,
            arguments=dict(spec.arguments),
        )
        self.exchanges[key] = exchange
        return exchange

    def delete_exchange(self, exchange: ExchangeDescriptor) -> None:
        if self.exchanges.pop((exchange.vhost, exchange.name), None) is None:
            raise BrokerError(f"Exchange '{exchange.name}' does not exist", code=404)
        self.bindings = [
            binding
            for binding in self.bindings
            if not (binding.vhost == exchange.vhost and binding.source == exchange.name)
        ]

    # Bindings

    def iter_bindings(self, vhost: str) -> Iterator[BindingDescriptor]:
        for binding in list(self.bindings):
            if binding.vhost == vhost:
                yield binding

    def bind(
        self,
        exchange: ExchangeDescriptor,
        queue: QueueDescriptor,
        *,
        routing_key: str = "",
        arguments: Mapping[str, Any] | None = None,
    ) -> BindingDescriptor:
        if (exchange.vhost, exchange.name) not in self.exchanges:
            raise BrokerError(f"Exchange '{exchange.name}' does not exist", code=404)
        if (queue.vhost, queue.name) not in self.queues:
            raise BrokerError(f"Queue '{queue.name}' does not exist", code=404)
        binding = BindingDescriptor(
            vhost=exchange.vhost,
            source=exchange.name,
            destination=queue.name,
            routing_key=routing_key,
            properties_key=routing_key or "~",
            arguments=dict(arguments or {}),
        )
        self.bindings.append(binding)
        return binding

    def unbind(self, binding: BindingDescriptor) -> None:
        try:
            self.bindings.remove(binding)
        except ValueError:
            raise BrokerError(f"{binding} does not exist", code=404) from None


if TYPE_CHECKING:
    _topology_check: BrokerTopology = InMemoryTopology()
