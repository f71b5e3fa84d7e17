"""Broker topology port implemented over the RabbitMQ management API."""

from __future__ import annotations

import re
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from busadmin.domain.model import BindingDescriptor, ExchangeDescriptor, QueueDescriptor

from .client import RabbitMqApiError, RabbitMqManagementClient
from .translator import (
    binding_declaration,
    exchange_declaration,
    queue_declaration,
    translate_binding,
    translate_exchange,
    translate_queue,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from busadmin.config.broker import BrokerConfig
    from busadmin.domain.model import ExchangeSpec, QueueSpec
    from busadmin.domain.ports import BrokerTopology
    from busadmin.domain.selectors import Selector

log = getLogger(__name__)


def name_regex(selector: Selector | None) -> str | None:
    """Server-side regex equivalent of ``selector``, or ``None`` if it has none.

    Character classes are left to local matching; the regex only narrows the
    listing and the caller still filters with the selector itself.
    """

    if selector is None or "[" in selector.text:
        return None
    parts: list[str] = []
    for char in selector.text:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


@dataclass(slots=True)
class RabbitMqTopology:
    """Lazily pages through queues and exchanges, one HTTP request per page."""

    client: RabbitMqManagementClient
    page_size: int = 100

    @classmethod
    def from_config(cls, config: BrokerConfig) -> RabbitMqTopology:
        return cls(client=RabbitMqManagementClient(config=config), page_size=config.page_size)

    # Queues

    def iter_queues(
        self, vhost: str, *, name_hint: Selector | None = None
    ) -> Iterator[QueueDescriptor]:
        regex = name_regex(name_hint)
        page = 1
        while True:
            result = self.client.queues_page(
                vhost, page=page, page_size=self.page_size, name_regex=regex
            )
            for payload in result.items:
                yield translate_queue(payload)
            if result.is_last:
                return
            page += 1

    def declare_queue(self, spec: QueueSpec) -> QueueDescriptor:
        self.client.put_queue(spec.vhost, spec.name, queue_declaration(spec))
        log.debug("Declared queue %s in %s", spec.name, spec.vhost)
        return _declared_queue(spec)

    def delete_queue(self, queue: QueueDescriptor) -> None:
        self.client.delete_queue(queue.vhost, queue.name)

    def purge_queue(self, queue: QueueDescriptor) -> int | None:
        self.client.purge_queue(queue.vhost, queue.name)
        return queue.messages

    # Exchanges

    def iter_exchanges(
        self, vhost: str, *, name_hint: Selector | None = None
    ) -> Iterator[ExchangeDescriptor]:
        regex = name_regex(name_hint)
        page = 1
        while True:
            result = self.client.exchanges_page(
                vhost, page=page, page_size=self.page_size, name_regex=regex
            )
            for payload in result.items:
                yield translate_exchange(payload)
            if result.is_last:
                return
            page += 1

    def declare_exchange(self, spec: ExchangeSpec) -> ExchangeDescriptor:
        self.client.put_exchange(spec.vhost, spec.name, exchange_declaration(spec))
        return _declared_exchange(spec)

    def delete_exchange(self, exchange: ExchangeDescriptor) -> None:
        self.client.delete_exchange(exchange.vhost, exchange.name)

    # Bindings

    def iter_bindings(self, vhost: str) -> Iterator[BindingDescriptor]:
        for payload in self.client.bindings(vhost):
            if payload.destination_type != "queue":
                continue
            yield translate_binding(payload)

    def bind(
        self,
        exchange: ExchangeDescriptor,
        queue: QueueDescriptor,
        *,
        routing_key: str = "",
        arguments: Mapping[str, Any] | None = None,
    ) -> BindingDescriptor:
        properties_key = self.client.create_binding(
            exchange.vhost,
            exchange=exchange.name,
            queue=queue.name,
            declaration=binding_declaration(routing_key, arguments),
        )
        return BindingDescriptor(
            vhost=exchange.vhost,
            source=exchange.name,
            destination=queue.name,
            routing_key=routing_key,
            properties_key=properties_key,
            arguments=dict(arguments or {}),
        )

    def unbind(self, binding: BindingDescriptor) -> None:
        if binding.properties_key is None:
            raise RabbitMqApiError(f"{binding} has no properties key; list it from the broker")
        self.client.delete_binding(
            binding.vhost,
            exchange=binding.source,
            queue=binding.destination,
            properties_key=binding.properties_key,
        )


def _declared_queue(spec: QueueSpec) -> QueueDescriptor:
    return QueueDescriptor(
        vhost=spec.vhost,
        name=spec.name,
        durable=spec.durable,
        auto_delete=spec.auto_delete,
        arguments=dict(spec.arguments),
    )


def _declared_exchange(spec: ExchangeSpec) -> ExchangeDescriptor:
    return ExchangeDescriptor(
        vhost=spec.vhost,
        name=spec.name,
        type=spec.type,
        durable=spec.durable,
        auto_delete=spec.auto_delete,
        internal=spec.internal,
        arguments=dict(spec.arguments),
    )


if TYPE_CHECKING:
    def _topology_check(topology: RabbitMqTopology) -> BrokerTopology:
        return topology
