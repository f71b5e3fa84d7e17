"""Translate management API payloads into domain descriptors and back."""

from __future__ import annotations

from typing import TYPE_CHECKING

from busadmin.domain.model import (
    BindingDescriptor,
    ExchangeDescriptor,
    ExchangeType,
    QueueDescriptor,
)

from .schema import (
    BindingDeclaration,
    BindingPayload,
    ExchangeDeclaration,
    ExchangePayload,
    QueueDeclaration,
    QueuePayload,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from busadmin.domain.model import ExchangeSpec, QueueSpec


def translate_queue(payload: QueuePayload) -> QueueDescriptor:
    return QueueDescriptor(
        vhost=payload.vhost,
        name=payload.name,
        durable=payload.durable,
        auto_delete=payload.auto_delete,
        exclusive=payload.exclusive,
        messages=payload.messages,
        consumers=payload.consumers,
        arguments=dict(payload.arguments),
    )


def translate_exchange(payload: ExchangePayload) -> ExchangeDescriptor:
    return ExchangeDescriptor(
        vhost=payload.vhost,
        name=payload.name,
        # Plugin exchange types (x-delayed-message, ...) keep their broker name.
        type=_exchange_type(payload.type),
        durable=payload.durable,
        auto_delete=payload.auto_delete,
        internal=payload.internal,
        arguments=dict(payload.arguments),
    )


def translate_binding(payload: BindingPayload) -> BindingDescriptor:
    return BindingDescriptor(
        vhost=payload.vhost,
        source=payload.source,
        destination=payload.destination,
        routing_key=payload.routing_key,
        properties_key=payload.properties_key,
        arguments=dict(payload.arguments),
    )


def queue_declaration(spec: QueueSpec) -> QueueDeclaration:
    return QueueDeclaration(
        durable=spec.durable,
        auto_delete=spec.auto_delete,
        arguments=dict(spec.arguments),
    )


def exchange_declaration(spec: ExchangeSpec) -> ExchangeDeclaration:
    return ExchangeDeclaration(
        type=str(spec.type),
        durable=spec.durable,
        auto_delete=spec.auto_delete,
        internal=spec.internal,
        arguments=dict(spec.arguments),
    )


def binding_declaration(
    routing_key: str, arguments: Mapping[str, Any] | None
) -> BindingDeclaration:
    return BindingDeclaration(routing_key=routing_key, arguments=dict(arguments or {}))


def _exchange_type(value: str) -> ExchangeType | str:
    try:
        return ExchangeType(value)
    except ValueError:
        return value
