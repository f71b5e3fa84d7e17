"""Descriptors for the broker resources the command layer administers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ResourceKind(StrEnum):
    QUEUE = "queue"
    EXCHANGE = "exchange"
    BINDING = "binding"


class ExchangeType(StrEnum):
    DIRECT = "direct"
    FANOUT = "fanout"
    TOPIC = "topic"
    HEADERS = "headers"


BUILTIN_EXCHANGE_PREFIX = "amq."


@dataclass(frozen=True, slots=True, kw_only=True)
class QueueDescriptor:
    """A queue as enumerated from the broker."""

    vhost: str
    name: str
    durable: bool = True
    auto_delete: bool = False
    exclusive: bool = False
    messages: int | None = None
    consumers: int | None = None
    arguments: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    kind: ResourceKind = field(default=ResourceKind.QUEUE, init=False)

    def __str__(self) -> str:
        return f"queue '{self.name}' in vhost '{self.vhost}'"


@dataclass(frozen=True, slots=True, kw_only=True)
class ExchangeDescriptor:
    """An exchange (message endpoint) as enumerated from the broker."""

    vhost: str
    name: str
    type: ExchangeType | str = ExchangeType.FANOUT
    durable: bool = True
    auto_delete: bool = False
    internal: bool = False
    arguments: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    kind: ResourceKind = field(default=ResourceKind.EXCHANGE, init=False)

    @property
    def is_builtin(self) -> bool:
        """The default exchange and ``amq.*`` exchanges belong to the broker."""
        return not self.name or self.name.startswith(BUILTIN_EXCHANGE_PREFIX)

    def __str__(self) -> str:
        label = self.name or "(default)"
        return f"exchange '{label}' in vhost '{self.vhost}'"


@dataclass(frozen=True, slots=True, kw_only=True)
class BindingDescriptor:
    """A subscription of a queue to an exchange."""

    vhost: str
    source: str
    destination: str
    routing_key: str = ""
    properties_key: str | None = field(default=None, compare=False)
    arguments: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    kind: ResourceKind = field(default=ResourceKind.BINDING, init=False)

    @property
    def name(self) -> str:
        return f"{self.source}->{self.destination}:{self.routing_key}"

    def __str__(self) -> str:
        return (
            f"binding '{self.source}' -> '{self.destination}' "
            f"(routing key '{self.routing_key}') in vhost '{self.vhost}'"
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class QueueSpec:
    """Requested shape of a queue to declare."""

    vhost: str
    name: str
    durable: bool = True
    auto_delete: bool = False
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True, kw_only=True)
class ExchangeSpec:
    """Requested shape of an exchange to declare."""

    vhost: str
    name: str
    type: ExchangeType = ExchangeType.FANOUT
    durable: bool = True
    auto_delete: bool = False
    internal: bool = False
    arguments: dict[str, Any] = field(default_factory=dict)


type ResourceDescriptor = QueueDescriptor | ExchangeDescriptor | BindingDescriptor
