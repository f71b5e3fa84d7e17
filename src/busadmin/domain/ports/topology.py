"""Ports for enumerating and mutating broker topology."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from busadmin.domain.model import (
        BindingDescriptor,
        ExchangeDescriptor,
        ExchangeSpec,
        QueueDescriptor,
        QueueSpec,
    )
    from busadmin.domain.selectors import Selector


class BrokerError(RuntimeError):
    """Raised by adapters when the broker rejects or fails an operation."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


@runtime_checkable
class QueueCatalog(Protocol):
    """Enumeration and mutation of queues.

    ``iter_queues`` returns a lazy iterator; callers may stop consuming it at any
    point and must close it if they do.
    """

    def iter_queues(self, vhost: str, *, name_hint: Selector | None = None) -> Iterator[QueueDescriptor]:
        ...

    def declare_queue(self, spec: QueueSpec) -> QueueDescriptor: ...

    def delete_queue(self, queue: QueueDescriptor) -> None: ...

    def purge_queue(self, queue: QueueDescriptor) -> int | None: ...


@runtime_checkable
class ExchangeCatalog(Protocol):
    """Enumeration and mutation of exchanges."""

    def iter_exchanges(
        self, vhost: str, *, name_hint: Selector | None = None
    ) -> Iterator[ExchangeDescriptor]: ...

    def declare_exchange(self, spec: ExchangeSpec) -> ExchangeDescriptor: ...

    def delete_exchange(self, exchange: ExchangeDescriptor) -> None: ...


@runtime_checkable
class BindingCatalog(Protocol):
    """Enumeration and mutation of queue bindings."""

    def iter_bindings(self, vhost: str) -> Iterator[BindingDescriptor]: ...

    def bind(
        self,
        exchange: ExchangeDescriptor,
        queue: QueueDescriptor,
        *,
        routing_key: str = "",
        arguments: Mapping[str, Any] | None = None,
    ) -> BindingDescriptor: ...

    def unbind(self, binding: BindingDescriptor) -> None: ...


@runtime_checkable
class BrokerTopology(QueueCatalog, ExchangeCatalog, BindingCatalog, Protocol):
    """Everything the administrative commands need from a broker."""
