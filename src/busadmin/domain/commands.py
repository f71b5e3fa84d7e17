"""Administrative commands over broker topology.

Every command that targets a named resource resolves it with
``resolve_single`` exactly once per identifier and branches on the outcome:

- absent: not found for update/delete, go ahead for create
- found: mutate that resource, or report it already exists for create
- ambiguous: stop without touching anything

Broker failures raised while enumerating candidates propagate to the caller.
Broker failures raised by the mutation itself become a ``FAILED`` result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from .model import ResourceKind
from .ports import BrokerError
from .resolution import Absent, Ambiguous, Found, resolve_single
from .selectors import Selector, select

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from .model import (
        BindingDescriptor,
        ExchangeDescriptor,
        ExchangeSpec,
        QueueDescriptor,
        QueueSpec,
        ResourceDescriptor,
    )
    from .ports import BindingCatalog, BrokerTopology, ExchangeCatalog, QueueCatalog
    from .resolution import Resolution

log = getLogger(__name__)


class CommandStatus(StrEnum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CommandResult:
    """What a command did, with the single message to show the user."""

    status: CommandStatus
    message: str
    resource: ResourceDescriptor | None = None

    @property
    def ok(self) -> bool:
        return self.status is CommandStatus.SUCCESS


def not_found(kind: ResourceKind, selector: Selector, vhost: str) -> CommandResult:
    return CommandResult(
        CommandStatus.NOT_FOUND,
        f"No {kind} matches '{selector}' in vhost '{vhost}'",
    )


def ambiguous(kind: ResourceKind, selector: Selector, vhost: str) -> CommandResult:
    return CommandResult(
        CommandStatus.AMBIGUOUS,
        f"Ambiguous selector '{selector}': matched more than one {kind} in vhost '{vhost}'; "
        "refine the selector",
    )


def find_queue(catalog: QueueCatalog, vhost: str, selector: Selector) -> Resolution[QueueDescriptor]:
    return resolve_single(select(catalog.iter_queues(vhost, name_hint=selector), selector))


def find_exchange(
    catalog: ExchangeCatalog, vhost: str, selector: Selector
) -> Resolution[ExchangeDescriptor]:
    return resolve_single(select(catalog.iter_exchanges(vhost, name_hint=selector), selector))


def find_binding(
    catalog: BindingCatalog,
    vhost: str,
    *,
    exchange: ExchangeDescriptor,
    queue: QueueDescriptor,
    routing_key: Selector,
) -> Resolution[BindingDescriptor]:
    candidates = (
        binding
        for binding in catalog.iter_bindings(vhost)
        if binding.source == exchange.name and binding.destination == queue.name
    )
    return resolve_single(select(candidates, routing_key, key=_routing_key_of))


def _routing_key_of(binding: BindingDescriptor) -> str:
    return binding.routing_key


def _mutate[T: ResourceDescriptor, R](
    verb: str,
    target: T,
    action: Callable[[T], R],
    *,
    detail: Callable[[R], str] | None = None,
) -> CommandResult:
    try:
        outcome = action(target)
    except BrokerError as exc:
        log.info("Failed to %s %s: %s", verb, target, exc)
        return CommandResult(CommandStatus.FAILED, f"Could not {verb} {target}: {exc}", target)
    message = f"{verb.capitalize()}d {target}"
    if detail is not None:
        message += detail(outcome)
    log.info("%s", message)
    return CommandResult(CommandStatus.SUCCESS, message, target)


def _purged_count(count: int | None) -> str:
    return "" if count is None else f" ({count} messages)"


def _declared_name(kind: ResourceKind, name: str) -> Selector:
    """Selector for a name about to be declared, which must be literal and unpadded."""

    if not name.strip() or name != name.strip():
        raise ValueError(
            f"{kind.capitalize()} name must not be blank or padded with whitespace: {name!r}"
        )
    selector = Selector(name)
    if selector.is_pattern:
        raise ValueError(f"{kind.capitalize()} name must not contain wildcards: {name!r}")
    return selector


# Queues


def create_queue(catalog: QueueCatalog, spec: QueueSpec) -> CommandResult:
    selector = _declared_name(ResourceKind.QUEUE, spec.name)

    match find_queue(catalog, spec.vhost, selector):
        case Found(item=existing):
            return CommandResult(
                CommandStatus.ALREADY_EXISTS, f"{existing} already exists", existing
            )
        case Ambiguous():
            return ambiguous(ResourceKind.QUEUE, selector, spec.vhost)
        case Absent():
            pass

    try:
        created = catalog.declare_queue(spec)
    except BrokerError as exc:
        log.info("Failed to create queue %s: %s", spec.name, exc)
        return CommandResult(CommandStatus.FAILED, f"Could not create queue '{spec.name}': {exc}")
    log.info("Created %s", created)
    return CommandResult(CommandStatus.SUCCESS, f"Created {created}", created)


def delete_queue(catalog: QueueCatalog, vhost: str, selector: Selector) -> CommandResult:
    match find_queue(catalog, vhost, selector):
        case Found(item=queue):
            return _mutate("delete", queue, catalog.delete_queue)
        case Ambiguous():
            return ambiguous(ResourceKind.QUEUE, selector, vhost)
        case Absent():
            return not_found(ResourceKind.QUEUE, selector, vhost)


def purge_queue(catalog: QueueCatalog, vhost: str, selector: Selector) -> CommandResult:
    match find_queue(catalog, vhost, selector):
        case Found(item=queue):
            return _mutate("purge", queue, catalog.purge_queue, detail=_purged_count)
        case Ambiguous():
            return ambiguous(ResourceKind.QUEUE, selector, vhost)
        case Absent():
            return not_found(ResourceKind.QUEUE, selector, vhost)


def describe_queue(catalog: QueueCatalog, vhost: str, selector: Selector) -> CommandResult:
    match find_queue(catalog, vhost, selector):
        case Found(item=queue):
            return CommandResult(CommandStatus.SUCCESS, str(queue), queue)
        case Ambiguous():
            return ambiguous(ResourceKind.QUEUE, selector, vhost)
        case Absent():
            return not_found(ResourceKind.QUEUE, selector, vhost)


def list_queues(
    catalog: QueueCatalog, vhost: str, selector: Selector | None = None
) -> Iterator[QueueDescriptor]:
    queues = catalog.iter_queues(vhost, name_hint=selector)
    return select(queues, selector) if selector is not None else queues


# Exchanges


def create_exchange(catalog: ExchangeCatalog, spec: ExchangeSpec) -> CommandResult:
    selector = _declared_name(ResourceKind.EXCHANGE, spec.name)

    match find_exchange(catalog, spec.vhost, selector):
        case Found(item=existing):
            return CommandResult(
                CommandStatus.ALREADY_EXISTS, f"{existing} already exists", existing
            )
        case Ambiguous():
            return ambiguous(ResourceKind.EXCHANGE, selector, spec.vhost)
        case Absent():
            pass

    try:
        created = catalog.declare_exchange(spec)
    except BrokerError as exc:
        log.info("Failed to create exchange %s: %s", spec.name, exc)
        return CommandResult(
            CommandStatus.FAILED, f"Could not create exchange '{spec.name}': {exc}"
        )
    log.info("Created %s", created)
    return CommandResult(CommandStatus.SUCCESS, f"Created {created}", created)


def delete_exchange(catalog: ExchangeCatalog, vhost: str, selector: Selector) -> CommandResult:
    match find_exchange(catalog, vhost, selector):
        case Found(item=exchange) if exchange.is_builtin:
            return CommandResult(
                CommandStatus.FAILED, f"Refusing to delete built-in {exchange}", exchange
            )
        case Found(item=exchange):
            return _mutate("delete", exchange, catalog.delete_exchange)
        case Ambiguous():
            return ambiguous(ResourceKind.EXCHANGE, selector, vhost)
        case Absent():
            return not_found(ResourceKind.EXCHANGE, selector, vhost)


def describe_exchange(catalog: ExchangeCatalog, vhost: str, selector: Selector) -> CommandResult:
    match find_exchange(catalog, vhost, selector):
        case Found(item=exchange):
            return CommandResult(CommandStatus.SUCCESS, str(exchange), exchange)
        case Ambiguous():
            return ambiguous(ResourceKind.EXCHANGE, selector, vhost)
        case Absent():
            return not_found(ResourceKind.EXCHANGE, selector, vhost)


def list_exchanges(
    catalog: ExchangeCatalog, vhost: str, selector: Selector | None = None
) -> Iterator[ExchangeDescriptor]:
    exchanges = catalog.iter_exchanges(vhost, name_hint=selector)
    return select(exchanges, selector) if selector is not None else exchanges


# Bindings


def _resolve_endpoints(
    topology: BrokerTopology,
    vhost: str,
    exchange_selector: Selector,
    queue_selector: Selector,
) -> tuple[ExchangeDescriptor, QueueDescriptor] | CommandResult:
    match find_exchange(topology, vhost, exchange_selector):
        case Found(item=exchange):
            pass
        case Ambiguous():
            return ambiguous(ResourceKind.EXCHANGE, exchange_selector, vhost)
        case Absent():
            return not_found(ResourceKind.EXCHANGE, exchange_selector, vhost)

    match find_queue(topology, vhost, queue_selector):
        case Found(item=queue):
            pass
        case Ambiguous():
            return ambiguous(ResourceKind.QUEUE, queue_selector, vhost)
        case Absent():
            return not_found(ResourceKind.QUEUE, queue_selector, vhost)

    return exchange, queue


def bind_queue(
    topology: BrokerTopology,
    vhost: str,
    exchange_selector: Selector,
    queue_selector: Selector,
    *,
    routing_key: str = "",
    arguments: Mapping[str, Any] | None = None,
) -> CommandResult:
    endpoints = _resolve_endpoints(topology, vhost, exchange_selector, queue_selector)
    if isinstance(endpoints, CommandResult):
        return endpoints
    exchange, queue = endpoints
    if exchange.name == "":
        return CommandResult(
            CommandStatus.FAILED, f"Queues cannot be bound explicitly to the {exchange}", exchange
        )

    # The routing key is a literal here, so wildcard characters are not expanded.
    existing = (
        binding
        for binding in topology.iter_bindings(vhost)
        if binding.source == exchange.name
        and binding.destination == queue.name
        and binding.routing_key == routing_key
    )
    match resolve_single(existing):
        case Found(item=binding):
            return CommandResult(
                CommandStatus.ALREADY_EXISTS, f"{binding} already exists", binding
            )
        case Ambiguous():
            # Same key with different arguments; binding again would add yet another.
            return CommandResult(
                CommandStatus.ALREADY_EXISTS,
                f"Bindings from '{exchange.name}' to '{queue.name}' with routing key "
                f"'{routing_key}' already exist",
            )
        case Absent():
            pass

    try:
        binding = topology.bind(exchange, queue, routing_key=routing_key, arguments=arguments)
    except BrokerError as exc:
        log.info("Failed to bind %s to %s: %s", queue, exchange, exc)
        return CommandResult(
            CommandStatus.FAILED, f"Could not bind {queue} to {exchange}: {exc}"
        )
    log.info("Created %s", binding)
    return CommandResult(CommandStatus.SUCCESS, f"Created {binding}", binding)


def unbind_queue(
    topology: BrokerTopology,
    vhost: str,
    exchange_selector: Selector,
    queue_selector: Selector,
    *,
    routing_key: Selector | None = None,
) -> CommandResult:
    endpoints = _resolve_endpoints(topology, vhost, exchange_selector, queue_selector)
    if isinstance(endpoints, CommandResult):
        return endpoints
    exchange, queue = endpoints

    key_selector = routing_key or Selector("*")
    match find_binding(topology, vhost, exchange=exchange, queue=queue, routing_key=key_selector):
        case Found(item=binding):
            return _mutate("remove", binding, topology.unbind)
        case Ambiguous():
            return ambiguous(ResourceKind.BINDING, key_selector, vhost)
        case Absent():
            return not_found(ResourceKind.BINDING, key_selector, vhost)


def list_bindings(
    catalog: BindingCatalog, vhost: str, selector: Selector | None = None
) -> Iterator[BindingDescriptor]:
    """Bindings whose source exchange or destination queue matches ``selector``."""
    bindings = catalog.iter_bindings(vhost)
    if selector is None:
        return bindings
    return (
        binding
        for binding in bindings
        if selector.matches(binding.source) or selector.matches(binding.destination)
    )
