#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from busadmin.app import open_topology
from busadmin.config import configure_logging, get_default_vhost
from busadmin.domain import commands
from busadmin.domain.commands import CommandStatus
from busadmin.domain.model import ExchangeSpec, ExchangeType, QueueSpec
from busadmin.domain.selectors import Selector

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from types import FrameType

    from busadmin.domain.commands import CommandResult
    from busadmin.domain.ports import BrokerTopology

log = logging.getLogger(__name__)

EXIT_CODES: dict[CommandStatus, int] = {
    CommandStatus.SUCCESS: 0,
    CommandStatus.NOT_FOUND: 3,
    CommandStatus.AMBIGUOUS: 4,
    CommandStatus.ALREADY_EXISTS: 5,
    CommandStatus.FAILED: 6,
}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Administer message-bus topology")
    parser.add_argument(
        "--vhost",
        type=str,
        help="Virtual host to operate on (defaults to BUSADMIN_VHOST or '/')",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="resource", required=True)

    queue = subparsers.add_parser("queue", help="Queue commands")
    queue_sub = queue.add_subparsers(dest="action", required=True)
    queue_list = queue_sub.add_parser("list", help="List queues")
    queue_list.add_argument("pattern", nargs="?", help="Optional name or glob pattern")
    for action, help_text in (
        ("show", "Show exactly one queue"),
        ("delete", "Delete exactly one queue"),
        ("purge", "Remove all messages from exactly one queue"),
    ):
        sub = queue_sub.add_parser(action, help=help_text)
        sub.add_argument("selector", help="Queue name or glob pattern matching one queue")
    queue_create = queue_sub.add_parser("create", help="Create a queue")
    queue_create.add_argument("name", help="Queue name")
    queue_create.add_argument(
        "--transient", action="store_true", help="Declare a non-durable queue"
    )
    queue_create.add_argument(
        "--auto-delete", action="store_true", help="Delete the queue when unused"
    )
    _add_arguments_option(queue_create)

    exchange = subparsers.add_parser("exchange", help="Exchange (endpoint) commands")
    exchange_sub = exchange.add_subparsers(dest="action", required=True)
    exchange_list = exchange_sub.add_parser("list", help="List exchanges")
    exchange_list.add_argument("pattern", nargs="?", help="Optional name or glob pattern")
    for action, help_text in (
        ("show", "Show exactly one exchange"),
        ("delete", "Delete exactly one exchange"),
    ):
        sub = exchange_sub.add_parser(action, help=help_text)
        sub.add_argument("selector", help="Exchange name or glob pattern matching one exchange")
    exchange_create = exchange_sub.add_parser("create", help="Create an exchange")
    exchange_create.add_argument("name", help="Exchange name")
    exchange_create.add_argument(
        "--type",
        dest="exchange_type",
        choices=[str(member) for member in ExchangeType],
        default=str(ExchangeType.FANOUT),
        help="Exchange type (default: %(default)s)",
    )
    exchange_create.add_argument(
        "--transient", action="store_true", help="Declare a non-durable exchange"
    )
    exchange_create.add_argument(
        "--auto-delete", action="store_true", help="Delete the exchange when unused"
    )
    exchange_create.add_argument(
        "--internal", action="store_true", help="Only other exchanges may publish to it"
    )
    _add_arguments_option(exchange_create)

    binding = subparsers.add_parser("binding", help="Binding (subscription) commands")
    binding_sub = binding.add_subparsers(dest="action", required=True)
    binding_list = binding_sub.add_parser("list", help="List queue bindings")
    binding_list.add_argument(
        "pattern", nargs="?", help="Only bindings whose exchange or queue matches"
    )
    binding_add = binding_sub.add_parser("add", help="Bind exactly one queue to one exchange")
    binding_add.add_argument("exchange", help="Exchange selector")
    binding_add.add_argument("queue", help="Queue selector")
    binding_add.add_argument("--routing-key", default="", help="Literal routing key")
    _add_arguments_option(binding_add)
    binding_remove = binding_sub.add_parser("remove", help="Remove exactly one binding")
    binding_remove.add_argument("exchange", help="Exchange selector")
    binding_remove.add_argument("queue", help="Queue selector")
    binding_remove.add_argument(
        "--routing-key",
        help=(
            "Routing key or glob pattern; pass '' for the empty key "
            "(default: any, if only one binding exists)"
        ),
    )

    return parser.parse_args(list(argv))


def _add_arguments_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--arg",
        dest="arguments",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Optional x-argument; VALUE is parsed as JSON when possible (repeatable)",
    )


def _parse_arguments(pairs: Iterable[str]) -> dict[str, Any]:
    arguments: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid argument {pair!r}; expected KEY=VALUE")
        try:
            value: Any = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        arguments[key.strip()] = value
    return arguments


def _optional_selector(text: str | None) -> Selector | None:
    return Selector.parse(text) if text is not None else None


def _routing_key_selector(text: str | None) -> Selector | None:
    # an empty routing key is a real key, not a blank selector
    if text == "":
        return Selector("")
    return _optional_selector(text)


def _dispatch(
    args: argparse.Namespace, topology: BrokerTopology, vhost: str
) -> CommandResult | None:
    resource, action = args.resource, args.action

    if resource == "queue":
        if action == "list":
            _print_lines(commands.list_queues(topology, vhost, _optional_selector(args.pattern)))
            return None
        if action == "create":
            spec = QueueSpec(
                vhost=vhost,
                name=args.name,
                durable=not args.transient,
                auto_delete=args.auto_delete,
                arguments=_parse_arguments(args.arguments),
            )
            return commands.create_queue(topology, spec)
        selector = Selector.parse(args.selector)
        if action == "show":
            return commands.describe_queue(topology, vhost, selector)
        if action == "delete":
            return commands.delete_queue(topology, vhost, selector)
        if action == "purge":
            return commands.purge_queue(topology, vhost, selector)

    if resource == "exchange":
        if action == "list":
            _print_lines(
                commands.list_exchanges(topology, vhost, _optional_selector(args.pattern))
            )
            return None
        if action == "create":
            exchange_spec = ExchangeSpec(
                vhost=vhost,
                name=args.name,
                type=ExchangeType(args.exchange_type),
                durable=not args.transient,
                auto_delete=args.auto_delete,
                internal=args.internal,
                arguments=_parse_arguments(args.arguments),
            )
            return commands.create_exchange(topology, exchange_spec)
        selector = Selector.parse(args.selector)
        if action == "show":
            return commands.describe_exchange(topology, vhost, selector)
        if action == "delete":
            return commands.delete_exchange(topology, vhost, selector)

    if resource == "binding":
        if action == "list":
            _print_lines(
                commands.list_bindings(topology, vhost, _optional_selector(args.pattern))
            )
            return None
        exchange_selector = Selector.parse(args.exchange)
        queue_selector = Selector.parse(args.queue)
        if action == "add":
            return commands.bind_queue(
                topology,
                vhost,
                exchange_selector,
                queue_selector,
                routing_key=args.routing_key,
                arguments=_parse_arguments(args.arguments),
            )
        if action == "remove":
            return commands.unbind_queue(
                topology,
                vhost,
                exchange_selector,
                queue_selector,
                routing_key=_routing_key_selector(args.routing_key),
            )

    raise ValueError(f"Unsupported command: {resource} {action}")


def _print_lines(items: Iterable[object]) -> None:
    for item in items:
        print(item)


def _report(result: CommandResult) -> int:
    stream = sys.stdout if result.ok else sys.stderr
    print(result.message, file=stream)
    return EXIT_CODES[result.status]


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.WARNING)
    vhost = parsed_args.vhost or get_default_vhost()

    try:
        topology = open_topology()
        result = _dispatch(parsed_args, topology, vhost)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception:
        log.exception("Fatal error while running %s %s", parsed_args.resource, parsed_args.action)
        sys.exit(1)

    if result is not None and (code := _report(result)):
        sys.exit(code)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    run()
