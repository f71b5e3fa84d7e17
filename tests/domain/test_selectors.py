from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from busadmin.domain.model import QueueDescriptor
from busadmin.domain.selectors import Selector, select

if TYPE_CHECKING:
    from collections.abc import Iterator


def _queues(*names: str) -> list[QueueDescriptor]:
    return [QueueDescriptor(vhost="/", name=name) for name in names]


def test_parse_strips_whitespace() -> None:
    assert Selector.parse("  q-orders ").text == "q-orders"


@pytest.mark.parametrize("text", ["", "   "])
def test_parse_rejects_blank(text: str) -> None:
    with pytest.raises(ValueError, match="blank"):
        Selector.parse(text)


def test_exact_selector_matches_only_same_name() -> None:
    selector = Selector.parse("q-orders")

    assert not selector.is_pattern
    assert selector.matches("q-orders")
    assert not selector.matches("q-orders-retry")
    assert not selector.matches("Q-ORDERS")


@pytest.mark.parametrize(
    ("pattern", "name", "expected"),
    [
        ("q-*", "q-orders", True),
        ("q-*", "billing", False),
        ("q-?rders", "q-orders", True),
        ("q-[io]*", "q-invoices", True),
        ("q-[io]*", "q-billing", False),
        ("Q-*", "q-orders", False),
    ],
)
def test_pattern_selector_uses_case_sensitive_glob(pattern: str, name: str, expected: bool) -> None:
    selector = Selector.parse(pattern)

    assert selector.is_pattern
    assert selector.matches(name) is expected


def test_select_filters_lazily() -> None:
    seen: list[str] = []

    def source() -> Iterator[QueueDescriptor]:
        for queue in _queues("q-a", "other", "q-b", "q-c"):
            seen.append(queue.name)
            yield queue

    matches = select(source(), Selector.parse("q-*"))
    first = next(matches)

    assert first.name == "q-a"
    assert seen == ["q-a"]


def test_select_closes_upstream_generator_when_closed() -> None:
    released: list[bool] = []

    def source() -> Iterator[QueueDescriptor]:
        try:
            yield from _queues("q-a", "q-b")
        finally:
            released.append(True)

    matches = select(source(), Selector.parse("q-*"))
    next(matches)
    matches.close()

    assert released == [True]


def test_select_with_custom_key() -> None:
    keys = ["orders.created", "orders.cancelled", "billing.paid"]

    selected = list(select(keys, Selector.parse("orders.*"), key=str))

    assert selected == ["orders.created", "orders.cancelled"]
