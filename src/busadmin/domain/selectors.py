"""User-supplied resource selectors."""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

_GLOB_CHARS = frozenset("*?[")


class Named(Protocol):
    @property
    def name(self) -> str: ...


@dataclass(frozen=True, slots=True)
class Selector:
    """An exact resource name or a case-sensitive shell-style pattern."""

    text: str

    @classmethod
    def parse(cls, text: str) -> Selector:
        stripped = text.strip()
        if not stripped:
            raise ValueError("Selector must not be blank")
        return cls(stripped)

    @property
    def is_pattern(self) -> bool:
        return any(char in _GLOB_CHARS for char in self.text)

    def matches(self, name: str) -> bool:
        if self.is_pattern:
            return fnmatchcase(name, self.text)
        return name == self.text

    def __str__(self) -> str:
        return self.text


def _name_of(item: Named) -> str:
    return item.name


def select[T](
    candidates: Iterable[T],
    selector: Selector,
    *,
    key: Callable[[T], str] = _name_of,  # type: ignore[assignment]
) -> Iterator[T]:
    """Lazily yield the candidates whose key matches ``selector``.

    Closing the returned generator closes ``candidates`` as well when it is a
    generator, so an early stop downstream releases the upstream source.
    """

    iterator = iter(candidates)
    try:
        for candidate in iterator:
            if selector.matches(key(candidate)):
                yield candidate
    finally:
        close = getattr(iterator, "close", None)
        if callable(close):
            close()
