"""Unique-match resolution over lazily produced candidate sequences.

``resolve_single`` answers one question about an iterable of candidates that
have already been filtered by the caller: is there nothing, exactly one thing,
or more than one thing in it? The answer is a tagged value rather than an
exception so that "no match" and "ambiguous match" stay ordinary results that
commands branch on.

The iterable is consumed once and never past its second item. Iterators that
expose ``close()`` (generators in particular) are closed before returning, so a
source holding a network cursor or file handle releases it when resolution
stops early.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class ResolutionStatus(StrEnum):
    """Tag shared by every resolution variant."""

    ABSENT = "absent"
    FOUND = "found"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True, slots=True)
class Absent:
    """The sequence yielded no candidates."""

    status: Literal[ResolutionStatus.ABSENT] = ResolutionStatus.ABSENT


@dataclass(frozen=True, slots=True)
class Found[T]:
    """The sequence yielded exactly one candidate."""

    item: T
    status: Literal[ResolutionStatus.FOUND] = ResolutionStatus.FOUND


@dataclass(frozen=True, slots=True)
class Ambiguous:
    """The sequence yielded at least two candidates.

    Only the first two are ever inspected, so no candidate list is carried.
    """

    status: Literal[ResolutionStatus.AMBIGUOUS] = ResolutionStatus.AMBIGUOUS


type Resolution[T] = Absent | Found[T] | Ambiguous

ABSENT = Absent()
AMBIGUOUS = Ambiguous()

_EXHAUSTED = object()


def resolve_single[T](candidates: Iterable[T]) -> Resolution[T]:
    """Classify ``candidates`` as absent, a single match, or ambiguous.

    Raises ``TypeError`` when ``candidates`` is ``None``; an empty iterable is a
    valid input and yields ``Absent``. Errors raised by the iterable while it is
    being pulled propagate unchanged.
    """

    if candidates is None:
        raise TypeError("candidates must be an iterable, not None")

    iterator = iter(candidates)
    try:
        first = next(iterator, _EXHAUSTED)
        if first is _EXHAUSTED:
            return ABSENT
        if next(iterator, _EXHAUSTED) is _EXHAUSTED:
            return Found(item=first)  # type: ignore[arg-type]
        return AMBIGUOUS
    finally:
        _release(iterator)


def _release(iterator: Iterator[object]) -> None:
    close = getattr(iterator, "close", None)
    if callable(close):
        close()
