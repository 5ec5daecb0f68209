"""Ports for the probabilistic structures the pipeline writes to."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class RankedItem:
    item: str
    count: int


class MembershipFilter(Protocol):
    """Named probabilistic set: false positives possible, no false negatives."""

    name: str

    async def reserve(self, *, error_rate: float, capacity: int) -> None: ...

    async def ensure(self, *, error_rate: float, capacity: int, create: bool) -> bool: ...

    async def exists(self, item: str) -> bool: ...

    async def add(self, item: str) -> None: ...


class FrequencyRanking(Protocol):
    """Named approximate top-K ranking of items by occurrence count."""

    name: str

    async def reserve(self, *, k: int, width: int, depth: int, decay: float) -> None: ...

    async def ensure(
        self, *, k: int, width: int, depth: int, decay: float, create: bool
    ) -> bool: ...

    async def add(self, items: Sequence[str]) -> None: ...

    async def list_with_count(self) -> list[RankedItem]: ...
