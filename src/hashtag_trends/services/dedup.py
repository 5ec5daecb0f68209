"""Probabilistic duplicate detection over content digests."""

from __future__ import annotations

from hashtag_trends.ports.store import MembershipFilter


class Deduplicator:
    def __init__(self, membership: MembershipFilter) -> None:
        self._membership = membership

    async def is_duplicate(self, digest: str) -> bool:
        # False positives drop a small share of unique tweets.
        return await self._membership.exists(digest)

    async def mark_seen(self, digest: str) -> None:
        await self._membership.add(digest)
