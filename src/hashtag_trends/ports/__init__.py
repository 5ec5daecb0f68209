"""Ports."""

from hashtag_trends.ports.store import FrequencyRanking, MembershipFilter, RankedItem

__all__ = [
    "FrequencyRanking",
    "MembershipFilter",
    "RankedItem",
]
