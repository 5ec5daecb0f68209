"""Writes to and reads from the Top-K hashtag ranking."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from hashtag_trends.errors import QueryError, StoreError
from hashtag_trends.logging import get_logger
from hashtag_trends.ports.store import FrequencyRanking
from hashtag_trends.services.metrics import metrics
from hashtag_trends.services.validation import MAX_COUNT, validate_count


@dataclass(frozen=True, slots=True)
class TopHashtagEntry:
    hashtag: str
    count: int

    def as_dict(self) -> dict[str, object]:
        return {"hashtag": self.hashtag, "count": self.count}


class TrendingUpdater:
    def __init__(self, ranking: FrequencyRanking) -> None:
        self._ranking = ranking

    async def record(self, hashtags: Sequence[str]) -> None:
        if not hashtags:
            return
        # One call so the whole batch lands in a single TOPK.ADD.
        await self._ranking.add(list(hashtags))
        metrics.inc_counter("hashtags_recorded_total", float(len(hashtags)))


class TrendingQuery:
    def __init__(self, ranking: FrequencyRanking, *, max_count: int = MAX_COUNT) -> None:
        self._ranking = ranking
        self._max_count = max_count
        self._log = get_logger(__name__)

    async def top_hashtags(self, raw_count: object) -> list[TopHashtagEntry]:
        count = validate_count(raw_count, maximum=self._max_count)
        try:
            ranked = await self._ranking.list_with_count()
        except StoreError as exc:
            metrics.inc_counter("hashtag_queries_total", labels={"result": "failed"})
            self._log.error(
                "trending.query_failed",
                operation=exc.operation,
                kind=exc.kind.value,
                error=str(exc),
            )
            raise QueryError(f"Failed to read top hashtags: {exc}") from exc

        metrics.inc_counter("hashtag_queries_total", labels={"result": "ok"})
        if not ranked:
            self._log.warning("trending.ranking_empty", key=self._ranking.name)
            return []
        return [TopHashtagEntry(hashtag=row.item, count=row.count) for row in ranked[:count]]
