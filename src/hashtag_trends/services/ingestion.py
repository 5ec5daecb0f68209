"""Tweet ingestion: dedup, hashtag extraction and Top-K updates.

``accept`` validates synchronously and schedules the rest on the event loop.
The submitter is answered before the scheduled work starts, so outcomes of
that work only reach logs, metrics and Sentry.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field

from hashtag_trends.errors import ProcessingError, StoreError
from hashtag_trends.logging import get_logger
from hashtag_trends.monitoring import capture_sentry_exception
from hashtag_trends.services.dedup import Deduplicator
from hashtag_trends.services.hashing import digest
from hashtag_trends.services.hashtags import extract_hashtags
from hashtag_trends.services.metrics import metrics
from hashtag_trends.services.trending import TrendingUpdater
from hashtag_trends.services.validation import MAX_TWEET_LENGTH, validate_post


class PipelineState(enum.StrEnum):
    RECEIVED = "received"
    VALIDATED = "validated"
    HASH_COMPUTED = "hash_computed"
    DEDUP_CHECKED = "dedup_checked"
    SKIPPED = "skipped"
    UPDATING = "updating"
    COMPLETED = "completed"
    FAILED = "failed"


TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.RECEIVED: frozenset({PipelineState.VALIDATED}),
    PipelineState.VALIDATED: frozenset({PipelineState.HASH_COMPUTED}),
    PipelineState.HASH_COMPUTED: frozenset({PipelineState.DEDUP_CHECKED}),
    PipelineState.DEDUP_CHECKED: frozenset({PipelineState.SKIPPED, PipelineState.UPDATING}),
    PipelineState.SKIPPED: frozenset({PipelineState.COMPLETED}),
    PipelineState.UPDATING: frozenset({PipelineState.COMPLETED}),
    PipelineState.COMPLETED: frozenset(),
    PipelineState.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({PipelineState.COMPLETED, PipelineState.FAILED})


def next_state_allowed(current: PipelineState, target: PipelineState) -> bool:
    if target is PipelineState.FAILED:
        return current not in TERMINAL_STATES
    return target in TRANSITIONS[current]


@dataclass(slots=True)
class PipelineOutcome:
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.RECEIVED])
    digest: str | None = None
    hashtags: list[str] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def state(self) -> PipelineState:
        return self.history[-1]

    @property
    def skipped(self) -> bool:
        return PipelineState.SKIPPED in self.history

    def advance(self, target: PipelineState) -> None:
        if not next_state_allowed(self.state, target):
            raise ValueError(f"Transition {self.state} -> {target} is not allowed")
        self.history.append(target)


class IngestionPipeline:
    def __init__(
        self,
        *,
        deduplicator: Deduplicator,
        updater: TrendingUpdater,
        max_tweet_length: int = MAX_TWEET_LENGTH,
    ) -> None:
        self._dedup = deduplicator
        self._updater = updater
        self._max_tweet_length = max_tweet_length
        self._tasks: set[asyncio.Task[PipelineOutcome]] = set()
        self._log = get_logger(__name__)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def accept(self, text: object) -> asyncio.Task[PipelineOutcome]:
        """Validate ``text`` and schedule its processing.

        Raises ``ValidationError`` before anything is scheduled. The returned
        task is tracked by the pipeline; callers are not expected to await it.
        """
        post = validate_post(text, max_length=self._max_tweet_length)
        task = asyncio.create_task(self.process(post), name="ingestion")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        metrics.inc_counter("tweets_received_total")
        metrics.set_gauge("ingestion_in_flight", float(len(self._tasks)))
        return task

    async def process(self, text: str) -> PipelineOutcome:
        outcome = PipelineOutcome()
        outcome.advance(PipelineState.VALIDATED)
        try:
            outcome.digest = digest(text)
            outcome.advance(PipelineState.HASH_COMPUTED)

            duplicate = await self._dedup.is_duplicate(outcome.digest)
            outcome.advance(PipelineState.DEDUP_CHECKED)
            if duplicate:
                outcome.advance(PipelineState.SKIPPED)
                outcome.advance(PipelineState.COMPLETED)
                metrics.inc_counter("ingestion_total", labels={"result": "skipped"})
                self._log.info("ingestion.skipped_duplicate", digest=outcome.digest)
                return outcome

            outcome.advance(PipelineState.UPDATING)
            outcome.hashtags = extract_hashtags(text)
            await self._apply_updates(outcome.digest, outcome.hashtags)
            outcome.advance(PipelineState.COMPLETED)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._fail(outcome, exc)
            return outcome

        metrics.inc_counter("ingestion_total", labels={"result": "completed"})
        if outcome.hashtags:
            self._log.info(
                "ingestion.completed",
                digest=outcome.digest,
                hashtags=outcome.hashtags,
            )
        else:
            self._log.info("ingestion.completed_without_hashtags", digest=outcome.digest)
        return outcome

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _apply_updates(self, content_digest: str, hashtags: list[str]) -> None:
        # Not atomic with the dedup check: identical concurrent tweets can both land here.
        calls = [self._dedup.mark_seen(content_digest)]
        if hashtags:
            calls.append(self._updater.record(hashtags))
        results = await asyncio.gather(*calls, return_exceptions=True)
        failures = [result for result in results if isinstance(result, BaseException)]
        if not failures:
            return
        for failure in failures[1:]:
            self._log.error(
                "ingestion.update_failed",
                digest=content_digest,
                error=repr(failure),
            )
        raise ProcessingError(f"{len(failures)} store update(s) failed") from failures[0]

    def _fail(self, outcome: PipelineOutcome, exc: Exception) -> None:
        failed_at = outcome.state
        outcome.error = exc
        outcome.advance(PipelineState.FAILED)
        cause = exc.__cause__ if isinstance(exc, ProcessingError) else exc
        context: dict[str, object] = {
            "digest": outcome.digest,
            "failed_at": failed_at.value,
        }
        if isinstance(cause, StoreError):
            context["store_operation"] = cause.operation
            context["store_error"] = cause.kind.value
        metrics.inc_counter("ingestion_total", labels={"result": "failed"})
        self._log.error("ingestion.failed", error=repr(exc), exc_info=exc, **context)
        capture_sentry_exception(exc, context=context)

    def _on_task_done(self, task: asyncio.Task[PipelineOutcome]) -> None:
        self._tasks.discard(task)
        metrics.set_gauge("ingestion_in_flight", float(len(self._tasks)))
        if task.cancelled():
            self._log.warning("ingestion.cancelled")
            return
        exc = task.exception()
        if exc is not None:
            self._log.error("ingestion.task_crashed", error=repr(exc), exc_info=exc)
