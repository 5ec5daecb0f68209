from __future__ import annotations

import asyncio
import signal
import sys
from contextlib import suppress

from pydantic import ValidationError

from hashtag_trends import __version__
from hashtag_trends.adapters.redis_store import (
    RedisBloomFilter,
    RedisTopK,
    bootstrap_structures,
    create_redis_client,
)
from hashtag_trends.api.app import ApiContext, ApiServer
from hashtag_trends.config import Settings
from hashtag_trends.errors import StoreError
from hashtag_trends.logging import configure_logging, get_logger
from hashtag_trends.monitoring import configure_sentry
from hashtag_trends.services.dedup import Deduplicator
from hashtag_trends.services.ingestion import IngestionPipeline
from hashtag_trends.services.trending import TrendingQuery, TrendingUpdater


def build_context(settings: Settings, *, membership, ranking) -> ApiContext:  # noqa: ANN001
    pipeline = IngestionPipeline(
        deduplicator=Deduplicator(membership),
        updater=TrendingUpdater(ranking),
        max_tweet_length=settings.validation.max_tweet_length,
    )
    query = TrendingQuery(ranking, max_count=settings.validation.max_count)
    return ApiContext(pipeline=pipeline, query=query)


async def _wait_for_shutdown() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)
    await stop.wait()


async def _run() -> int:
    try:
        settings = Settings()
    except ValidationError as exc:
        print("Invalid configuration:", file=sys.stderr)
        print(exc, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)
    configure_sentry(dsn=settings.sentry_dsn, release=__version__)
    log = get_logger(__name__)
    log.info("boot", version=__version__, settings=settings.public_dict())

    client = create_redis_client(settings)
    membership = RedisBloomFilter(client, settings.bloom.key)
    ranking = RedisTopK(client, settings.topk.key)
    try:
        await client.ping()
        await bootstrap_structures(settings, membership=membership, ranking=ranking)
    except StoreError as exc:
        log.error("startup_failed", kind=exc.kind.value, operation=exc.operation, error=str(exc))
        await client.aclose()
        return 1
    except Exception:
        log.exception("startup_failed")
        await client.aclose()
        return 1

    context = build_context(settings, membership=membership, ranking=ranking)
    server = ApiServer(settings.http, context)
    try:
        await server.start()
    except OSError as exc:
        log.error(
            "startup_failed",
            host=settings.http.host,
            port=settings.http.port,
            error=str(exc),
        )
        await server.stop()
        await client.aclose()
        return 1

    try:
        await _wait_for_shutdown()
    finally:
        log.info("shutdown", in_flight=context.pipeline.in_flight)
        await server.stop()
        await context.pipeline.drain()
        await client.aclose()

    return 0


def main() -> int:
    return asyncio.run(_run())
