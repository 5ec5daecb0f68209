"""HTTP API for tweet submission and trending hashtags."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass

from aiohttp import web

from hashtag_trends.config import HttpSettings
from hashtag_trends.errors import ValidationError
from hashtag_trends.logging import get_logger
from hashtag_trends.monitoring import capture_sentry_exception
from hashtag_trends.services.ingestion import IngestionPipeline
from hashtag_trends.services.metrics import metrics
from hashtag_trends.services.trending import TrendingQuery

ACCEPTED_MESSAGE = "Tweet received for processing."


@dataclass(slots=True)
class ApiContext:
    pipeline: IngestionPipeline
    query: TrendingQuery


API_CONTEXT = web.AppKey("api_context", ApiContext)

_log = get_logger(__name__)


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:  # noqa: ANN001
    try:
        return await handler(request)
    except web.HTTPNotFound:
        return _error(404, "Not Found")
    except web.HTTPMethodNotAllowed:
        return _error(405, "Method Not Allowed")
    except web.HTTPRequestEntityTooLarge:
        return _error(413, "Payload Too Large")
    except web.HTTPException:
        raise
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        _log.exception("api.unhandled_error", method=request.method, path=request.path)
        capture_sentry_exception(exc, context={"method": request.method, "path": request.path})
        return _error(500, "Internal Server Error")


async def submit_tweet(request: web.Request) -> web.Response:
    context = request.app[API_CONTEXT]
    payload: object = {}
    if request.body_exists:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            _log.warning("api.invalid_json", path=request.path)
            return _error(400, "Request body must be valid JSON.")

    tweet = payload.get("tweet") if isinstance(payload, dict) else None
    try:
        context.pipeline.accept(tweet)
    except ValidationError as exc:
        metrics.inc_counter("tweets_rejected_total", labels={"reason": exc.reason})
        _log.warning("api.validation_failed", reason=exc.reason, error=exc.message)
        return _error(400, exc.message)

    return web.json_response({"message": ACCEPTED_MESSAGE}, status=202)


async def top_hashtags(request: web.Request) -> web.Response:
    context = request.app[API_CONTEXT]
    try:
        entries = await context.query.top_hashtags(request.query.get("count"))
    except ValidationError as exc:
        _log.warning("api.validation_failed", reason=exc.reason, error=exc.message)
        return _error(400, exc.message)

    _log.info("api.top_hashtags_served", returned=len(entries))
    return web.json_response([entry.as_dict() for entry in entries], status=200)


async def health(request: web.Request) -> web.Response:
    return web.Response(text="ok")


async def render_metrics(request: web.Request) -> web.Response:
    return web.Response(text=metrics.render(), content_type="text/plain; version=0.0.4")


def create_app(context: ApiContext, *, max_body_bytes: int = 10 * 1024) -> web.Application:
    app = web.Application(middlewares=[error_middleware], client_max_size=max_body_bytes)
    app[API_CONTEXT] = context
    app.router.add_post("/api/v1/tweets", submit_tweet)
    app.router.add_get("/api/v1/hashtags", top_hashtags)
    app.router.add_get("/health", health)
    app.router.add_get("/metrics", render_metrics)
    return app


class ApiServer:
    def __init__(self, settings: HttpSettings, context: ApiContext) -> None:
        self._settings = settings
        self._context = context
        self._runner: web.AppRunner | None = None
        self._log = get_logger(__name__)

    async def start(self) -> None:
        app = create_app(self._context, max_body_bytes=self._settings.max_body_bytes)
        runner = web.AppRunner(app)
        await runner.setup()
        self._runner = runner
        site = web.TCPSite(runner, host=self._settings.host, port=self._settings.port)
        await site.start()
        self._log.info("api_server_started", host=self._settings.host, port=self._settings.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._log.info("api_server_stopped")
