from __future__ import annotations

from types import SimpleNamespace

import pytest

from hashtag_trends import main as main_module
from hashtag_trends.services.ingestion import IngestionPipeline


class _FakeRedis:
    def __init__(self, events: list[str], *, keys: set[str] | None = None) -> None:
        self.events = events
        self.keys = set(keys or ())

    async def ping(self) -> bool:
        return True

    async def exists(self, key: str) -> int:
        return int(key in self.keys)

    def bf(self) -> SimpleNamespace:
        async def create(key, error_rate, capacity):  # noqa: ANN001, ARG001
            self.events.append(f"bf.create:{key}")
            self.keys.add(key)
            return True

        return SimpleNamespace(create=create)

    def topk(self) -> SimpleNamespace:
        async def reserve(key, k, width, depth, decay):  # noqa: ANN001, ARG001
            self.events.append(f"topk.reserve:{key}")
            self.keys.add(key)
            return True

        return SimpleNamespace(reserve=reserve)

    async def aclose(self) -> None:
        self.events.append("redis.aclose")


class _ServerStub:
    def __init__(self, events: list[str], *, bind_error: OSError | None = None) -> None:
        self.events = events
        self.bind_error = bind_error

    async def start(self) -> None:
        self.events.append("server.start")
        if self.bind_error:
            raise self.bind_error

    async def stop(self) -> None:
        self.events.append("server.stop")


@pytest.fixture(autouse=True)
def _isolate_process(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:  # noqa: ANN001
    monkeypatch.chdir(tmp_path)
    for name in ("REDIS_URL", "LOG_LEVEL", "SENTRY_DSN", "AUTO_CREATE_STRUCTURES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(main_module, "configure_logging", lambda level: None)


def _wire(
    monkeypatch: pytest.MonkeyPatch,
    *,
    keys: set[str] | None = None,
    bind_error: OSError | None = None,
) -> list[str]:
    events: list[str] = []
    client = _FakeRedis(events, keys=keys)

    async def no_wait() -> None:
        events.append("shutdown_requested")

    async def record_drain(self) -> None:  # noqa: ANN001, ARG001
        events.append("pipeline.drain")

    monkeypatch.setattr(main_module, "create_redis_client", lambda settings: client)
    monkeypatch.setattr(
        main_module,
        "ApiServer",
        lambda settings, context: _ServerStub(events, bind_error=bind_error),
    )
    monkeypatch.setattr(main_module, "_wait_for_shutdown", no_wait)
    monkeypatch.setattr(IngestionPipeline, "drain", record_drain)
    return events


@pytest.mark.asyncio
async def test_invalid_configuration_exits_with_2(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOPK__K", "5")
    monkeypatch.setenv("VALIDATION__MAX_COUNT", "10")
    events = _wire(monkeypatch)

    assert await main_module._run() == 2  # noqa: SLF001
    assert events == []


@pytest.mark.asyncio
async def test_missing_structure_without_auto_create_exits_with_1(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("AUTO_CREATE_STRUCTURES", "false")
    events = _wire(monkeypatch, keys={"topk_hashtags"})

    assert await main_module._run() == 1  # noqa: SLF001
    assert events == ["redis.aclose"]


@pytest.mark.asyncio
async def test_bind_failure_exits_with_1_and_closes_client(monkeypatch: pytest.MonkeyPatch) -> None:
    events = _wire(
        monkeypatch,
        keys={"tweet_filter", "topk_hashtags"},
        bind_error=OSError(98, "Address already in use"),
    )

    assert await main_module._run() == 1  # noqa: SLF001
    assert events == ["server.start", "server.stop", "redis.aclose"]


@pytest.mark.asyncio
async def test_run_bootstraps_then_shuts_down_in_order(monkeypatch: pytest.MonkeyPatch) -> None:
    events = _wire(monkeypatch)

    assert await main_module._run() == 0  # noqa: SLF001
    assert events == [
        "bf.create:tweet_filter",
        "topk.reserve:topk_hashtags",
        "server.start",
        "shutdown_requested",
        "server.stop",
        "pipeline.drain",
        "redis.aclose",
    ]


def test_build_context_applies_configured_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VALIDATION__MAX_TWEET_LENGTH", "10")
    monkeypatch.setenv("VALIDATION__MAX_COUNT", "5")
    settings = main_module.Settings()

    context = main_module.build_context(settings, membership=object(), ranking=object())

    assert context.pipeline._max_tweet_length == 10  # noqa: SLF001
    assert context.query._max_count == 5  # noqa: SLF001
