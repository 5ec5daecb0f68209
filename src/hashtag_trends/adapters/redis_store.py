"""RedisBloom adapters for the membership filter and the Top-K ranking."""

from __future__ import annotations

from collections.abc import Sequence

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from hashtag_trends.config import Settings
from hashtag_trends.errors import StoreError, StoreErrorKind
from hashtag_trends.logging import get_logger
from hashtag_trends.ports.store import FrequencyRanking, MembershipFilter, RankedItem


# RedisBloom reports these only as ResponseError text.
_ALREADY_EXISTS_MARKERS = ("item exists", "already exists")
_MISSING_MARKERS = ("key does not exist", "not found")


def translate_store_error(exc: BaseException) -> StoreErrorKind:
    if isinstance(exc, (RedisConnectionError, RedisTimeoutError, OSError)):
        return StoreErrorKind.UNAVAILABLE
    if isinstance(exc, ResponseError):
        message = str(exc).lower()
        if any(marker in message for marker in _ALREADY_EXISTS_MARKERS):
            return StoreErrorKind.ALREADY_EXISTS
        if any(marker in message for marker in _MISSING_MARKERS):
            return StoreErrorKind.MISSING
    return StoreErrorKind.UNEXPECTED


def _store_error(exc: RedisError, operation: str) -> StoreError:
    return StoreError(str(exc), kind=translate_store_error(exc), operation=operation)


def create_redis_client(settings: Settings) -> Redis:
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
    )


class RedisBloomFilter:
    def __init__(self, client: Redis, name: str) -> None:
        self._client = client
        self.name = name
        self._log = get_logger(__name__)

    async def reserve(self, *, error_rate: float, capacity: int) -> None:
        try:
            await self._client.bf().create(self.name, error_rate, capacity)
        except RedisError as exc:
            raise _store_error(exc, "bf.reserve") from exc

    async def ensure(self, *, error_rate: float, capacity: int, create: bool) -> bool:
        if await _key_exists(self._client, self.name):
            return False
        if not create:
            raise StoreError(
                f"Bloom filter {self.name!r} does not exist",
                kind=StoreErrorKind.MISSING,
                operation="bf.reserve",
            )
        self._log.warning("store.structure_missing", structure="bloom", key=self.name)
        try:
            await self.reserve(error_rate=error_rate, capacity=capacity)
        except StoreError as exc:
            if exc.kind is not StoreErrorKind.ALREADY_EXISTS:
                raise
            return False
        self._log.info(
            "store.structure_created",
            structure="bloom",
            key=self.name,
            error_rate=error_rate,
            capacity=capacity,
        )
        return True

    async def exists(self, item: str) -> bool:
        try:
            return bool(await self._client.bf().exists(self.name, item))
        except RedisError as exc:
            raise _store_error(exc, "bf.exists") from exc

    async def add(self, item: str) -> None:
        try:
            await self._client.bf().add(self.name, item)
        except RedisError as exc:
            raise _store_error(exc, "bf.add") from exc


class RedisTopK:
    def __init__(self, client: Redis, name: str) -> None:
        self._client = client
        self.name = name
        self._log = get_logger(__name__)

    async def reserve(self, *, k: int, width: int, depth: int, decay: float) -> None:
        try:
            await self._client.topk().reserve(self.name, k, width, depth, decay)
        except RedisError as exc:
            raise _store_error(exc, "topk.reserve") from exc

    async def ensure(
        self, *, k: int, width: int, depth: int, decay: float, create: bool
    ) -> bool:
        if await _key_exists(self._client, self.name):
            return False
        if not create:
            raise StoreError(
                f"Top-K {self.name!r} does not exist",
                kind=StoreErrorKind.MISSING,
                operation="topk.reserve",
            )
        self._log.warning("store.structure_missing", structure="topk", key=self.name)
        try:
            await self.reserve(k=k, width=width, depth=depth, decay=decay)
        except StoreError as exc:
            if exc.kind is not StoreErrorKind.ALREADY_EXISTS:
                raise
            return False
        self._log.info("store.structure_created", structure="topk", key=self.name, k=k)
        return True

    async def add(self, items: Sequence[str]) -> None:
        if not items:
            return
        try:
            await self._client.topk().add(self.name, *items)
        except RedisError as exc:
            raise _store_error(exc, "topk.add") from exc

    async def list_with_count(self) -> list[RankedItem]:
        try:
            reply = await self._client.topk().list(self.name, withcount=True)
        except RedisError as exc:
            raise _store_error(exc, "topk.list") from exc
        return parse_ranked_reply(reply)


def parse_ranked_reply(reply: Sequence[object] | None) -> list[RankedItem]:
    """Pair up a flat ``TOPK.LIST ... WITHCOUNT`` reply.

    Empty slots of an unfilled sketch come back as ``None`` and are dropped.
    """
    if not reply:
        return []
    values = list(reply)
    ranked: list[RankedItem] = []
    for index in range(0, len(values) - 1, 2):
        item, count = values[index], values[index + 1]
        if item is None:
            continue
        if isinstance(item, bytes):
            item = item.decode("utf-8")
        ranked.append(RankedItem(item=str(item), count=int(count)))
    return ranked


async def _key_exists(client: Redis, key: str) -> bool:
    try:
        return bool(await client.exists(key))
    except RedisError as exc:
        raise _store_error(exc, "exists") from exc


async def bootstrap_structures(
    settings: Settings,
    *,
    membership: MembershipFilter,
    ranking: FrequencyRanking,
) -> None:
    create = settings.auto_create_structures
    await membership.ensure(
        error_rate=settings.bloom.error_rate,
        capacity=settings.bloom.capacity,
        create=create,
    )
    await ranking.ensure(
        k=settings.topk.k,
        width=settings.topk.width,
        depth=settings.topk.depth,
        decay=settings.topk.decay,
        create=create,
    )
    get_logger(__name__).info(
        "store.bootstrap_completed",
        bloom_key=membership.name,
        topk_key=ranking.name,
    )
