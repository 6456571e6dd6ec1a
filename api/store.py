"""Score storage with Redis backend and in-memory fallback."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

import redis.asyncio as redis
from redis.exceptions import RedisError

from config import config
from core.identity import normalize_address
from core.sync import ScoreStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreEntry:
    """A stored score row."""

    address: str
    score: int
    updated_at: str


def _utc_now() -> str:
    """Server-assigned update timestamp."""
    return datetime.now(timezone.utc).isoformat()


class ScoreRepository(ABC):
    """Abstract score store keyed by lowercased wallet address."""

    @abstractmethod
    async def get_entry(self, address: str) -> ScoreEntry | None:
        """Get the stored row for an address."""
        ...

    @abstractmethod
    async def set_score(self, address: str, score: int) -> None:
        """Create or overwrite the score for an address."""
        ...

    @abstractmethod
    async def leaderboard(self, limit: int | None = None) -> list[ScoreEntry]:
        """Return the top scores, highest first."""
        ...

    async def get_score(self, address: str) -> int:
        """Get the score for an address, 0 if unknown."""
        entry = await self.get_entry(address)
        return entry.score if entry else 0


class InMemoryScoreRepository(ScoreRepository):
    """In-memory score store for local development and tests."""

    def __init__(self) -> None:
        self._scores: dict[str, ScoreEntry] = {}

    async def get_entry(self, address: str) -> ScoreEntry | None:
        """Get the stored row for an address."""
        return self._scores.get(normalize_address(address))

    async def set_score(self, address: str, score: int) -> None:
        """Create or overwrite the score for an address."""
        address = normalize_address(address)
        self._scores[address] = ScoreEntry(address=address, score=score, updated_at=_utc_now())

    async def leaderboard(self, limit: int | None = None) -> list[ScoreEntry]:
        """Return the top scores, highest first."""
        limit = limit or config.scores.leaderboard_size
        ranked = sorted(self._scores.values(), key=lambda e: (-e.score, e.address))
        return ranked[:limit]


class RedisScoreRepository(ScoreRepository):
    """
    Redis-backed score store.

    Scores live in a sorted set so the leaderboard is a range query; update
    timestamps live in a hash keyed by the same address. Ties rank by address
    ascending, as in the in-memory store.
    """

    def __init__(self, redis_client: "redis.Redis", prefix: str = "blackjack:scores") -> None:
        self._redis = redis_client
        self._scores_key = prefix
        self._updated_key = f"{prefix}:updated_at"

    async def get_entry(self, address: str) -> ScoreEntry | None:
        """Get the stored row for an address."""
        address = normalize_address(address)
        try:
            score = await self._redis.zscore(self._scores_key, address)
            if score is None:
                return None
            updated_at = await self._redis.hget(self._updated_key, address)
        except RedisError as exc:
            raise ScoreStoreError(str(exc)) from exc
        return ScoreEntry(address=address, score=int(score), updated_at=_decode(updated_at))

    async def set_score(self, address: str, score: int) -> None:
        """Create or overwrite the score for an address."""
        address = normalize_address(address)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.zadd(self._scores_key, {address: score})
                pipe.hset(self._updated_key, address, _utc_now())
                await pipe.execute()
        except RedisError as exc:
            raise ScoreStoreError(str(exc)) from exc

    async def leaderboard(self, limit: int | None = None) -> list[ScoreEntry]:
        """Return the top scores, highest first."""
        limit = limit or config.scores.leaderboard_size
        try:
            top = await self._redis.zrevrange(self._scores_key, 0, limit - 1, withscores=True)
            if not top:
                return []
            # Redis orders ties in reverse; take every member tied with the
            # lowest score in the window and rank them here
            cutoff = top[-1][1]
            rows = await self._redis.zrevrangebyscore(
                self._scores_key, "+inf", cutoff, withscores=True,
            )
            ranked = sorted(
                ((_decode(member), int(score)) for member, score in rows),
                key=lambda row: (-row[1], row[0]),
            )[:limit]
            addresses = [address for address, _ in ranked]
            timestamps = await self._redis.hmget(self._updated_key, addresses)
        except RedisError as exc:
            raise ScoreStoreError(str(exc)) from exc

        return [
            ScoreEntry(address=address, score=score, updated_at=_decode(updated_at))
            for (address, score), updated_at in zip(ranked, timestamps)
        ]


def _decode(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode()
    return value


# Global score repository instance
_score_repository: ScoreRepository | None = None


async def get_score_repository() -> ScoreRepository:
    """Get or create the score repository."""
    global _score_repository

    if _score_repository is not None:
        return _score_repository

    if config.redis.enabled:
        try:
            redis_client = redis.from_url(config.redis.url)
            await redis_client.ping()
            _score_repository = RedisScoreRepository(redis_client)
            logger.info("Using Redis score store at %s:%d", config.redis.host, config.redis.port)
            return _score_repository
        except (RedisError, OSError) as exc:
            logger.warning("Redis unavailable (%s), falling back to in-memory scores", exc)

    _score_repository = InMemoryScoreRepository()
    return _score_repository


def set_score_repository(repository: ScoreRepository | None) -> None:
    """Replace the global repository (None forces re-detection on next use)."""
    global _score_repository
    _score_repository = repository
