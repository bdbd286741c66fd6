"""
Redis async connection pool and the trending search-count store.

Uses redis.asyncio with an explicit ConnectionPool. decode_responses is True
because everything stored here is text (terms, counts, JSON documents).
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as aioredis
from redis.asyncio.connection import ConnectionPool

from implementation.classes.schemas import MovieSummary, TrendingCounter

logger = logging.getLogger(__name__)

_redis_pool: ConnectionPool | None = None
_redis_client: aioredis.Redis | None = None

ENV_PREFIX: str = os.getenv("REDIS_ENV", "unknown_env")


def get_redis_client() -> aioredis.Redis:
    """Return the shared async Redis client backed by a connection pool."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() at startup.")
    return _redis_client


def redis_key(*parts: str) -> str:
    """Build an environment-prefixed Redis key from one or more parts."""
    return f"{ENV_PREFIX}:{':'.join(parts)}"


async def init_redis(
    host: str = os.getenv("REDIS_HOST", "redis"),
    port: int = int(os.getenv("REDIS_PORT", "6379")),
    max_connections: int = 10,
) -> None:
    """Call once at application startup (e.g. FastAPI lifespan)."""
    global _redis_pool, _redis_client
    _redis_pool = ConnectionPool(
        host=host,
        port=port,
        max_connections=max_connections,
        decode_responses=True,
    )
    _redis_client = aioredis.Redis(connection_pool=_redis_pool)
    await _redis_client.ping()  # Fail fast if Redis is unreachable at startup


async def close_redis() -> None:
    """Call at application shutdown."""
    global _redis_pool, _redis_client
    if _redis_client:
        await _redis_client.aclose()
    if _redis_pool:
        await _redis_pool.aclose()
    _redis_client = None
    _redis_pool = None


async def check_redis() -> str:
    """Ping Redis and return 'ok' or an error message string."""
    try:
        client = get_redis_client()
        await client.ping()
        return "ok"
    except Exception as e:
        return str(e)


# ---------------------------------------------------------------------------
# Trending search counts
# ---------------------------------------------------------------------------
#
# One hash per distinct search term holds the counter document; a sorted set
# mirrors every term's count so the leaderboard is a single ranged read.
# Terms are stored exactly as typed (no trimming, no case folding).

_COUNT_DOC_PREFIX = "search_counts:doc"
_COUNT_RANKING_KEY = "search_counts:ranking"


def _count_doc_key(term: str) -> str:
    return redis_key(_COUNT_DOC_PREFIX, term)


def _movie_fields(movie: MovieSummary) -> dict[str, str]:
    return {
        "movie_id": str(movie.id),
        "poster_url": movie.poster_url or "",
        "movie": movie.model_dump_json(),
    }


def _counter_from_hash(raw: dict[str, str]) -> TrendingCounter:
    movie_json = raw.get("movie")
    movie_id = raw.get("movie_id")
    return TrendingCounter(
        search_term=raw["search_term"],
        count=int(raw.get("count", 0)),
        movie_id=int(movie_id) if movie_id else None,
        poster_url=raw.get("poster_url") or None,
        movie=MovieSummary.model_validate_json(movie_json) if movie_json else None,
    )


async def find_search_count(term: str) -> Optional[TrendingCounter]:
    """Exact-match lookup of the counter for a term. Returns None when none exists."""
    client = get_redis_client()
    raw: dict[str, str] = await client.hgetall(_count_doc_key(term))
    if not raw:
        return None
    return _counter_from_hash(raw)


async def create_search_count(term: str, movie: MovieSummary) -> int:
    """
    Create the counter document for a first-time term with count 1.

    HINCRBY rather than a plain HSET of count=1, so a concurrent create for the
    same term from another client adds to the count instead of resetting it.

    Returns:
        The count after the write.
    """
    client = get_redis_client()
    doc_key = _count_doc_key(term)

    pipe = client.pipeline(transaction=True)
    pipe.hincrby(doc_key, "count", 1)
    pipe.hset(doc_key, mapping={"search_term": term, **_movie_fields(movie)})
    pipe.hsetnx(doc_key, "created_at", datetime.now(timezone.utc).isoformat())
    pipe.zincrby(redis_key(_COUNT_RANKING_KEY), 1, term)
    results = await pipe.execute()
    return int(results[0])


async def increment_search_count(term: str, movie: MovieSummary) -> int:
    """
    Add one to an existing term's count and overwrite its representative movie.

    Returns:
        The count after the write.
    """
    client = get_redis_client()
    doc_key = _count_doc_key(term)

    pipe = client.pipeline(transaction=True)
    pipe.hincrby(doc_key, "count", 1)
    pipe.hset(doc_key, mapping={"search_term": term, **_movie_fields(movie)})
    pipe.zincrby(redis_key(_COUNT_RANKING_KEY), 1, term)
    results = await pipe.execute()
    return int(results[0])


async def list_top_search_counts(limit: int) -> list[TrendingCounter]:
    """
    Return the `limit` highest counters, count descending.

    Equal counts come back in Redis' ZREVRANGE order (reverse lexicographic by
    term). Terms whose document has vanished are skipped with a warning.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    client = get_redis_client()
    ranked: list[tuple[str, float]] = await client.zrevrange(
        redis_key(_COUNT_RANKING_KEY), 0, limit - 1, withscores=True
    )
    if not ranked:
        return []

    pipe = client.pipeline(transaction=False)
    for term, _ in ranked:
        pipe.hgetall(_count_doc_key(term))
    docs: list[dict[str, str]] = await pipe.execute()

    counters: list[TrendingCounter] = []
    for (term, _), raw in zip(ranked, docs):
        if not raw:
            logger.warning("Ranking lists term %r but its count document is missing", term)
            continue
        counters.append(_counter_from_hash(raw))
    return counters
