"""
Guest favorites and ratings, stored in Redis hashes keyed by guest id.

Each guest gets one hash per collection; the field is the TMDB movie id and the
value is the JSON-encoded document. Store errors propagate to the caller.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from db.redis import get_redis_client, redis_key
from implementation.classes.schemas import Favorite, Rating
from implementation.misc.helpers import build_poster_url

logger = logging.getLogger(__name__)

RATING_MIN = 1
RATING_MAX = 10


def _favorites_key(user_id: str) -> str:
    return redis_key("favorites", user_id)


def _ratings_key(user_id: str) -> str:
    return redis_key("ratings", user_id)


# ===============================
#           FAVORITES
# ===============================

async def save_favorite(
    user_id: str,
    movie_id: int,
    title: str,
    poster_path: Optional[str] = None,
) -> Favorite:
    """Save (or overwrite) a favorite for the guest and return the stored document."""
    favorite = Favorite(
        user_id=user_id,
        movie_id=movie_id,
        title=title,
        poster_url=build_poster_url(poster_path),
    )
    client = get_redis_client()
    await client.hset(_favorites_key(user_id), str(movie_id), favorite.model_dump_json())
    logger.info("Saved favorite movie %d for guest %s", movie_id, user_id)
    return favorite


async def remove_favorite(user_id: str, movie_id: int) -> bool:
    """Remove a favorite. Returns False when the movie was not a favorite."""
    client = get_redis_client()
    removed = await client.hdel(_favorites_key(user_id), str(movie_id))
    return bool(removed)


async def list_favorites(user_id: str) -> list[Favorite]:
    """Return the guest's favorites, oldest first."""
    client = get_redis_client()
    raw: dict[str, str] = await client.hgetall(_favorites_key(user_id))
    favorites = [Favorite.model_validate_json(value) for value in raw.values()]
    return sorted(favorites, key=lambda f: f.created_at)


# ===============================
#            RATINGS
# ===============================

def validate_rating(rating: int) -> None:
    if not (RATING_MIN <= rating <= RATING_MAX):
        raise ValueError(f"Rating must be between {RATING_MIN} and {RATING_MAX}, got {rating}")


async def get_rating(user_id: str, movie_id: int) -> Optional[Rating]:
    client = get_redis_client()
    raw = await client.hget(_ratings_key(user_id), str(movie_id))
    return Rating.model_validate_json(raw) if raw else None


async def save_rating(user_id: str, movie_id: int, rating: int, title: str = "Unknown") -> Rating:
    """
    Create or update the guest's rating for a movie.

    An update keeps the first created_at and title and stamps updated_at.

    Raises:
        ValueError: If rating is outside 1..10.
    """
    validate_rating(rating)

    existing = await get_rating(user_id, movie_id)
    if existing is not None:
        stored = existing.model_copy(
            update={"rating": rating, "updated_at": datetime.now(timezone.utc)}
        )
    else:
        stored = Rating(user_id=user_id, movie_id=movie_id, rating=rating, title=title)

    client = get_redis_client()
    await client.hset(_ratings_key(user_id), str(movie_id), stored.model_dump_json())
    return stored
