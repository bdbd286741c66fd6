"""
TMDB API client for movie search, browsing and detail lookups.

Uses httpx.AsyncClient with Bearer token authentication. The client is created
once (see create_tmdb_client) and passed into every call so the API can share a
single connection pool across requests.
"""

import logging
import os
from typing import Any, Optional
from urllib.parse import quote

import httpx

from implementation.classes.schemas import (
    Genre,
    MovieDetails,
    MovieSummary,
    QueryRequest,
    QueryResult,
    Trailer,
)
from implementation.classes.enums import QueryMode

logger = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
_DISCOVER_SORT_ORDER = "popularity.desc"
_DEFAULT_COUNTRY = "US"
_REQUEST_TIMEOUT = 10.0


def _access_token() -> str:
    token = os.getenv("TMDB_ACCESS_TOKEN")
    if not token:
        raise RuntimeError("TMDB_ACCESS_TOKEN environment variable is not set")
    return token


def _json_object(response: httpx.Response) -> dict[str, Any]:
    """Decode a TMDB body, raising ValueError unless it is a JSON object."""
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected TMDB response body: {type(data).__name__}")
    return data


def create_tmdb_client(timeout: float = _REQUEST_TIMEOUT) -> httpx.AsyncClient:
    """Build an AsyncClient pointed at the TMDB v3 API. Caller owns closing it."""
    headers = {
        "accept": "application/json",
        "Authorization": f"Bearer {_access_token()}",
    }
    return httpx.AsyncClient(base_url=TMDB_BASE_URL, headers=headers, timeout=timeout)


def build_query_params(request: QueryRequest) -> dict[str, Any]:
    """
    Translate a QueryRequest into TMDB query-string parameters.

    Search mode sends the raw term; discover mode sorts by popularity. The genre
    filter applies to both modes.
    """
    params: dict[str, Any] = {"page": request.page}
    if request.mode is QueryMode.SEARCH:
        params["query"] = request.term
    else:
        params["sort_by"] = _DISCOVER_SORT_ORDER
    if request.genre_id is not None:
        params["with_genres"] = request.genre_id
    return params


async def fetch_movies(request: QueryRequest, client: httpx.AsyncClient) -> QueryResult:
    """
    Issue exactly one catalog query for the request.

    No retries. Raises httpx.HTTPError on transport failures and non-2xx
    responses, and ValueError when the body is not the expected shape.
    """
    response = await client.get(request.mode.endpoint, params=build_query_params(request))
    response.raise_for_status()
    data = _json_object(response)
    return QueryResult(
        items=[MovieSummary.model_validate(entry) for entry in data.get("results") or []],
        total_pages=data.get("total_pages") or 0,
    )


async def fetch_genres(client: httpx.AsyncClient) -> list[Genre]:
    """
    Return TMDB's movie genre list.

    The genre list only feeds the filter dropdown, so failures are logged and
    an empty list is returned.
    """
    try:
        response = await client.get("/genre/movie/list")
        response.raise_for_status()
        return [Genre.model_validate(g) for g in _json_object(response).get("genres") or []]
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Error fetching genres: %s", exc)
        return []


async def fetch_movie_details(movie_id: int, client: httpx.AsyncClient) -> MovieDetails:
    """Fetch the full record for one movie. Raises httpx.HTTPStatusError on 404 and friends."""
    response = await client.get(f"/movie/{movie_id}")
    response.raise_for_status()
    return MovieDetails.model_validate(_json_object(response))


async def fetch_trailer(movie_id: int, client: httpx.AsyncClient) -> Optional[Trailer]:
    """Return the first YouTube trailer for the movie, or None if there is none."""
    response = await client.get(f"/movie/{movie_id}/videos")
    response.raise_for_status()
    for video in _json_object(response).get("results") or []:
        if video.get("type") == "Trailer" and video.get("site") == "YouTube":
            return Trailer.model_validate(video)
    return None


def _fallback_streaming_link(title: str) -> str:
    return f"https://www.netflix.com/search?q={quote(title, safe='')}"


async def fetch_streaming_link(
    movie_id: int,
    title: str,
    client: httpx.AsyncClient,
    country: str = _DEFAULT_COUNTRY,
) -> str:
    """
    Return a "watch now" link for the movie in the given country.

    Uses TMDB's watch-provider page when at least one flatrate (subscription)
    provider exists there. Otherwise, or when the lookup fails, falls back to a
    Netflix title search.
    """
    try:
        response = await client.get(f"/movie/{movie_id}/watch/providers")
        response.raise_for_status()
        region: dict[str, Any] = (_json_object(response).get("results") or {}).get(country) or {}
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Failed to fetch streaming link for movie %d: %s", movie_id, exc)
        return _fallback_streaming_link(title)

    if region.get("flatrate") and region.get("link"):
        return region["link"]
    return _fallback_streaming_link(title)
