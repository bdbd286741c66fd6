from contextlib import asynccontextmanager
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

load_dotenv()

from db.favorites import list_favorites, remove_favorite, save_favorite, save_rating  # noqa: E402
from db.feedback import send_feedback  # noqa: E402
from db.redis import check_redis, close_redis, init_redis  # noqa: E402
from db.tmdb import (  # noqa: E402
    create_tmdb_client,
    fetch_genres,
    fetch_movie_details,
    fetch_streaming_link,
    fetch_trailer,
)
from implementation.classes.enums import SearchStatus  # noqa: E402
from implementation.classes.schemas import (  # noqa: E402
    Favorite,
    Feedback,
    Genre,
    MovieDetails,
    MovieSummary,
    QueryRequest,
    Rating,
    Trailer,
    TrendingCounter,
)
from implementation.misc.helpers import get_guest_id  # noqa: E402
from implementation.query_coordinator import (  # noqa: E402
    DEFAULT_LEADERBOARD_SIZE,
    load_leaderboard,
    record_search_safely,
    search,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan handler for connection lifecycle management.

    Connects to Redis (fast-fail if unreachable) and opens one shared TMDB
    client on startup; closes both on shutdown.
    """
    await init_redis()
    app.state.tmdb_client = create_tmdb_client()
    app.state.http_client = httpx.AsyncClient(timeout=10.0)
    yield
    await app.state.http_client.aclose()
    await app.state.tmdb_client.aclose()
    await close_redis()


app = FastAPI(lifespan=lifespan)


# -----------------------------
#       RESPONSE MODELS
# -----------------------------

class SearchResponse(BaseModel):
    status: SearchStatus
    term: str
    page: int
    genre_id: Optional[int] = None
    movies: list[MovieSummary] = Field(default_factory=list)
    total_pages: int = 0
    error_message: Optional[str] = None


class MovieDetailsResponse(BaseModel):
    movie: MovieDetails
    trailer: Optional[Trailer] = None
    streaming_url: str


class FavoriteRequest(BaseModel):
    movie_id: int
    title: str
    poster_path: Optional[str] = None


class RatingRequest(BaseModel):
    movie_id: int
    rating: int
    title: str = "Unknown"


def _guest(x_guest_id: Optional[str]) -> str:
    return x_guest_id or get_guest_id()


# -----------------------------
#          ENDPOINTS
# -----------------------------

@app.get("/health")
async def health_check():
    """
    Health check endpoint that validates connectivity to external services.

    Returns a dictionary with status for each service:
    - redis: 'ok' or error message
    """
    return {"redis": await check_redis()}


@app.get("/genres", response_model=list[Genre])
async def get_genres():
    return await fetch_genres(app.state.tmdb_client)


@app.get("/movies", response_model=SearchResponse)
async def get_movies(
    background_tasks: BackgroundTasks,
    query: str = "",
    page: int = Query(1, ge=1),
    genre_id: Optional[int] = None,
):
    """
    Search the catalog (non-empty query) or browse by popularity (empty query).

    A failed catalog call answers 502 with the same body shape. The trending
    count update runs after the response is sent.
    """
    request = QueryRequest(term=query, page=page, genre_id=genre_id)
    outcome = await search(request, app.state.tmdb_client)

    if outcome.record_search is not None:
        background_tasks.add_task(record_search_safely, outcome.record_search)

    body = SearchResponse(
        status=outcome.status,
        term=request.term,
        page=request.page,
        genre_id=request.genre_id,
        movies=outcome.result.items if outcome.result else [],
        total_pages=outcome.result.total_pages if outcome.result else 0,
        error_message=outcome.error_message,
    )
    if outcome.status is SearchStatus.FAILED:
        return JSONResponse(status_code=502, content=body.model_dump(mode="json"))
    return body


@app.get("/movies/{movie_id}", response_model=MovieDetailsResponse)
async def get_movie(movie_id: int):
    client = app.state.tmdb_client
    try:
        movie = await fetch_movie_details(movie_id, client)
        trailer = await fetch_trailer(movie_id, client)
    except httpx.HTTPStatusError as exc:
        raise HTTPException(
            status_code=exc.response.status_code,
            detail=f"Failed to fetch movie details: {exc}",
        )
    except (httpx.HTTPError, ValueError) as exc:
        raise HTTPException(status_code=502, detail=f"Failed to fetch movie details: {exc}")

    streaming_url = await fetch_streaming_link(movie_id, movie.title, client)
    return MovieDetailsResponse(movie=movie, trailer=trailer, streaming_url=streaming_url)


@app.get("/trending", response_model=list[TrendingCounter])
async def get_trending(limit: int = Query(DEFAULT_LEADERBOARD_SIZE, ge=1, le=50)):
    return await load_leaderboard(limit)


@app.get("/favorites", response_model=list[Favorite])
async def get_favorites(x_guest_id: Optional[str] = Header(default=None)):
    return await list_favorites(_guest(x_guest_id))


@app.post("/favorites", response_model=Favorite, status_code=201)
async def add_favorite(body: FavoriteRequest, x_guest_id: Optional[str] = Header(default=None)):
    return await save_favorite(_guest(x_guest_id), body.movie_id, body.title, body.poster_path)


@app.delete("/favorites/{movie_id}", status_code=204)
async def delete_favorite(movie_id: int, x_guest_id: Optional[str] = Header(default=None)):
    await remove_favorite(_guest(x_guest_id), movie_id)


@app.post("/ratings", response_model=Rating)
async def rate_movie(body: RatingRequest, x_guest_id: Optional[str] = Header(default=None)):
    try:
        return await save_rating(_guest(x_guest_id), body.movie_id, body.rating, body.title)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@app.post("/feedback", status_code=202)
async def post_feedback(feedback: Feedback):
    try:
        await send_feedback(feedback, app.state.http_client)
    except (RuntimeError, httpx.HTTPError) as exc:
        raise HTTPException(status_code=502, detail=f"Failed to send feedback: {exc}")
    return {"status": "sent"}
