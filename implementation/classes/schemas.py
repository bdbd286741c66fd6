"""
Pydantic schemas for catalog records, trending counters and guest data.

TMDB owns the shape of movie records; the models here only pick the fields
this service reads and ignore everything else.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr

from .enums import QueryMode
from implementation.misc.helpers import build_poster_url


# -----------------------------
#        CATALOG RECORDS
# -----------------------------

class MovieSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    vote_average: Optional[float] = None
    poster_path: Optional[str] = None
    original_language: Optional[str] = None
    release_date: Optional[str] = None

    @property
    def release_year(self) -> Optional[int]:
        if not self.release_date:
            return None
        year = self.release_date.split("-")[0]
        return int(year) if year.isdigit() else None

    @property
    def poster_url(self) -> Optional[str]:
        return build_poster_url(self.poster_path)


class Genre(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


class MovieDetails(MovieSummary):
    overview: Optional[str] = None
    runtime: Optional[int] = None
    vote_count: int = 0
    genres: list[Genre] = Field(default_factory=list)


class Trailer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    name: str = ""
    site: str
    type: str

    @property
    def embed_url(self) -> str:
        return f"https://www.youtube.com/embed/{self.key}"


# -----------------------------
#        QUERY / RESULT
# -----------------------------

class QueryRequest(BaseModel):
    """
    One catalog query. Immutable once issued.

    An empty term means browse mode: the discover endpoint sorted by popularity.
    """
    model_config = ConfigDict(frozen=True)

    term: str = ""
    page: int = Field(default=1, ge=1)
    genre_id: Optional[int] = None

    @property
    def mode(self) -> QueryMode:
        return QueryMode.SEARCH if self.term else QueryMode.DISCOVER


class QueryResult(BaseModel):
    items: list[MovieSummary] = Field(default_factory=list)
    total_pages: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.items


# -----------------------------
#        TRENDING COUNTERS
# -----------------------------

class TrendingCounter(BaseModel):
    """Per-term tally of successful searches plus the latest top result for that term."""
    search_term: str
    count: int = Field(default=0, ge=0)
    movie_id: Optional[int] = None
    poster_url: Optional[str] = None
    movie: Optional[MovieSummary] = None


# -----------------------------
#          GUEST DATA
# -----------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Favorite(BaseModel):
    user_id: str
    movie_id: int
    title: str
    poster_url: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class Rating(BaseModel):
    user_id: str
    movie_id: int
    rating: int = Field(..., ge=1, le=10)
    title: str = "Unknown"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = None


class Feedback(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    email: EmailStr
    message: constr(strip_whitespace=True, min_length=1)
