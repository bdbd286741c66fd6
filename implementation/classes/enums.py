"""
Enum classes for search state and catalog query modes.
"""

from enum import Enum


class SearchStatus(str, Enum):
    """Lifecycle of a single catalog search as seen by the caller."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SearchStatus.SUCCESS, SearchStatus.EMPTY, SearchStatus.FAILED)


class QueryMode(str, Enum):
    """Which TMDB endpoint a query is sent to."""
    SEARCH = "search"
    DISCOVER = "discover"

    @property
    def endpoint(self) -> str:
        return "/search/movie" if self is QueryMode.SEARCH else "/discover/movie"
