"""
Search view state and the pure reducer that advances it.

The shell that owns the mutable state (see search_session.SearchSession) feeds
events through `reduce`; nothing here performs I/O.

Every dispatched request carries a monotonically increasing id. Completion
events whose id is not the latest dispatched are superseded responses and are
dropped without touching the state.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Union

from implementation.classes.enums import SearchStatus
from implementation.classes.schemas import MovieSummary, QueryRequest
from implementation.query_coordinator import SearchOutcome


@dataclass(frozen=True, slots=True)
class SearchViewState:
    term: str = ""
    page: int = 1
    genre_id: Optional[int] = None
    status: SearchStatus = SearchStatus.IDLE
    movies: tuple[MovieSummary, ...] = field(default_factory=tuple)
    total_pages: int = 0
    error_message: str = ""
    latest_request_id: int = 0

    @property
    def is_loading(self) -> bool:
        return self.status is SearchStatus.LOADING

    def to_request(self) -> QueryRequest:
        return QueryRequest(term=self.term, page=self.page, genre_id=self.genre_id)


# -----------------------------
#            EVENTS
# -----------------------------

@dataclass(frozen=True, slots=True)
class TermCommitted:
    term: str


@dataclass(frozen=True, slots=True)
class PageChanged:
    page: int


@dataclass(frozen=True, slots=True)
class GenreSelected:
    genre_id: Optional[int]


@dataclass(frozen=True, slots=True)
class RequestDispatched:
    request_id: int


@dataclass(frozen=True, slots=True)
class RequestCompleted:
    request_id: int
    outcome: SearchOutcome


SearchEvent = Union[TermCommitted, PageChanged, GenreSelected, RequestDispatched, RequestCompleted]


def reduce(state: SearchViewState, event: SearchEvent) -> SearchViewState:
    """Return the state that results from applying `event` to `state`."""
    if isinstance(event, TermCommitted):
        if event.term == state.term:
            return state
        return replace(state, term=event.term, page=1)

    if isinstance(event, PageChanged):
        return replace(state, page=max(event.page, 1))

    if isinstance(event, GenreSelected):
        return replace(state, genre_id=event.genre_id, page=1)

    if isinstance(event, RequestDispatched):
        return replace(
            state,
            status=SearchStatus.LOADING,
            error_message="",
            latest_request_id=event.request_id,
        )

    if isinstance(event, RequestCompleted):
        if event.request_id != state.latest_request_id:
            return state
        return _apply_outcome(state, event.outcome)

    raise TypeError(f"Unknown search event: {event!r}")


def _apply_outcome(state: SearchViewState, outcome: SearchOutcome) -> SearchViewState:
    if outcome.status is SearchStatus.SUCCESS and outcome.result is not None:
        return replace(
            state,
            status=SearchStatus.SUCCESS,
            movies=tuple(outcome.result.items),
            total_pages=outcome.result.total_pages,
            error_message="",
        )
    # EMPTY and FAILED both replace the list with the message.
    return replace(
        state,
        status=outcome.status,
        movies=(),
        total_pages=0,
        error_message=outcome.error_message or "",
    )
