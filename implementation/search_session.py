"""
Interactive search session: owns the mutable view state.

Wires keystrokes through the Debouncer, runs each resulting QueryRequest through
the query coordinator, and folds every step into SearchViewState via the pure
reducer. RecordSearch effects run as background tasks whose failures are only
logged.
"""

import asyncio
import itertools
import logging
from typing import Awaitable, Optional

import httpx

from implementation.debounce import DEFAULT_DEBOUNCE_SECONDS, Debouncer
from implementation.classes.schemas import QueryRequest, TrendingCounter
from implementation.query_coordinator import (
    DEFAULT_LEADERBOARD_SIZE,
    SearchOutcome,
    load_leaderboard,
    record_search_safely,
    search,
)
from implementation.search_state import (
    GenreSelected,
    PageChanged,
    RequestCompleted,
    RequestDispatched,
    SearchEvent,
    SearchViewState,
    TermCommitted,
    reduce,
)

logger = logging.getLogger(__name__)


class SearchSession:
    """
    One user's search box, pagination and genre filter.

    All methods must be called from the event loop that owns `client`.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._client = client
        self._debouncer: Debouncer[str] = Debouncer(self._on_term_committed, debounce_seconds)
        self._request_ids = itertools.count(1)
        self._tasks: set[asyncio.Task] = set()
        self.state = SearchViewState()

    # -----------------------------
    #        INPUT HANDLERS
    # -----------------------------

    def type(self, text: str) -> None:
        """Feed the current contents of the search box."""
        self._debouncer.push(text)

    def next_page(self) -> asyncio.Task:
        return self._change(PageChanged(self.state.page + 1))

    def previous_page(self) -> Optional[asyncio.Task]:
        """Go back one page. No-op on the first page."""
        if self.state.page <= 1:
            return None
        return self._change(PageChanged(self.state.page - 1))

    def select_genre(self, genre_id: Optional[int]) -> asyncio.Task:
        return self._change(GenreSelected(genre_id))

    def refresh(self) -> asyncio.Task:
        """Re-run the query for the current term, page and genre."""
        return self._start_search()

    # -----------------------------
    #          LIFECYCLE
    # -----------------------------

    async def wait_idle(self) -> None:
        """Wait for every in-flight search and counter update to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._debouncer.cancel()
        await self.wait_idle()

    async def load_leaderboard(self, limit: int = DEFAULT_LEADERBOARD_SIZE) -> list[TrendingCounter]:
        return await load_leaderboard(limit)

    # -----------------------------
    #          INTERNALS
    # -----------------------------

    def _dispatch(self, event: SearchEvent) -> None:
        self.state = reduce(self.state, event)

    def _change(self, event: SearchEvent) -> asyncio.Task:
        self._dispatch(event)
        return self._start_search()

    def _on_term_committed(self, term: str) -> None:
        if term == self.state.term and self.state.latest_request_id:
            return
        self._change(TermCommitted(term))

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _start_search(self) -> asyncio.Task:
        # Request and id are fixed now; the state may move on before the task runs.
        request = self.state.to_request()
        request_id = next(self._request_ids)
        self._dispatch(RequestDispatched(request_id))
        return self._spawn(self._run_search(request, request_id))

    async def _run_search(self, request: QueryRequest, request_id: int) -> SearchOutcome:
        outcome = await search(request, self._client)

        if request_id != self.state.latest_request_id:
            logger.debug("Discarding superseded response for request %d", request_id)
        self._dispatch(RequestCompleted(request_id, outcome))

        if outcome.record_search is not None:
            self._spawn(record_search_safely(outcome.record_search))
        return outcome
