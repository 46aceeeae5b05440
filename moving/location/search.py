"""Debounced, cancellable location search for one address input.

Each keystroke goes through ``set_query``.  Lookups are issued only after
the input has been stable for the debounce delay, and every lookup carries
a generation number: a result is applied only if no newer query has been
entered since.  Cancelling the pending task is best-effort; the generation
check is what guarantees that a late answer for ``"par"`` never replaces
the suggestions already shown for ``"paris"``.

Typical use::

    search = LocationSearch(geocoder.search, on_select=form.set_start_location)
    search.set_query("Athens")      # schedules a lookup
    await search.wait()             # settled: results / no_results / failed
    search.handle_key("ArrowDown")
    search.handle_key("Enter")      # commits via on_select
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from moving.config import settings
from moving.location.geocoding import MIN_QUERY_LENGTH, Suggestion, rank_suggestions
from moving.models.booking import Coordinates

log = logging.getLogger("moving.location.search")

Lookup = Callable[[str], Awaitable[list[Suggestion]]]
OnSelect = Callable[[str, Optional[Coordinates]], None]


class SearchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RESULTS = "results"
    NO_RESULTS = "no_results"
    FAILED = "failed"


class LocationSearch:
    """Suggestion state for a single location field."""

    def __init__(
        self,
        lookup: Lookup,
        on_select: Optional[OnSelect] = None,
        debounce: Optional[float] = None,
        min_length: int = MIN_QUERY_LENGTH,
    ) -> None:
        self._lookup = lookup
        self._on_select = on_select
        self._debounce = settings.search_debounce_seconds if debounce is None else debounce
        self._min_length = min_length

        self._query = ""
        self._suggestions: list[Suggestion] = []
        self._status = SearchStatus.IDLE
        self._highlighted = -1

        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    # ── State ─────────────────────────────────────────────────

    @property
    def query(self) -> str:
        return self._query

    @property
    def suggestions(self) -> list[Suggestion]:
        return list(self._suggestions)

    @property
    def status(self) -> SearchStatus:
        return self._status

    @property
    def highlighted(self) -> int:
        return self._highlighted

    @property
    def is_open(self) -> bool:
        return bool(self._suggestions)

    # ── Input ─────────────────────────────────────────────────

    def set_query(self, text: str) -> None:
        """Record new input and (re)schedule a debounced lookup.

        Must be called from inside a running event loop.
        """
        self._query = text
        self._generation += 1
        self._cancel_pending()

        if len(text.strip()) < self._min_length:
            self._clear(SearchStatus.IDLE)
            return

        self._status = SearchStatus.LOADING
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._generation, text)
        )

    async def _run(self, generation: int, query: str) -> None:
        await asyncio.sleep(self._debounce)
        try:
            results = await self._lookup(query)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.warning("Location search for %r failed: %s", query, exc)
            self._apply(generation, [], failed=True)
            return
        self._apply(generation, results)

    def _apply(self, generation: int, results: list[Suggestion], failed: bool = False) -> bool:
        """Publish a lookup outcome unless a newer query superseded it."""
        if generation != self._generation:
            log.debug("Discarding stale search result (gen %d < %d)", generation, self._generation)
            return False

        self._suggestions = rank_suggestions(results)
        self._highlighted = -1
        if failed:
            self._status = SearchStatus.FAILED
        elif self._suggestions:
            self._status = SearchStatus.RESULTS
        else:
            self._status = SearchStatus.NO_RESULTS
        return True

    # ── Keyboard & selection ──────────────────────────────────

    def handle_key(self, key: str) -> bool:
        """Apply a navigation key. Returns True if the key was consumed."""
        if not self._suggestions:
            return False

        last = len(self._suggestions) - 1
        if key == "ArrowDown":
            self._highlighted = min(self._highlighted + 1, last)
        elif key == "ArrowUp":
            self._highlighted = max(self._highlighted - 1, -1)
        elif key == "Enter":
            if 0 <= self._highlighted <= last:
                self.select(self._highlighted)
        elif key == "Escape":
            self._clear(SearchStatus.IDLE)
        else:
            return False
        return True

    def select(self, index: int) -> Suggestion:
        """Commit a suggestion into the caller's form state and close the list."""
        if not 0 <= index < len(self._suggestions):
            raise IndexError(f"No suggestion at index {index}")
        suggestion = self._suggestions[index]
        self._query = suggestion.display_name

        # Anything still in flight belongs to the text before the commit
        self._generation += 1
        self._cancel_pending()
        self._clear(SearchStatus.IDLE)

        if self._on_select is not None:
            self._on_select(suggestion.display_name, suggestion.coordinates)
        return suggestion

    # ── Lifecycle ─────────────────────────────────────────────

    async def wait(self) -> None:
        """Wait for the most recently scheduled lookup to settle."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    def close(self) -> None:
        """Cancel any pending lookup."""
        self._generation += 1
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _clear(self, status: SearchStatus) -> None:
        self._suggestions = []
        self._highlighted = -1
        self._status = status
