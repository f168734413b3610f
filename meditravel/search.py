"""
Combined destination and treatment search.

Each query change takes a new sequence number. A search result is applied
only when its sequence number is still the latest, so a slow response for an
older query never replaces the results of a newer one.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from meditravel import destinations, treatments
from meditravel.db.database import clean_search_term
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

TABS = ("all", "destinations", "treatments")

MIN_QUERY_LENGTH = 2
DEBOUNCE_SECONDS = 0.3


@dataclass
class SearchResults:
    destinations: List[Dict[str, Any]] = field(default_factory=list)
    treatments: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.destinations) + len(self.treatments)

    def counts(self) -> Dict[str, int]:
        return {
            "all": self.total,
            "destinations": len(self.destinations),
            "treatments": len(self.treatments),
        }

    def for_tab(self, tab: str) -> "SearchResults":
        if tab == "destinations":
            return SearchResults(destinations=self.destinations)
        if tab == "treatments":
            return SearchResults(treatments=self.treatments)
        return SearchResults(destinations=self.destinations, treatments=self.treatments)


class SearchController:
    def __init__(
        self,
        search_destinations: Callable[[str], List[Dict[str, Any]]] = destinations.search_destinations,
        search_treatments: Callable[[str], List[Dict[str, Any]]] = treatments.search_treatments,
        min_query_length: int = MIN_QUERY_LENGTH,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        thread_initializer: Optional[Callable[[], None]] = None,
    ):
        self._search_destinations = search_destinations
        self._search_treatments = search_treatments
        self.min_query_length = min_query_length
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._sleep = sleep
        self._thread_initializer = thread_initializer

        self.query = ""
        self.results = SearchResults()
        self.active_tab = "all"
        self.loading = False
        self.error: Optional[str] = None

        self._latest_seq = 0
        self._applied_seq = 0
        self._changed_at = clock()

    @property
    def latest_seq(self) -> int:
        return self._latest_seq

    def query_is_searchable(self, query: Optional[str] = None) -> bool:
        q = self.query if query is None else query
        return len(clean_search_term(q)) >= self.min_query_length

    def update_query(self, query: str) -> int:
        """Record a new query and return its sequence number."""
        query = query or ""
        if query == self.query:
            return self._latest_seq
        self.query = query
        self._latest_seq += 1
        self._changed_at = self._clock()
        return self._latest_seq

    def set_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"Unknown search tab: {tab}")
        self.active_tab = tab

    # ---------------- DEBOUNCE ----------------

    def remaining_delay(self) -> float:
        elapsed = self._clock() - self._changed_at
        return max(0.0, self.debounce_seconds - elapsed)

    def is_settled(self) -> bool:
        return self.remaining_delay() == 0.0

    def wait_until_settled(self) -> None:
        delay = self.remaining_delay()
        if delay > 0:
            self._sleep(delay)

    # ---------------- EXECUTION ----------------

    def fetch(self, query: str) -> SearchResults:
        """Run both searches concurrently; short queries never reach the store."""
        if not self.query_is_searchable(query):
            return SearchResults()

        with ThreadPoolExecutor(max_workers=2, initializer=self._thread_initializer) as pool:
            destinations_future = pool.submit(self._search_destinations, query.strip())
            treatments_future = pool.submit(self._search_treatments, query.strip())
            return SearchResults(
                destinations=destinations_future.result() or [],
                treatments=treatments_future.result() or [],
            )

    def apply(self, seq: int, results: SearchResults) -> bool:
        if seq != self._latest_seq:
            logger.debug(f"Discarding stale search results (seq {seq}, latest {self._latest_seq})")
            return False
        self.results = results
        self._applied_seq = seq
        return True

    def run(self) -> SearchResults:
        """
        Search for the current query once the debounce delay has passed.
        Results already applied for the current query are returned as they are,
        so reruns that leave the query untouched make no remote calls.
        """
        if self._applied_seq == self._latest_seq and self.error is None:
            return self.results

        self.wait_until_settled()
        seq = self._latest_seq
        query = self.query

        self.loading = True
        try:
            results = self.fetch(query)
            self.error = None
        except Exception as e:
            self.error = "Search failed. Please try again."
            logger.error(f"Search error for '{query}': {e}")
            return self.results
        finally:
            self.loading = False

        self.apply(seq, results)
        return self.results

    def visible_results(self) -> SearchResults:
        return self.results.for_tab(self.active_tab)
