# market_radar/services/dashboard_state.py
"""
Session state for the dashboard (selected tab/year/entities, loaded metrics,
selectable years) held in one explicit container.

Every aggregation pass takes a generation token when it starts. Its result is
applied only if no newer pass has started since; results of superseded passes
are dropped.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import logging
import threading

from market_radar.errors import LoadError, RetrievalError
from market_radar.services import metrics_service
from market_radar.services.indicator_catalog import DEFAULT_INDICATORS, REFERENCE_INDICATOR
from market_radar.services.metrics_service import EntityMetrics
from market_radar.utils.country_codes import EntityConfig, default_entities

logger = logging.getLogger("market-radar")

TABS = ("overview", "growth", "inflation")

# path-parameter type for the tab routes; values mirror TABS
Tab = Enum("Tab", [(t, t) for t in TABS], type=str)


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only copy handed to the view functions."""

    active_tab: str
    selected_year: Optional[str]
    entities: Sequence[EntityConfig]
    indicators: Sequence[str]
    year_options: Sequence[str]
    metrics: Sequence[EntityMetrics]
    error_message: str
    is_loading: bool
    generation: int


@dataclass
class DashboardState:
    active_tab: str = "overview"
    selected_year: Optional[str] = None
    entities: List[EntityConfig] = field(default_factory=default_entities)
    indicators: List[str] = field(default_factory=lambda: list(DEFAULT_INDICATORS))
    year_options: List[str] = field(default_factory=list)
    metrics: List[EntityMetrics] = field(default_factory=list)
    error_message: str = ""
    is_loading: bool = False
    generation: int = 0
    loaded_year: Optional[str] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    # -- generation tokens ----------------------------------------------------

    def begin_pass(self) -> int:
        return self.start_pass()[0]

    def start_pass(self) -> Tuple[int, StateSnapshot]:
        """Take a new token together with the selection the pass must load."""
        with self._lock:
            self.generation += 1
            self.is_loading = True
            self.error_message = ""
            return self.generation, self._snapshot()

    def finish_pass(self, token: int, metrics: List[EntityMetrics], year: Optional[str]) -> bool:
        with self._lock:
            if token != self.generation:
                logger.info("[state] dropping stale pass %d (current %d)", token, self.generation)
                return False
            self.metrics = list(metrics)
            self.loaded_year = year
            self.is_loading = False
            self.error_message = ""
            return True

    def fail_pass(self, token: int, message: str) -> bool:
        with self._lock:
            if token != self.generation:
                logger.info("[state] dropping stale failure %d (current %d)", token, self.generation)
                return False
            # prior data is discarded, not kept stale
            self.metrics = []
            self.loaded_year = None
            self.is_loading = False
            self.error_message = message
            return True

    # -- selections -----------------------------------------------------------

    def select_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"unknown tab: {tab!r}")
        with self._lock:
            self.active_tab = tab

    def select_year(self, year: Optional[str]) -> None:
        with self._lock:
            self.selected_year = str(year).strip() if year else None

    def select_entities(self, entities: Sequence[EntityConfig]) -> None:
        with self._lock:
            self.entities = list(entities)
            # a different entity set makes the loaded metrics meaningless,
            # and any pass still running for the old set is superseded
            self.generation += 1
            self.loaded_year = None
            self.metrics = []
            self.is_loading = False

    def set_year_options(self, options: Sequence[str]) -> None:
        """Only the first derivation sticks; picks the newest year if none is selected."""
        with self._lock:
            if self.year_options:
                return
            self.year_options = list(options)
            if self.selected_year is None and self.year_options:
                self.selected_year = self.year_options[0]

    def needs_reload(self) -> bool:
        with self._lock:
            return not self.metrics or self.loaded_year != self.selected_year

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            active_tab=self.active_tab,
            selected_year=self.selected_year,
            entities=tuple(self.entities),
            indicators=tuple(self.indicators),
            year_options=tuple(self.year_options),
            metrics=tuple(dict(m) for m in self.metrics),
            error_message=self.error_message,
            is_loading=self.is_loading,
            generation=self.generation,
        )


def run_pass(state: DashboardState) -> StateSnapshot:
    """
    One aggregation pass for the state's current selection.

    On the first successful pass the selectable years are derived from the
    first entity's reference series; when no year is selected yet, the most
    recent option becomes the selected year.
    """
    token, snap = state.start_pass()
    year = snap.selected_year

    try:
        metrics = metrics_service.aggregate(snap.entities, snap.indicators, year)
    except LoadError as e:
        logger.warning("[state] pass %d failed: %s", token, e)
        state.fail_pass(token, LoadError.user_message)
        return state.snapshot()

    if not state.finish_pass(token, metrics, year):
        return state.snapshot()

    if not snap.year_options and snap.entities:
        try:
            options = metrics_service.derive_year_options(snap.entities[0], REFERENCE_INDICATOR)
        except RetrievalError as e:
            # the loaded metrics stay valid without a year picker
            logger.warning("[state] year options unavailable: %s", e)
        else:
            state.set_year_options(options)

    return state.snapshot()


def with_tab(snap: StateSnapshot, tab: str) -> StateSnapshot:
    return replace(snap, active_tab=tab)
