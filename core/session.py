from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from core.data import DataSource, LoadReport, empty_records, load_car_data_with_report, prepare_context
from core.filters import FilterSelection, FilterState
from core.metrics_debug import compute_debug
from core.metrics_dimensions import compute_dimensions
from core.metrics_ranking import compute_ranking
from core.metrics_trend import compute_trend
from core.options import FilterOptions, FilterPanel

logger = logging.getLogger(__name__)

Payloads = Dict[str, Dict[str, Any]]
PayloadListener = Callable[[Payloads], None]


class DashboardSession:
    """One user's dashboard: records, filter state, and the derived chart payloads.

    Payloads are recomputed synchronously whenever the selection changes and
    memoized per selection until the record set is replaced.
    """

    def __init__(
        self,
        records: Optional[pd.DataFrame] = None,
        *,
        report: Optional[LoadReport] = None,
        state: Optional[FilterState] = None,
    ) -> None:
        self._records = records if records is not None else empty_records()
        self._report = report
        self.state = state or FilterState()
        self.panel = FilterPanel(self._records, self.state)
        self._cache: Dict[tuple, Payloads] = {}
        self._listeners: List[PayloadListener] = []
        self._load_seq = 0
        self._payloads = self._compute(self.state.selection)
        self._unsubscribe = self.state.subscribe(self._on_selection)

    @property
    def records(self) -> pd.DataFrame:
        return self._records

    @property
    def report(self) -> Optional[LoadReport]:
        return self._report

    @property
    def selection(self) -> FilterSelection:
        return self.state.selection

    @property
    def options(self) -> FilterOptions:
        return self.panel.options

    @property
    def payloads(self) -> Payloads:
        return self._payloads

    def select(self, name: str, value: Optional[str]) -> FilterSelection:
        return self.panel.select(name, value)

    def subscribe(self, listener: PayloadListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------- loading ----------
    def begin_load(self) -> int:
        self._load_seq += 1
        return self._load_seq

    def finish_load(self, token: int, records: pd.DataFrame, report: Optional[LoadReport] = None) -> bool:
        if token != self._load_seq:
            logger.warning("discarding stale load %d; load %d is newer", token, self._load_seq)
            return False
        self.set_records(records, report=report)
        return True

    def load(self, source: DataSource) -> bool:
        token = self.begin_load()
        records, report = load_car_data_with_report(source)
        return self.finish_load(token, records, report)

    def set_records(self, records: pd.DataFrame, *, report: Optional[LoadReport] = None) -> None:
        self._records = records
        self._report = report
        self._cache.clear()
        self.panel.set_records(records)
        self._refresh(self.state.selection)

    # ---------- recompute ----------
    def _compute(self, selection: FilterSelection) -> Payloads:
        key = selection.as_tuple()
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        ctx = prepare_context(selection, {"records": self._records, "report": self._report})
        payloads = {
            "ranking": compute_ranking(selection, ctx),
            "trend": compute_trend(selection, ctx),
            "dimensions": compute_dimensions(selection, ctx),
            "debug": compute_debug(selection, ctx),
        }
        self._cache[key] = payloads
        return payloads

    def _refresh(self, selection: FilterSelection) -> None:
        self._payloads = self._compute(selection)
        for listener in list(self._listeners):
            listener(self._payloads)

    def _on_selection(self, selection: FilterSelection) -> None:
        self._refresh(selection)

    def close(self) -> None:
        self._unsubscribe()
        self.panel.close()
