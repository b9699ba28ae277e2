from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import pandas as pd

from core.filters import ALL, FILTER_FIELDS, FilterSelection, FilterState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterOptions:
    makes: List[str] = field(default_factory=lambda: [ALL])
    body_types: List[str] = field(default_factory=lambda: [ALL])
    states: List[str] = field(default_factory=lambda: [ALL])

    def for_field(self, name: str) -> List[str]:
        if name == "make":
            return self.makes
        if name == "body":
            return self.body_types
        if name == "state":
            return self.states
        raise ValueError(f"Unknown filter field {name!r}; expected one of {FILTER_FIELDS}")


def unique_options(records: pd.DataFrame, column: str) -> List[str]:
    if records.empty or column not in records.columns:
        return [ALL]
    values = sorted(str(v) for v in records[column].dropna().unique())
    return [ALL] + values


def body_types_for_make(records: pd.DataFrame, make: str) -> List[str]:
    if make == ALL:
        return unique_options(records, "body")
    if records.empty:
        return [ALL]
    return unique_options(records[records["make"] == make], "body")


def derive_filter_options(records: pd.DataFrame, selection: FilterSelection) -> FilterOptions:
    return FilterOptions(
        makes=unique_options(records, "make"),
        body_types=body_types_for_make(records, selection.make),
        states=unique_options(records, "state"),
    )


class FilterPanel:
    """Keeps the dropdown option lists in step with the filter state.

    A make change recomputes the dependent body-type list; if the selected
    body type is not offered for the new make it is reset to ALL.
    """

    def __init__(self, records: pd.DataFrame, state: FilterState) -> None:
        self._records = records
        self._state = state
        self._options = FilterOptions()
        self._make: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = state.subscribe(self._on_change)
        self._on_change(state.selection)

    @property
    def options(self) -> FilterOptions:
        return self._options

    @property
    def state(self) -> FilterState:
        return self._state

    def set_records(self, records: pd.DataFrame) -> None:
        self._records = records
        self._make = None
        self._on_change(self._state.selection)

    def select(self, name: str, value: Optional[str]) -> FilterSelection:
        return self._state.set(name, value)

    def _on_change(self, selection: FilterSelection) -> None:
        if selection.make != self._make:
            self._make = selection.make
            self._options = derive_filter_options(self._records, selection)
        for name in FILTER_FIELDS:
            value = getattr(selection, name)
            if value not in self._options.for_field(name):
                logger.info("%s %s is not offered (make=%s); resetting to %s", name, value, selection.make, ALL)
                self._state.set(name, ALL)
                return

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
