from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Callable, Iterator, List, Optional

logger = logging.getLogger(__name__)

ALL = "ALL"
FILTER_FIELDS = ("make", "body", "state")
FILTER_LABELS = {"make": "Make", "body": "Body Type", "state": "State"}


class FilterContextError(RuntimeError):
    """Raised when the filter state is read outside an active filter scope."""


@dataclass(frozen=True)
class FilterSelection:
    make: str = ALL
    body: str = ALL
    state: str = ALL

    def with_value(self, field: str, value: Optional[str]) -> "FilterSelection":
        _check_field(field)
        return replace(self, **{field: _normalize_value(value)})

    def as_tuple(self) -> tuple:
        return (self.make, self.body, self.state)


def _check_field(field: str) -> None:
    if field not in FILTER_FIELDS:
        raise ValueError(f"Unknown filter field {field!r}; expected one of {FILTER_FIELDS}")


def _normalize_value(value: object) -> str:
    if value is None:
        return ALL
    s = str(value).strip()
    if not s:
        return ALL
    return s.upper()


def normalize_selection(raw: Optional[dict]) -> FilterSelection:
    raw = raw or {}
    return FilterSelection(**{f: _normalize_value(raw.get(f)) for f in FILTER_FIELDS})


Listener = Callable[[FilterSelection], None]


class FilterState:
    """Observable holder for the current make / body / state selection.

    Writers replace the selection wholesale; subscribers are called
    synchronously, in subscription order, with the new selection.
    """

    def __init__(self, selection: Optional[FilterSelection] = None) -> None:
        self._selection = selection or FilterSelection()
        self._listeners: List[Listener] = []

    @property
    def selection(self) -> FilterSelection:
        return self._selection

    def get(self, field: str) -> str:
        _check_field(field)
        return getattr(self._selection, field)

    def set(self, field: str, value: Optional[str]) -> FilterSelection:
        return self.replace(self._selection.with_value(field, value))

    def replace(self, selection: FilterSelection) -> FilterSelection:
        if selection == self._selection:
            return self._selection
        logger.debug("filter selection %s -> %s", self._selection.as_tuple(), selection.as_tuple())
        self._selection = selection
        for listener in list(self._listeners):
            # A listener that wrote a newer selection has already notified everyone.
            if self._selection is not selection:
                break
            listener(selection)
        return self._selection

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


_active_state: ContextVar[Optional[FilterState]] = ContextVar("active_filter_state", default=None)


@contextmanager
def filter_scope(state: Optional[FilterState] = None) -> Iterator[FilterState]:
    state = state or FilterState()
    token = _active_state.set(state)
    try:
        yield state
    finally:
        _active_state.reset(token)


def use_filter_state() -> FilterState:
    state = _active_state.get()
    if state is None:
        raise FilterContextError("use_filter_state() must be called within filter_scope()")
    return state
