from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

Domain = Tuple[float, float]

_E10 = math.sqrt(50)
_E5 = math.sqrt(10)
_E2 = math.sqrt(2)


def extent(values: Iterable[object]) -> Optional[Domain]:
    """(min, max) of the finite numeric values, or None if there are none."""
    arr = pd.to_numeric(pd.Series(list(values), dtype=object), errors="coerce").to_numpy(dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        return None
    return float(arr.min()), float(arr.max())


def tick_step(start: float, stop: float, count: int = 10) -> float:
    """Step between ticks on a 1-2-5 ladder, roughly `count` ticks over the span."""
    span = abs(stop - start)
    if count <= 0 or span == 0 or not math.isfinite(span):
        return 0.0
    step0 = span / count
    step1 = 10 ** math.floor(math.log10(step0))
    error = step0 / step1
    if error >= _E10:
        step1 *= 10
    elif error >= _E5:
        step1 *= 5
    elif error >= _E2:
        step1 *= 2
    return step1


def _decimals(step: float) -> int:
    return max(0, -int(math.floor(math.log10(step)))) if step > 0 else 0


def nice_domain(lo: float, hi: float, count: int = 10) -> Domain:
    """Widen [lo, hi] outward to whole tick steps."""
    if not (math.isfinite(lo) and math.isfinite(hi)) or lo == hi:
        return lo, hi
    if lo > hi:
        lo, hi = hi, lo
    prev = None
    for _ in range(10):
        step = tick_step(lo, hi, count)
        if step == 0 or step == prev:
            break
        digits = _decimals(step)
        lo = round(math.floor(lo / step) * step, digits)
        hi = round(math.ceil(hi / step) * step, digits)
        prev = step
    return lo, hi


def tick_values(lo: float, hi: float, count: int = 10) -> List[float]:
    if not (math.isfinite(lo) and math.isfinite(hi)):
        return []
    if lo == hi:
        return [lo]
    if lo > hi:
        lo, hi = hi, lo
    step = tick_step(lo, hi, count)
    first = math.ceil(lo / step - 1e-9)
    last = math.floor(hi / step + 1e-9)
    ticks = np.round(np.arange(first, last + 1) * step, _decimals(step))
    return [float(t) for t in ticks]


class LinearScale:
    """Continuous mapping from a numeric domain onto a pixel range."""

    def __init__(self, domain: Optional[Domain], range_: Sequence[float]) -> None:
        lo, hi = domain if domain is not None else (0.0, 0.0)
        self.domain: Domain = (float(lo), float(hi))
        self.range: Domain = (float(range_[0]), float(range_[1]))

    @classmethod
    def from_values(cls, values: Iterable[object], range_: Sequence[float], *, zero: bool = False) -> "LinearScale":
        dom = extent(values) or (0.0, 0.0)
        if zero:
            dom = (min(0.0, dom[0]), max(0.0, dom[1]))
        return cls(dom, range_)

    @property
    def degenerate(self) -> bool:
        d0, d1 = self.domain
        return d0 == d1 or not (math.isfinite(d0) and math.isfinite(d1))

    def __call__(self, value: object) -> float:
        r0, r1 = self.range
        try:
            v = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return float("nan")
        if math.isnan(v):
            return float("nan")
        if self.degenerate:
            return (r0 + r1) / 2
        d0, d1 = self.domain
        return r0 + (v - d0) / (d1 - d0) * (r1 - r0)

    def nice(self, count: int = 10) -> "LinearScale":
        return LinearScale(nice_domain(*self.domain, count=count), self.range)

    def ticks(self, count: int = 10) -> List[float]:
        return tick_values(*self.domain, count=count)


class BandScale:
    """Ordinal mapping of categories onto equal-width bands."""

    def __init__(
        self,
        domain: Iterable[object],
        range_: Sequence[float],
        *,
        padding: float = 0.0,
        padding_inner: Optional[float] = None,
        padding_outer: Optional[float] = None,
        align: float = 0.5,
    ) -> None:
        self.domain: List[object] = []
        for value in domain:
            if value not in self.domain:
                self.domain.append(value)
        self.range: Domain = (float(range_[0]), float(range_[1]))
        self.padding_inner = padding if padding_inner is None else padding_inner
        self.padding_outer = padding if padding_outer is None else padding_outer
        self.align = align
        n = len(self.domain)
        r0, r1 = self.range
        self.step = (r1 - r0) / max(1.0, n - self.padding_inner + self.padding_outer * 2)
        self.start = r0 + (r1 - r0 - self.step * (n - self.padding_inner)) * align
        self.bandwidth = self.step * (1 - self.padding_inner)

    def __call__(self, value: object) -> Optional[float]:
        try:
            i = self.domain.index(value)
        except ValueError:
            return None
        return self.start + self.step * i

    def center(self, value: object) -> Optional[float]:
        pos = self(value)
        if pos is None:
            return None
        return pos + self.bandwidth / 2


class PointScale(BandScale):
    """Evenly spaced points; a band scale whose bands have zero width."""

    def __init__(self, domain: Iterable[object], range_: Sequence[float], *, padding: float = 0.0, align: float = 0.5) -> None:
        super().__init__(domain, range_, padding_inner=1.0, padding_outer=padding, align=align)
