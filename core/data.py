from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, IO, List, Optional, Tuple, Union

import pandas as pd

from core.aggregations import filter_records
from core.filters import FilterSelection, normalize_selection

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DEFAULT_DATA_FILE = DATA_DIR / "car_prices.csv"

RECORD_COLUMNS = [
    "year",
    "make",
    "model",
    "trim",
    "body",
    "transmission",
    "vin",
    "state",
    "condition",
    "odometer",
    "color",
    "interior",
    "seller",
    "mmr",
    "sellingprice",
    "saledate",
]
REQUIRED_COLUMNS = list(RECORD_COLUMNS)
NUMERIC_COLUMNS = ["year", "condition", "odometer", "mmr", "sellingprice"]
UPPERCASE_COLUMNS = ["make", "model", "body", "state"]

SALE_WINDOW_START = date(2014, 11, 1)
SALE_WINDOW_END = date(2015, 8, 31)

# e.g. "Tue Dec 16 2014 12:30:00 GMT-0800 (PST)"
SALEDATE_FORMAT = "%a %b %d %Y %H:%M:%S GMT%z"
_TZ_NAME_SUFFIX = re.compile(r"\s*\([^)]*\)\s*$")

DataSource = Union[str, Path, IO[str]]


@dataclass(frozen=True)
class LoadReport:
    source: str
    raw_rows: int = 0
    dropped_malformed: int = 0
    dropped_missing: int = 0
    dropped_date: int = 0
    retained: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def empty_records() -> pd.DataFrame:
    df = pd.DataFrame({c: pd.Series(dtype=object) for c in RECORD_COLUMNS})
    for col in NUMERIC_COLUMNS:
        df[col] = df[col].astype(float)
    return df


def source_label(source: DataSource) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    return str(getattr(source, "name", "<buffer>"))


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col].astype(str).str.strip(), errors="coerce")
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = df[col].fillna("").astype(str)
    return df


def uppercase_columns(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    # Filter keys are compared against normalized dropdown values, so they are trimmed too.
    for col in cols:
        if col in df.columns:
            df[col] = df[col].str.strip().str.upper()
    return df


def parse_sale_day(value: object) -> Optional[date]:
    """Return the calendar day of a sale date string, or None if unparseable.

    The day is taken from the wall-clock fields as written, so a timestamp in
    a US offset keeps its local date instead of rolling over to UTC.
    """
    if value is None:
        return None
    s = _TZ_NAME_SUFFIX.sub("", str(value).strip())
    if not s:
        return None
    try:
        return datetime.strptime(s, SALEDATE_FORMAT).date()
    except ValueError:
        pass
    ts = pd.to_datetime(s, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.date()


def in_sale_window(day: Optional[date]) -> bool:
    return isinstance(day, date) and SALE_WINDOW_START <= day <= SALE_WINDOW_END


def read_raw_csv(source: DataSource) -> Tuple[pd.DataFrame, int]:
    """Read every column as text; lines with too many fields are skipped and counted."""
    malformed: List[List[str]] = []

    def skip_line(fields: List[str]) -> None:
        malformed.append(fields)

    raw = pd.read_csv(source, dtype=str, keep_default_na=False, engine="python", on_bad_lines=skip_line)
    raw.columns = [str(c).strip().lower() for c in raw.columns]
    if malformed:
        logger.warning("skipped %d malformed line(s) in %s", len(malformed), source_label(source))
    return raw, len(malformed)


def drop_incomplete_rows(df: pd.DataFrame) -> Tuple[pd.DataFrame, int]:
    df = coerce_str_safe(df, REQUIRED_COLUMNS)
    # Whitespace-only counts as blank; values themselves are kept as written.
    complete = df[REQUIRED_COLUMNS].apply(lambda col: col.str.strip()).ne("").all(axis=1)
    return df[complete].copy(), int((~complete).sum())


def normalize_sale_dates(df: pd.DataFrame) -> Tuple[pd.DataFrame, int]:
    if df.empty:
        return df, 0
    parsed = {v: parse_sale_day(v) for v in df["saledate"].unique()}
    days = df["saledate"].map(lambda v: parsed.get(v))
    keep = days.map(in_sale_window).astype(bool)
    out = df[keep].copy()
    out["saledate"] = days[keep].map(lambda d: d.isoformat())
    return out, int((~keep).sum())


def load_car_data_with_report(source: DataSource) -> Tuple[pd.DataFrame, LoadReport]:
    label = source_label(source)
    try:
        raw, dropped_malformed = read_raw_csv(source)
    except (OSError, ValueError) as exc:
        logger.exception("failed to load car data from %s", label)
        return empty_records(), LoadReport(source=label, error=f"{type(exc).__name__}: {exc}")

    missing = [c for c in REQUIRED_COLUMNS if c not in raw.columns]
    if missing:
        logger.error("car data %s is missing required columns: %s", label, ", ".join(missing))
        return empty_records(), LoadReport(
            source=label,
            raw_rows=len(raw) + dropped_malformed,
            dropped_malformed=dropped_malformed,
            error=f"missing columns: {', '.join(missing)}",
        )

    df = raw[RECORD_COLUMNS].copy()
    df, dropped_missing = drop_incomplete_rows(df)
    df, dropped_date = normalize_sale_dates(df)
    df = uppercase_columns(df, UPPERCASE_COLUMNS)
    # Non-numeric text after the presence check becomes NaN; the row is kept.
    df = numericize(df, NUMERIC_COLUMNS)
    df = df.reset_index(drop=True)

    report = LoadReport(
        source=label,
        raw_rows=len(raw) + dropped_malformed,
        dropped_malformed=dropped_malformed,
        dropped_missing=dropped_missing,
        dropped_date=dropped_date,
        retained=len(df),
    )
    logger.info(
        "loaded %d car records from %s (%d rows, %d malformed, %d incomplete, %d outside sale window)",
        report.retained,
        label,
        report.raw_rows,
        report.dropped_malformed,
        report.dropped_missing,
        report.dropped_date,
    )
    return df, report


def load_car_data(source: DataSource) -> pd.DataFrame:
    records, _ = load_car_data_with_report(source)
    return records


def format_currency_columns(df: pd.DataFrame, cols: Iterable[str], decimals: int = 2) -> pd.DataFrame:
    formatted = df.copy()
    for c in cols:
        if c in formatted.columns:
            formatted[c] = formatted[c].apply(lambda v: f"${float(v):,.{decimals}f}" if pd.notna(v) else "")
    return formatted


# ---------------- Public API (Streamlit) ----------------
def file_signature(path: Path) -> Tuple[str, float]:
    return str(path), path.stat().st_mtime


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(file_sig: Tuple[str, float]) -> Dict[str, object]:
    records, report = load_car_data_with_report(Path(file_sig[0]))
    return {
        "source": file_sig[0],
        "records": records,
        "report": report,
    }


def load_dashboard_data(path: Optional[Union[str, Path]] = None) -> Dict[str, object]:
    path = Path(path) if path is not None else DEFAULT_DATA_FILE
    if not path.exists():
        logger.error("car data file %s not found", path)
        records = empty_records()
        return {
            "source": str(path),
            "records": records,
            "report": LoadReport(source=str(path), error="file not found"),
        }
    return _load_dashboard_data_cached(file_signature(path))


def prepare_context(selection: dict | FilterSelection, data_ctx: Dict[str, object]) -> Dict[str, object]:
    records: pd.DataFrame = data_ctx.get("records", empty_records())
    sel = selection if isinstance(selection, FilterSelection) else normalize_selection(selection)
    return {
        "filters": sel,
        "records": records,
        "filtered_records": filter_records(records, sel),
        "report": data_ctx.get("report"),
    }


def clear_dashboard_cache() -> None:
    _load_dashboard_data_cached.cache_clear()
