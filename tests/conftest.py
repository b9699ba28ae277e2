from __future__ import annotations

from typing import Dict, List

import pandas as pd
import pytest

from core.data import RECORD_COLUMNS

BASE_RECORD: Dict[str, object] = {
    "year": 2014.0,
    "make": "FORD",
    "model": "FUSION",
    "trim": "SE",
    "body": "SEDAN",
    "transmission": "automatic",
    "vin": "VIN",
    "state": "CA",
    "condition": 4.0,
    "odometer": 10000.0,
    "color": "white",
    "interior": "black",
    "seller": "dealer",
    "mmr": 15000.0,
    "sellingprice": 15000.0,
    "saledate": "2015-01-15",
}

RAW_ROW: Dict[str, str] = {
    "year": "2014",
    "make": "Ford",
    "model": "Fusion",
    "trim": "SE",
    "body": "Sedan",
    "transmission": "automatic",
    "vin": "3fa6p0h75er208976",
    "state": "ca",
    "condition": "3.9",
    "odometer": "12818",
    "color": "white",
    "interior": "gray",
    "seller": "enterprise vehicle exchange",
    "mmr": "15100",
    "sellingprice": "14600",
    "saledate": "Thu Jan 15 2015 04:30:00 GMT-0800 (PST)",
}


@pytest.fixture
def make_records():
    def _make(rows: List[Dict[str, object]]) -> pd.DataFrame:
        data = [{**BASE_RECORD, "vin": f"VIN{i:04d}", **row} for i, row in enumerate(rows)]
        return pd.DataFrame(data, columns=RECORD_COLUMNS)

    return _make


@pytest.fixture
def write_csv(tmp_path):
    def _write(rows: List[Dict[str, str]], name: str = "cars.csv", columns: List[str] = RECORD_COLUMNS):
        path = tmp_path / name
        frame = pd.DataFrame([{**RAW_ROW, **row} for row in rows])
        frame = frame[[c for c in columns if c in frame.columns]]
        frame.to_csv(path, index=False)
        return path

    return _write


@pytest.fixture
def fleet(make_records):
    return make_records(
        [
            {"make": "BMW", "model": "X5", "body": "SUV", "sellingprice": 30000.0, "saledate": "2015-01-15"},
            {"make": "BMW", "model": "X5", "body": "SUV", "sellingprice": 32000.0, "saledate": "2015-01-20"},
            {"make": "BMW", "model": "328I", "body": "SEDAN", "sellingprice": 24000.0, "saledate": "2015-03-02"},
            {"make": "TOYOTA", "model": "CAMRY", "body": "SEDAN", "state": "FL", "sellingprice": 16000.0, "saledate": "2015-02-12"},
            {"make": "TOYOTA", "model": "RAV4", "body": "SUV", "state": "TX", "sellingprice": 21000.0, "saledate": "2015-03-14"},
            {"make": "FORD", "model": "F-150", "body": "SUPERCREW", "state": "TX", "sellingprice": 37000.0, "saledate": "2015-04-15"},
        ]
    )
