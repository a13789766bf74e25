from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, List

DATA_DIR = Path(__file__).resolve().parent / "data"


def _read_rows(name: str) -> List[List[str]]:
    with open(DATA_DIR / name, newline="", encoding="utf-8") as handle:
        return [row for row in csv.reader(handle) if row and not row[0].startswith("#")]


def _validity_cases() -> List[Dict[str, object]]:
    return [
        {
            "code": code,
            "is_valid": is_valid == "true",
            "is_short": is_short == "true",
            "is_full": is_full == "true",
        }
        for code, is_valid, is_short, is_full in _read_rows("validity.csv")
    ]


def _shortening_cases() -> List[Dict[str, object]]:
    return [
        {
            "full_code": full_code,
            "lat": float(lat),
            "lng": float(lng),
            "short_code": short_code,
            "test_type": test_type,
        }
        for full_code, lat, lng, short_code, test_type in _read_rows("shortening.csv")
    ]


def pytest_generate_tests(metafunc) -> None:
    if "validity_case" in metafunc.fixturenames:
        cases = _validity_cases()
        metafunc.parametrize("validity_case", cases, ids=[c["code"] for c in cases])
    if "shortening_case" in metafunc.fixturenames:
        cases = _shortening_cases()
        metafunc.parametrize(
            "shortening_case",
            cases,
            ids=[f"{c['full_code']}@{c['lat']},{c['lng']}" for c in cases],
        )
