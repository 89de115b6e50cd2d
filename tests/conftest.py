from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

CASES_PATH = Path(__file__).parent / "cases.json"


def parse_zoned(text: str) -> datetime:
    """'2024-01-01T10:07:00+00:00[UTC]' -> the same instant seen from the bracketed zone."""
    iso, _, zone = text.rstrip("]").partition("[")
    if not zone:
        raise ValueError(f"missing [zone] suffix: {text!r}")
    return datetime.fromisoformat(iso).astimezone(ZoneInfo(zone))


def format_zoned(dt: datetime) -> str:
    """Inverse of parse_zoned; results in this suite always carry a ZoneInfo."""
    assert isinstance(dt.tzinfo, ZoneInfo), dt
    return f"{dt.isoformat()}[{dt.tzinfo.key}]"


def load_cases() -> dict:  # type: ignore[type-arg]
    return json.loads(CASES_PATH.read_text())
