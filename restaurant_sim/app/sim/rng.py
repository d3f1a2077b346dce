from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
import hashlib
import random
from typing import Union

Number = Union[int, float, Decimal]


def stable_seed(seed: int, stream: str, when: date | None = None, extra: str = "") -> int:
    day = when.isoformat() if when else "-"
    key = f"{seed}:{stream}:{day}:{extra}"
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return int(digest[:16], 16)


def rng_for(seed: int, stream: str, when: date | None = None, extra: str = "") -> random.Random:
    return random.Random(stable_seed(seed, stream, when, extra))


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(base: int, percent: Number) -> int:
    """round_half_up(base * percent / 100) computed in Decimal."""
    exact = Decimal(int(base)) * Decimal(str(percent)) / Decimal(100)
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_money(value: Number, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
