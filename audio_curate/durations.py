from __future__ import annotations

from enum import Enum
from typing import Optional


class LengthCategory(str, Enum):
    SHORT = "short"
    NORMAL = "normal"
    LONG = "long"
    EPIC = "epic"


class Strictness(str, Enum):
    STRICT = "strict"
    NORMAL = "normal"
    RELAXED = "relaxed"


SHORT_MAX_SECONDS = 120
NORMAL_MAX_SECONDS = 420
LONG_MAX_SECONDS = 600

# Normal column measured on a 149-track sample; strict ~0.4x, relaxed ~1.65x.
TOLERANCE_TABLES: dict[Strictness, dict[LengthCategory, int]] = {
    Strictness.STRICT: {
        LengthCategory.SHORT: 17,
        LengthCategory.NORMAL: 43,
        LengthCategory.LONG: 36,
        LengthCategory.EPIC: 132,
    },
    Strictness.NORMAL: {
        LengthCategory.SHORT: 42,
        LengthCategory.NORMAL: 107,
        LengthCategory.LONG: 89,
        LengthCategory.EPIC: 331,
    },
    Strictness.RELAXED: {
        LengthCategory.SHORT: 69,
        LengthCategory.NORMAL: 177,
        LengthCategory.LONG: 147,
        LengthCategory.EPIC: 546,
    },
}


def classify_duration(seconds: float) -> LengthCategory:
    if seconds < SHORT_MAX_SECONDS:
        return LengthCategory.SHORT
    if seconds <= NORMAL_MAX_SECONDS:
        return LengthCategory.NORMAL
    if seconds <= LONG_MAX_SECONDS:
        return LengthCategory.LONG
    return LengthCategory.EPIC


class DurationTolerance:
    """Per-category matching window, in seconds."""

    def __init__(
        self,
        strictness: Strictness | str = Strictness.NORMAL,
        overrides: Optional[dict[LengthCategory, int]] = None,
    ) -> None:
        self.strictness = Strictness(strictness)
        self.table = dict(TOLERANCE_TABLES[self.strictness])
        if overrides:
            self.table.update(overrides)

    def tolerance_for(self, seconds: float) -> int:
        return self.table[classify_duration(seconds)]

    def within(self, reference_seconds: float, delta_seconds: float) -> bool:
        return abs(delta_seconds) <= self.tolerance_for(reference_seconds)
