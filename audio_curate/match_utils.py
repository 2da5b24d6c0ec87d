from __future__ import annotations

import re
import string
import unicodedata
from difflib import SequenceMatcher
from typing import Iterable, Optional

DEFAULT_PUNCTUATION = string.punctuation + "‘’‚‛“”„‟–—―‐‑…·•«»¿¡"

_WHITESPACE = re.compile(r"\s+")


class StringSimilarity:
    """Symmetric name similarity in [0, 1].

    Blends an edit-distance ratio with token overlap so that reordered or
    prefixed titles ("Fratres" vs "Arvo Pärt: Fratres") still score well.
    """

    def __init__(
        self,
        punctuation: Iterable[str] = DEFAULT_PUNCTUATION,
        token_weight: float = 0.5,
    ) -> None:
        self.punctuation = "".join(punctuation)
        self.token_weight = max(0.0, min(1.0, token_weight))
        self._table = str.maketrans({ch: " " for ch in self.punctuation})

    def normalize(self, value: Optional[str]) -> str:
        if not value:
            return ""
        cleaned = _scrub_surrogates(value)
        cleaned = unicodedata.normalize("NFKD", cleaned)
        cleaned = "".join(ch for ch in cleaned if not unicodedata.combining(ch))
        cleaned = cleaned.casefold().translate(self._table)
        return _WHITESPACE.sub(" ", cleaned).strip()

    def tokens(self, value: Optional[str]) -> list[str]:
        return self.normalize(value).split()

    def similarity(self, a: Optional[str], b: Optional[str]) -> float:
        a = a or ""
        b = b or ""
        if _fold(a) == _fold(b):
            return 1.0
        if not a.strip() or not b.strip():
            return 0.0
        norm_a = self.normalize(a)
        norm_b = self.normalize(b)
        if not norm_a or not norm_b:
            return 0.0
        if norm_a == norm_b:
            return 1.0
        # SequenceMatcher is order sensitive; fix the order.
        first, second = sorted((norm_a, norm_b))
        edit = SequenceMatcher(None, first, second).ratio()
        tokens = _token_score(set(norm_a.split()), set(norm_b.split()))
        blended = (1.0 - self.token_weight) * edit + self.token_weight * tokens
        return max(0.0, min(1.0, max(edit, blended)))


def _fold(value: str) -> str:
    return " ".join(_scrub_surrogates(value).casefold().split())


def _scrub_surrogates(value: str) -> str:
    return value.encode("utf-8", "replace").decode("utf-8")


def _token_score(left: set[str], right: set[str]) -> float:
    if not left or not right:
        return 0.0
    shared = len(left & right)
    if not shared:
        return 0.0
    containment = shared / min(len(left), len(right))
    jaccard = shared / len(left | right)
    return (containment + jaccard) / 2


_default = StringSimilarity()


def similarity(a: Optional[str], b: Optional[str]) -> float:
    return _default.similarity(a, b)


def normalize_match_text(value: Optional[str]) -> str:
    return _default.normalize(value)


def combine_similarity(
    title_ratio: Optional[float],
    duration_ratio: Optional[float],
    *,
    title_weight: float = 0.7,
    duration_weight: float = 0.3,
) -> Optional[float]:
    score = 0.0
    weight = 0.0
    if title_ratio is not None:
        score += title_ratio * title_weight
        weight += title_weight
    if duration_ratio is not None:
        score += duration_ratio * duration_weight
        weight += duration_weight
    if weight == 0.0:
        return None
    return score / weight
