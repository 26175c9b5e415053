"""Static food catalog served next to the relay."""

from __future__ import annotations

import unicodedata
from typing import Iterable, Sequence

from .models import FoodSearchResult

FOODS: tuple[str, ...] = (
    "Phở bò",
    "Phở gà",
    "Bún chả",
    "Bánh mì pate",
    "Bánh cuốn",
    "Bánh xèo",
    "Gỏi cuốn",
    "Cơm tấm",
    "Chả cá Lã Vọng",
    "Bún bò Huế",
    "Hủ tiếu",
    "Cà phê sữa đá",
)


def strip_accents(value: str) -> str:
    """Drop combining marks after NFD decomposition ("Phở" -> "Pho")."""

    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _fold(value: str) -> str:
    return strip_accents(value.lower())


def search_foods(search: str, catalog: Iterable[str] = FOODS) -> FoodSearchResult:
    """Case- and accent-insensitive substring filter; empty search matches all."""

    needle = _fold(search)
    data: Sequence[str] = [item for item in catalog if needle in _fold(item)]
    return FoodSearchResult(search=search, count=len(data), data=list(data))
