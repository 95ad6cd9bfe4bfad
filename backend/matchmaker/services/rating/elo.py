import math
from typing import Tuple

# Ratings live in a signed 32-bit Integer column
MAX_RATING = 2 ** 31 - 1

# 10 ** 300 is still a finite float
_MAX_EXPONENT = 300.0


def _expected(gap: float) -> float:
    """Expected score of a player whose opponent is rated `gap` points higher."""
    exponent = max(-_MAX_EXPONENT, min(_MAX_EXPONENT, gap / 400.0))
    return 1.0 / (1.0 + math.pow(10.0, exponent))


def update(ratings: Tuple[float, float], scores: Tuple[float, float], k: float = 32.0) -> Tuple[float, float]:
    """Elo update for one two-player match.

    Scores are usually 1/0/0.5 for win/loss/draw, but any real pair is
    accepted. Pure: computing it twice is harmless, applying it twice is not.
    The result can still be non-finite or out of range for very large
    scores; check it with `storable` before applying it.
    """
    gap = ratings[1] - ratings[0]
    expected = (_expected(gap), _expected(-gap))
    return (
        ratings[0] + k * (scores[0] - expected[0]),
        ratings[1] + k * (scores[1] - expected[1]),
    )


def storable(rating: float) -> bool:
    return math.isfinite(rating) and -MAX_RATING <= int(rating) <= MAX_RATING


def truncate(rating: float) -> int:
    """Persisted ratings are integers, truncated toward zero."""
    if not storable(rating):
        raise ValueError(f'rating cannot be stored: {rating!r}')
    return int(rating)
