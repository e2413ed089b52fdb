from __future__ import annotations

import itertools
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .cards import RANKS, Card

RANK_VALUE = {rank: idx for idx, rank in enumerate(RANKS, start=2)}

# A rank is (category, *tiebreak); tuples compare lexicographically and a
# shorter tuple loses to any longer one sharing its prefix.
HandRank = Tuple[int, ...]

STRAIGHT_FLUSH = 8
FOUR_OF_A_KIND = 7
FULL_HOUSE = 6
FLUSH = 5
STRAIGHT = 4
THREE_OF_A_KIND = 3
TWO_PAIR = 2
ONE_PAIR = 1
HIGH_CARD = 0

RANK_LABELS: Dict[int, str] = {
    STRAIGHT_FLUSH: "Straight Flush",
    FOUR_OF_A_KIND: "Four of a Kind",
    FULL_HOUSE: "Full House",
    FLUSH: "Flush",
    STRAIGHT: "Straight",
    THREE_OF_A_KIND: "Three of a Kind",
    TWO_PAIR: "Two Pair",
    ONE_PAIR: "Pair",
    HIGH_CARD: "High Card",
}


def evaluate_best(cards: Sequence[Card]) -> HandRank:
    """Return the best rank among every 5-card subset of ``cards``. Higher is better."""
    if len(cards) < 5:
        raise ValueError("At least five cards are required")
    best: Optional[HandRank] = None
    for combo in itertools.combinations(cards, 5):
        rank = _evaluate_five(combo)
        if best is None or rank > best:
            best = rank
    assert best is not None
    return best


def compare_rank(a: Sequence[int], b: Sequence[int]) -> int:
    """Three-way comparison of two ranks: -1, 0 or 1."""
    left, right = tuple(a), tuple(b)
    if left > right:
        return 1
    if left < right:
        return -1
    return 0


def describe_rank(rank: Sequence[int]) -> str:
    if not rank:
        return "Unknown"
    return RANK_LABELS.get(rank[0], "Unknown")


def _evaluate_five(cards: Sequence[Card]) -> HandRank:
    ranks = sorted((RANK_VALUE[card.rank] for card in cards), reverse=True)
    is_flush = len({card.suit for card in cards}) == 1
    straight_high = _straight_high(cards)

    counts: Dict[int, int] = {}
    for value in ranks:
        counts[value] = counts.get(value, 0) + 1

    # Most copies first, higher rank breaks ties.
    ordered = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    shape = [count for _, count in ordered]
    singles = [value for value, count in ordered if count == 1]

    if straight_high and is_flush:
        return (STRAIGHT_FLUSH, straight_high)
    if shape[0] == 4:
        return (FOUR_OF_A_KIND, ordered[0][0], ordered[1][0])
    if shape[0] == 3 and shape[1] == 2:
        return (FULL_HOUSE, ordered[0][0], ordered[1][0])
    if is_flush:
        return (FLUSH, *ranks)
    if straight_high:
        return (STRAIGHT, straight_high)
    if shape[0] == 3:
        return (THREE_OF_A_KIND, ordered[0][0], *singles)
    if shape[0] == 2 and shape[1] == 2:
        return (TWO_PAIR, ordered[0][0], ordered[1][0], *singles)
    if shape[0] == 2:
        return (ONE_PAIR, ordered[0][0], *singles)
    return (HIGH_CARD, *ranks)


def _straight_high(cards: Iterable[Card]) -> Optional[int]:
    values = {RANK_VALUE[card.rank] for card in cards}
    if len(values) != 5:
        return None
    if max(values) - min(values) == 4:
        return max(values)
    if values == {14, 2, 3, 4, 5}:  # wheel
        return 5
    return None
