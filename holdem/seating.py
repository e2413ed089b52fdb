"""Seat rotation arithmetic shared by the engine and the lobby manager.

Everything here is a pure function over a sequence of players so the wrap
and re-index rules can be tested without a lobby.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from .models import Player


def next_active_seat(players: Sequence[Player], start: int, skip_all_in: bool = False) -> Optional[int]:
    """First non-folded seat at or after ``start``, wrapping around the table.

    With ``skip_all_in`` seats that have no chips behind are passed over too,
    falling back to any non-folded seat when every one of them is all-in.
    """
    if not players:
        return None
    count = len(players)
    fallback: Optional[int] = None
    idx = start % count
    for _ in range(count):
        player = players[idx]
        if not player.folded:
            if not (skip_all_in and player.chips == 0):
                return idx
            if fallback is None:
                fallback = idx
        idx = (idx + 1) % count
    return fallback


def rotate_dealer(players: Sequence[Player], previous_dealer: Optional[int]) -> int:
    if not players:
        raise RuntimeError("No players to deal to")
    if previous_dealer is None:
        return 0
    return (previous_dealer + 1) % len(players)


def blind_seats(players: Sequence[Player], dealer: int) -> Tuple[int, int]:
    # Heads-up the dealer is also the big blind.
    count = len(players)
    return (dealer + 1) % count, (dealer + 2) % count


def reindex_after_removal(index: Optional[int], removed: int, count: int) -> Optional[int]:
    """Map a seat index onto the table after seat ``removed`` was spliced out.

    ``count`` is the seat count after removal. Seats behind the removed one
    shift down by one; an index that pointed at the removed seat now points
    at whoever slid into it.
    """
    if index is None or count <= 0:
        return None
    if index > removed:
        index -= 1
    return index % count
