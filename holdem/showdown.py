from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .cards import Card
from .evaluator import HandRank, compare_rank, describe_rank, evaluate_best
from .models import HandResult, Player, Winner

LAST_PLAYER_REASON = "Last player standing"
NO_ACTIVE_REASON = "No active players"


def resolve_hand(
    players: Sequence[Player],
    community: Sequence[Card],
    pot: int,
    dealer_index: Optional[int],
) -> HandResult:
    """Decide who takes the pot. Used by every path that ends a hand.

    One undivided pot is split evenly between all best hands; all-in
    players are not limited to what they contributed.
    """
    active = [player for player in players if not player.folded]

    if not active:
        if not players:
            return HandResult(winners=[], payouts={})
        dealer = _dealer_or_first(players, dealer_index)
        winner = Winner(id=dealer.id, name=dealer.name, rank_label=NO_ACTIVE_REASON, reason=NO_ACTIVE_REASON)
        return HandResult(winners=[winner], payouts={dealer.id: pot})

    if len(active) == 1:
        survivor = active[0]
        winner = Winner(id=survivor.id, name=survivor.name, rank_label=LAST_PLAYER_REASON, reason=LAST_PLAYER_REASON)
        return HandResult(winners=[winner], payouts={survivor.id: pot})

    scores: Dict[str, HandRank] = {
        player.id: evaluate_best(list(player.hand) + list(community)) for player in active
    }
    best = max(scores.values())
    winning = [player for player in active if compare_rank(scores[player.id], best) == 0]

    share, remainder = divmod(pot, len(winning))
    payouts: Dict[str, int] = {}
    winners: List[Winner] = []
    for idx, player in enumerate(winning):
        payouts[player.id] = share + (remainder if idx == 0 else 0)
        rank = scores[player.id]
        winners.append(Winner(id=player.id, name=player.name, rank=rank, rank_label=describe_rank(rank)))
    return HandResult(winners=winners, payouts=payouts)


def _dealer_or_first(players: Sequence[Player], dealer_index: Optional[int]) -> Player:
    if dealer_index is not None and 0 <= dealer_index < len(players):
        return players[dealer_index]
    return players[0]
