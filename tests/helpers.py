from __future__ import annotations

import random
from typing import List, Optional, Sequence, Tuple

from holdem.cards import RANKS, SUITS, Card, parse_cards
from holdem.game import Event, GameEngine
from holdem.models import ActionType
from holdem.sessions import LobbyManager


def create_lobby(
    *,
    players: int = 2,
    start_chips: int = 1_000,
    small_blind: int = 5,
    big_blind: int = 10,
    rounds: int = 0,
) -> Tuple[LobbyManager, GameEngine, List[str]]:
    """Build a lobby with seats p0..pN; p0 is the host."""
    manager = LobbyManager(rng=random.Random(7))
    settings = {
        "startChips": start_chips,
        "rounds": rounds,
        "smallBlind": small_blind,
        "bigBlind": big_blind,
    }
    engine = manager.create_lobby("p0", "Player0", settings)
    for idx in range(1, players):
        manager.join_lobby(f"p{idx}", engine.lobby.id, f"Player{idx}")
    return manager, engine, [f"p{idx}" for idx in range(players)]


def start_game(manager: LobbyManager, seed: int = 42) -> List[Event]:
    return manager.start_game("p0", seed=seed)


def stacked_deck(labels: Sequence[str]) -> List[Card]:
    """Deck that deals ``labels`` first (two hole cards per seat in seat order, then the board)."""
    head = parse_cards(labels)
    rest = [Card(rank, suit) for suit in SUITS for rank in RANKS if Card(rank, suit) not in head]
    return head + rest


def current_actor(engine: GameEngine) -> Optional[str]:
    idx = engine.lobby.current_player_index
    if idx is None:
        return None
    return engine.lobby.players[idx].id


def act(engine: GameEngine, action: ActionType, amount: Optional[int] = None) -> List[Event]:
    actor = current_actor(engine)
    assert actor is not None
    return engine.apply_action(actor, action, amount)


def play_passively(engine: GameEngine) -> List[Event]:
    """Check or call until the current hand is resolved."""
    events: List[Event] = []
    while engine.hand_in_progress:
        actor = current_actor(engine)
        assert actor is not None
        player = engine.lobby.find_player(actor)
        assert player is not None
        if player.bet < engine.lobby.current_bet:
            events.extend(engine.apply_action(actor, ActionType.CALL))
        else:
            events.extend(engine.apply_action(actor, ActionType.CHECK))
    return events


def event_names(events: Sequence[Event]) -> List[str]:
    return [event["ev"] for event in events]
