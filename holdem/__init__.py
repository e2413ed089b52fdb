"""Texas Hold'em lobby engine: cards, hand ranking, betting and seating."""

from .cards import Card, RANKS, SUITS, build_deck, deal, parse_cards
from .evaluator import compare_rank, describe_rank, evaluate_best
from .game import GameEngine
from .models import ActionType, Lobby, LobbySettings, LobbyStatus, Phase, Player
from .sessions import LobbyError, LobbyManager
from .showdown import resolve_hand

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "build_deck",
    "deal",
    "parse_cards",
    "compare_rank",
    "describe_rank",
    "evaluate_best",
    "GameEngine",
    "ActionType",
    "Lobby",
    "LobbySettings",
    "LobbyStatus",
    "Phase",
    "Player",
    "LobbyError",
    "LobbyManager",
    "resolve_hand",
]
