from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .cards import Card

MAX_PLAYERS = 4
MIN_PLAYERS = 2
MAX_NAME_LENGTH = 30


class Phase(str, Enum):
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"
    SHOWDOWN = "showdown"


class ActionType(str, Enum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    BET = "bet"


class LobbyStatus(str, Enum):
    LOBBY = "lobby"
    PLAYING = "playing"
    FINISHED = "finished"


# (default, minimum, maximum) for every host-supplied setting.
SETTING_BOUNDS = {
    "start_chips": (1_000, 100, 1_000_000),
    "rounds": (5, 0, 100_000),
    "small_blind": (5, 1, 100_000),
    "big_blind": (10, 2, 200_000),
}

# Wire names used by clients.
_SETTING_KEYS = {
    "start_chips": "startChips",
    "rounds": "rounds",
    "small_blind": "smallBlind",
    "big_blind": "bigBlind",
}


def clamp_int(value: Any, default: int, minimum: int, maximum: int) -> int:
    """Coerce untrusted input to an int inside [minimum, maximum]."""
    if value is None or isinstance(value, bool):
        number = default
    else:
        try:
            number = int(float(value))
        except (TypeError, ValueError, OverflowError):
            number = default
    return max(minimum, min(maximum, number))


@dataclass(frozen=True)
class LobbySettings:
    start_chips: int = 1_000
    rounds: int = 5
    small_blind: int = 5
    big_blind: int = 10

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "LobbySettings":
        payload = payload if isinstance(payload, Mapping) else {}
        values = {}
        for name, (default, minimum, maximum) in SETTING_BOUNDS.items():
            values[name] = clamp_int(payload.get(_SETTING_KEYS[name]), default, minimum, maximum)
        return cls(**values)

    def to_payload(self) -> Dict[str, int]:
        return {_SETTING_KEYS[name]: getattr(self, name) for name in SETTING_BOUNDS}


@dataclass
class Player:
    id: str
    name: str
    chips: int
    is_host: bool = False
    folded: bool = False
    bet: int = 0
    has_acted: bool = False
    hand: List[Card] = field(default_factory=list)

    def reset_for_hand(self) -> None:
        self.folded = False
        self.bet = 0
        self.has_acted = False
        self.hand = []

    def reset_for_round(self) -> None:
        self.bet = 0
        self.has_acted = False

    @property
    def all_in(self) -> bool:
        return self.chips == 0


@dataclass
class Winner:
    id: str
    name: str
    rank: Optional[Tuple[int, ...]] = None
    rank_label: str = ""
    reason: Optional[str] = None

    def to_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"id": self.id, "name": self.name, "rankLabel": self.rank_label}
        if self.rank is not None:
            payload["rank"] = list(self.rank)
        if self.reason:
            payload["reason"] = self.reason
        return payload


@dataclass
class HandResult:
    winners: List[Winner]
    payouts: Dict[str, int]

    @property
    def total(self) -> int:
        return sum(self.payouts.values())


@dataclass
class Lobby:
    # Hand fields (deck, community, pot, current_bet, phase) are rebuilt by
    # every start_hand and retired when the hand settles.
    id: str
    host_id: str
    settings: LobbySettings
    status: LobbyStatus = LobbyStatus.LOBBY
    players: List[Player] = field(default_factory=list)
    round_number: int = 0
    dealer_index: Optional[int] = None
    small_blind_index: Optional[int] = None
    big_blind_index: Optional[int] = None
    current_player_index: Optional[int] = None
    deck: List[Card] = field(default_factory=list)
    community: List[Card] = field(default_factory=list)
    pot: int = 0
    current_bet: int = 0
    phase: Optional[Phase] = None
    pending_result: Optional[HandResult] = None

    def find_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def index_of(self, player_id: str) -> Optional[int]:
        for idx, player in enumerate(self.players):
            if player.id == player_id:
                return idx
        return None

    def active_players(self) -> List[Player]:
        return [player for player in self.players if not player.folded]

    def total_chips(self) -> int:
        return sum(player.chips for player in self.players) + self.pot
