from __future__ import annotations

from typing import Any, Dict, List, Optional

from .cards import HIDDEN_CARD, build_deck, cards_to_labels, deal
from .models import MIN_PLAYERS, ActionType, Lobby, LobbyStatus, Phase, Player
from .seating import blind_seats, next_active_seat, reindex_after_removal, rotate_dealer
from .showdown import resolve_hand

# GameEngine keeps the rules for one lobby. No networking lives here, only
# dealing, chip accounting and betting order. Every mutating call returns the
# events it produced so the server can relay them.

Event = Dict[str, Any]

_NEXT_STREET = {
    Phase.PREFLOP: (Phase.FLOP, 3),
    Phase.FLOP: (Phase.TURN, 1),
    Phase.TURN: (Phase.RIVER, 1),
}


class GameEngine:
    """Texas Hold'em state machine for a single lobby."""

    def __init__(self, lobby: Lobby) -> None:
        self.lobby = lobby

    @property
    def awaiting_payout(self) -> bool:
        return self.lobby.pending_result is not None

    @property
    def hand_in_progress(self) -> bool:
        lobby = self.lobby
        return (
            lobby.status == LobbyStatus.PLAYING
            and lobby.pending_result is None
            and lobby.phase not in (None, Phase.SHOWDOWN)
        )

    # Game lifecycle --------------------------------------------------

    def start_game(self, seed: Optional[int] = None) -> List[Event]:
        lobby = self.lobby
        if lobby.status == LobbyStatus.PLAYING:
            raise RuntimeError("Game already in progress")
        if len(lobby.players) < MIN_PLAYERS:
            raise RuntimeError(f"At least {MIN_PLAYERS} players are required")

        lobby.status = LobbyStatus.PLAYING
        lobby.round_number = 0
        lobby.dealer_index = None
        for player in lobby.players:
            if player.chips <= 0:
                player.chips = lobby.settings.start_chips
        return self.start_hand(seed=seed)

    def start_hand(self, seed: Optional[int] = None) -> List[Event]:
        lobby = self.lobby
        if len(lobby.players) < MIN_PLAYERS:
            raise RuntimeError("Not enough players to start a hand")
        if lobby.pending_result is not None:
            raise RuntimeError("Previous hand has not been paid out")

        lobby.deck = build_deck(seed)
        lobby.community = []
        lobby.pot = 0
        lobby.current_bet = 0
        lobby.phase = Phase.PREFLOP
        for player in lobby.players:
            player.reset_for_hand()
            player.hand = deal(lobby.deck, 2)

        lobby.dealer_index = rotate_dealer(lobby.players, lobby.dealer_index)
        lobby.small_blind_index, lobby.big_blind_index = blind_seats(lobby.players, lobby.dealer_index)
        small = lobby.players[lobby.small_blind_index]
        big = lobby.players[lobby.big_blind_index]
        small_paid = self._commit_chips(small, lobby.settings.small_blind)
        big_paid = self._commit_chips(big, lobby.settings.big_blind)
        lobby.current_bet = max(0, lobby.settings.big_blind)
        lobby.current_player_index = next_active_seat(lobby.players, lobby.big_blind_index + 1, skip_all_in=True)

        events: List[Event] = [
            {
                "ev": "POST_BLINDS",
                "round": lobby.round_number + 1,
                "dealer": lobby.players[lobby.dealer_index].id,
                "small_blind": small.id,
                "big_blind": big.id,
                "sb": small_paid,
                "bb": big_paid,
            }
        ]
        # Blinds can put everyone all-in before anybody acts.
        if self.betting_round_complete():
            events.extend(self._advance_phase())
        return events

    # Action handling -------------------------------------------------

    def apply_action(self, player_id: str, action: Any, amount: Any = None) -> List[Event]:
        lobby = self.lobby
        if lobby.status != LobbyStatus.PLAYING:
            raise ValueError("The game has not started")
        idx = lobby.index_of(player_id)
        if idx is None:
            raise ValueError("Player not found in lobby")
        if not self.hand_in_progress:
            raise ValueError("The hand is already over")
        if idx != lobby.current_player_index:
            raise ValueError("It is not your turn")
        player = lobby.players[idx]
        if player.folded:
            raise ValueError("You have already folded")
        action = self._parse_action(action)

        events: List[Event] = []
        if action == ActionType.FOLD:
            player.folded = True
            player.has_acted = True
            events.append({"ev": "FOLD", "player": player.id})
            if len(lobby.active_players()) <= 1:
                events.extend(self._enter_showdown())
                return events
        elif action == ActionType.CHECK:
            if player.bet < lobby.current_bet:
                raise ValueError("You cannot check, you must call, bet or fold")
            player.has_acted = True
            events.append({"ev": "CHECK", "player": player.id})
        elif action == ActionType.CALL:
            # A short stack calls for whatever it has left.
            paid = self._commit_chips(player, lobby.current_bet - player.bet)
            player.has_acted = True
            events.append({"ev": "CALL", "player": player.id, "amount": paid, "all_in": player.all_in})
        else:
            chips = self._parse_amount(amount)
            to_call = max(0, lobby.current_bet - player.bet)
            if lobby.current_bet == 0 and chips < lobby.settings.big_blind:
                raise ValueError(f"The minimum opening bet is {lobby.settings.big_blind}")
            if lobby.current_bet > 0 and chips < to_call:
                raise ValueError(f"You must bet at least {to_call} to call")
            paid = self._commit_chips(player, chips)
            raised = player.bet > lobby.current_bet
            if raised:
                lobby.current_bet = player.bet
                for other in lobby.players:
                    if other is not player and not other.folded:
                        other.has_acted = False
            player.has_acted = True
            events.append(
                {
                    "ev": "BET",
                    "player": player.id,
                    "amount": paid,
                    "raise": raised,
                    "current_bet": lobby.current_bet,
                    "all_in": player.all_in,
                }
            )

        events.extend(self._advance_after_action(idx))
        return events

    def betting_round_complete(self) -> bool:
        lobby = self.lobby
        active = lobby.active_players()
        if len(active) <= 1:
            return True
        return all(
            player.all_in or (player.bet == lobby.current_bet and player.has_acted)
            for player in active
        )

    def _advance_after_action(self, actor_idx: int) -> List[Event]:
        if self.betting_round_complete():
            return self._advance_phase()
        self.lobby.current_player_index = next_active_seat(self.lobby.players, actor_idx + 1, skip_all_in=True)
        return []

    def _advance_phase(self) -> List[Event]:
        lobby = self.lobby
        events: List[Event] = []
        while True:
            for player in lobby.players:
                player.reset_for_round()
            lobby.current_bet = 0

            if lobby.phase == Phase.RIVER or len(lobby.active_players()) <= 1:
                events.extend(self._enter_showdown())
                return events

            next_phase, count = _NEXT_STREET[lobby.phase]
            cards = deal(lobby.deck, count)
            lobby.community.extend(cards)
            lobby.phase = next_phase
            events.append({"ev": next_phase.name, "cards": cards_to_labels(cards)})
            first = (lobby.dealer_index or 0) + 1
            lobby.current_player_index = next_active_seat(lobby.players, first, skip_all_in=True)

            # Nobody left who can bet: keep dealing.
            if not self.betting_round_complete():
                return events

    def _commit_chips(self, player: Player, amount: int) -> int:
        amount = max(0, min(amount, player.chips))
        player.chips -= amount
        player.bet += amount
        self.lobby.pot += amount
        return amount

    @staticmethod
    def _parse_action(action: Any) -> ActionType:
        if isinstance(action, ActionType):
            return action
        try:
            return ActionType(str(action).strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported action {action!r}") from None

    @staticmethod
    def _parse_amount(amount: Any) -> int:
        if amount is None or isinstance(amount, bool):
            raise ValueError("Enter a positive amount to bet")
        try:
            value = int(float(amount))
        except (TypeError, ValueError, OverflowError):
            raise ValueError("Enter a positive amount to bet") from None
        if value <= 0:
            raise ValueError("Enter a positive amount to bet")
        return value

    # Showdown and payout ---------------------------------------------

    def _enter_showdown(self) -> List[Event]:
        lobby = self.lobby
        lobby.phase = Phase.SHOWDOWN
        lobby.current_player_index = None
        lobby.pending_result = resolve_hand(lobby.players, lobby.community, lobby.pot, lobby.dealer_index)
        return [{"ev": "REVEAL", "payload": self.reveal_payload()}]

    def reveal_payload(self) -> Dict[str, Any]:
        lobby = self.lobby
        result = lobby.pending_result
        return {
            "players": [
                {
                    "id": player.id,
                    "name": player.name,
                    "chips": player.chips,
                    "folded": player.folded,
                    "hand": cards_to_labels(player.hand),
                }
                for player in lobby.players
            ],
            "community": cards_to_labels(lobby.community),
            "pot": lobby.pot,
            "winners": [winner.to_payload() for winner in result.winners] if result else [],
        }

    def settle_hand(self) -> List[Event]:
        """Pay out the resolved hand, then start the next one or end the game.

        Safe to call more than once: without a pending result nothing moves.
        """
        lobby = self.lobby
        result = lobby.pending_result
        if result is None:
            return []
        if any(lobby.find_player(winner_id) is None for winner_id in result.payouts):
            result = resolve_hand(lobby.players, lobby.community, lobby.pot, lobby.dealer_index)

        lobby.pending_result = None
        events: List[Event] = []
        for winner_id, amount in result.payouts.items():
            winner = lobby.find_player(winner_id)
            if winner is None:
                continue
            winner.chips += amount
            events.append({"ev": "POT_AWARD", "player": winner_id, "amount": amount})
        lobby.pot = 0
        events.extend(self._finish_hand())
        return events

    def _finish_hand(self) -> List[Event]:
        lobby = self.lobby
        lobby.round_number += 1
        lobby.deck = []
        lobby.current_player_index = None
        events: List[Event] = [
            {
                "ev": "HAND_END",
                "round": lobby.round_number,
                "chips": {player.id: player.chips for player in lobby.players},
            }
        ]
        if self.is_game_over():
            lobby.status = LobbyStatus.FINISHED
            events.append({"ev": "GAME_OVER", "round": lobby.round_number, "standings": self.standings()})
            return events
        events.extend(self.start_hand())
        return events

    def is_game_over(self) -> bool:
        lobby = self.lobby
        rounds = lobby.settings.rounds
        if rounds > 0 and lobby.round_number >= rounds:
            return True
        if len(lobby.players) < MIN_PLAYERS:
            return True
        with_chips = [player for player in lobby.players if player.chips > 0]
        return len(with_chips) == 1

    def standings(self) -> List[Dict[str, Any]]:
        ordered = sorted(self.lobby.players, key=lambda player: player.chips, reverse=True)
        return [{"id": player.id, "name": player.name, "chips": player.chips} for player in ordered]

    # Seat management -------------------------------------------------

    def remove_player(self, player_id: str) -> List[Event]:
        lobby = self.lobby
        idx = lobby.index_of(player_id)
        if idx is None:
            raise ValueError("Player not found in lobby")

        was_turn = idx == lobby.current_player_index
        hand_live = self.hand_in_progress
        departing = lobby.players.pop(idx)
        events: List[Event] = [{"ev": "SEAT_REMOVED", "player": departing.id, "name": departing.name}]
        if not lobby.players:
            return events

        if departing.is_host or departing.id == lobby.host_id:
            for player in lobby.players:
                player.is_host = False
            new_host = lobby.players[0]
            new_host.is_host = True
            lobby.host_id = new_host.id
            events.append({"ev": "HOST_TRANSFER", "player": new_host.id})

        count = len(lobby.players)
        lobby.dealer_index = reindex_after_removal(lobby.dealer_index, idx, count)
        lobby.small_blind_index = reindex_after_removal(lobby.small_blind_index, idx, count)
        lobby.big_blind_index = reindex_after_removal(lobby.big_blind_index, idx, count)
        lobby.current_player_index = reindex_after_removal(lobby.current_player_index, idx, count)

        if lobby.pending_result is not None:
            # Resolved hand waiting on its reveal delay; never pay an empty seat.
            lobby.pending_result = resolve_hand(lobby.players, lobby.community, lobby.pot, lobby.dealer_index)
            events.append({"ev": "REVEAL", "payload": self.reveal_payload()})
            return events
        if not hand_live:
            return events

        if len(lobby.active_players()) <= 1:
            events.extend(self._enter_showdown())
            events.extend(self.settle_hand())
            return events
        if self.betting_round_complete():
            events.extend(self._advance_phase())
        elif was_turn:
            lobby.current_player_index = next_active_seat(lobby.players, idx % count, skip_all_in=True)
        return events

    # Public/Snapshot helpers -----------------------------------------

    def public_state(self, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """Lobby view for one viewer; other players' hole cards are masked."""
        lobby = self.lobby
        return {
            "id": lobby.id,
            "hostId": lobby.host_id,
            "status": lobby.status.value,
            "settings": lobby.settings.to_payload(),
            "roundNumber": lobby.round_number,
            "phase": lobby.phase.value if lobby.phase else None,
            "pot": lobby.pot,
            "community": cards_to_labels(lobby.community),
            "currentBet": lobby.current_bet,
            "currentPlayerId": self._seat_id(lobby.current_player_index),
            "dealerId": self._seat_id(lobby.dealer_index),
            "smallBlindId": self._seat_id(lobby.small_blind_index),
            "bigBlindId": self._seat_id(lobby.big_blind_index),
            "players": [self.player_payload(player, viewer_id) for player in lobby.players],
        }

    def player_payload(self, player: Player, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        if player.id == viewer_id:
            hand = cards_to_labels(player.hand)
        else:
            hand = [HIDDEN_CARD] * len(player.hand)
        return {
            "id": player.id,
            "name": player.name,
            "isHost": player.is_host,
            "chips": player.chips,
            "bet": player.bet,
            "folded": player.folded,
            "hasActed": player.has_acted,
            "hand": hand,
        }

    def _seat_id(self, index: Optional[int]) -> Optional[str]:
        players = self.lobby.players
        if index is None or not 0 <= index < len(players):
            return None
        return players[index].id
