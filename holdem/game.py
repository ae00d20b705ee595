from __future__ import annotations

import uuid
from typing import Callable, Dict, List, Optional

from .cards import HIDDEN_CARD, build_deck, cards_to_labels, deal
from .errors import (
    AlreadyFolded,
    InvalidAction,
    InvalidAmount,
    MissingParameters,
    NotYourTurn,
    PlayerNotFound,
    RoundNotActive,
    TableFull,
)
from .evaluator import best_of, compare_scores, evaluate
from .models import BETTING_STAGES, ActionType, Player, Stage, TableConfig, TableState

# TableEngine keeps one room's table in memory. No networking or locking lives
# here, only poker rules, chip accounting and betting order. Every public
# method validates first and mutates second.


class TableEngine:
    """Texas Hold'em engine for a single room."""

    def __init__(self, code: str, config: Optional[TableConfig] = None) -> None:
        self.code = code
        self.config = config or TableConfig()
        self.players: List[Player] = []
        self.dealer_index = 0
        self.state = TableState()

    # Seat management -------------------------------------------------

    def add_player(self, name: str) -> Player:
        display = (name or "").strip()[: self.config.max_name_length].strip()
        if not display:
            raise MissingParameters("Name required")
        if len(self.players) >= self.config.max_seats:
            raise TableFull("Table is full.")

        player = Player(
            id=uuid.uuid4().hex,
            name=display,
            stack=self.config.starting_stack,
            is_host=not self.players,
        )
        if self.hand_in_progress():
            # Late arrivals watch the current hand and are dealt in on the next one.
            player.sit_out()
        self.players.append(player)
        self.state.message = f"{player.name} joined the table."
        return player

    def remove_player(self, player_id: str) -> Player:
        idx = self._index_of(player_id)
        player = self.players.pop(idx)
        self.state.acted.discard(player_id)
        if player.is_host and self.players:
            self.players[0].is_host = True

        if not self.players:
            self.dealer_index = 0
            self.state = TableState(message="Waiting for players to join.")
            return player

        if idx < self.dealer_index:
            self.dealer_index -= 1
        self.dealer_index %= len(self.players)
        self.state.message = "A player left the table."

        current = self.state.current_player_index
        if not self.hand_in_progress() or current is None:
            return player

        was_current = idx == current
        if idx < current:
            self.state.current_player_index = current - 1

        contenders = self._contenders()
        if len(contenders) == 1:
            self._award_pot(contenders[0])
        elif self._round_complete():
            self._advance_stage()
        elif was_current:
            self.state.current_player_index = self._next_active_index(idx - 1)
        return player

    def find_player(self, player_id: Optional[str]) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def current_player(self) -> Optional[Player]:
        idx = self.state.current_player_index
        if idx is None or idx >= len(self.players):
            return None
        return self.players[idx]

    def hand_in_progress(self) -> bool:
        return self.state.stage in BETTING_STAGES

    def total_chips(self) -> int:
        return sum(player.stack for player in self.players) + self.state.pot

    # Hand lifecycle --------------------------------------------------

    def start_hand(self, actor_id: str, seed: Optional[int] = None) -> None:
        if len(self.players) < 2:
            raise InvalidAction("At least two players are required.")
        actor = self.find_player(actor_id)
        if actor is None or not actor.is_host:
            raise InvalidAction("Only the host can start a round.")
        if self.hand_in_progress():
            raise InvalidAction("A hand is already in progress.")
        funded = len([player for player in self.players if player.stack > 0])
        if funded < 2:
            raise InvalidAction("At least two players with chips are required.")
        if funded > self.config.max_seats:
            raise InvalidAction("Too many players for one deck.")

        self.dealer_index %= len(self.players)
        if self.config.rotate_button and self.state.hand_number > 0:
            self.dealer_index = self._next_funded_index(self.dealer_index)
        elif self.players[self.dealer_index].stack == 0:
            self.dealer_index = self._next_funded_index(self.dealer_index)

        self.state = TableState(
            stage=Stage.PREFLOP,
            deck=build_deck(seed),
            hand_number=self.state.hand_number + 1,
        )
        for player in self.players:
            if player.stack > 0:
                player.reset_for_hand()
                player.hole_cards.extend(deal(self.state.deck, 2))
            else:
                player.sit_out()

        self._post_blinds()

    def _post_blinds(self) -> None:
        state = self.state
        in_hand = [player for player in self.players if not player.folded]
        # Heads-up the button posts the small blind.
        if len(in_hand) == 2:
            sb_index = self.dealer_index
        else:
            sb_index = self._next_active_index(self.dealer_index)
        assert sb_index is not None
        bb_index = self._next_active_index(sb_index)
        assert bb_index is not None

        sb_player = self.players[sb_index]
        bb_player = self.players[bb_index]
        self._commit_chips(sb_player, min(self.config.small_blind, sb_player.stack))
        self._commit_chips(bb_player, min(self.config.big_blind, bb_player.stack))

        state.current_bet = max(sb_player.bet, bb_player.bet)
        state.acted.clear()
        state.current_player_index = self._next_active_index(bb_index)
        if state.current_player_index is None:
            # Both blinds put everyone all-in.
            self._advance_stage()
            return
        state.message = f"Blinds posted. {self.players[state.current_player_index].name} to act."

    # Action handling -------------------------------------------------

    def apply_action(
        self,
        player_id: str,
        action: object,
        amount: Optional[object] = None,
        winner_id: Optional[str] = None,
    ) -> None:
        """Dispatch one wire-level action for ``player_id``."""
        self._require_player(player_id, "Player not found.")
        try:
            action_type = ActionType(action)
        except ValueError:
            raise InvalidAction("Unknown action") from None

        if action_type == ActionType.START:
            self.start_hand(player_id)
        elif action_type == ActionType.DECLARE:
            if not winner_id:
                raise MissingParameters("Missing parameters")
            self.declare_winner(winner_id)
        else:
            self.act(player_id, action_type, amount)

    def act(self, player_id: str, action: ActionType, amount: Optional[object] = None) -> None:
        self._ensure_turn(player_id)
        player = self.players[self.state.current_player_index]  # type: ignore[index]

        if action == ActionType.FOLD:
            self._fold(player)
        elif action == ActionType.CHECK_CALL:
            self._check_call(player)
        elif action == ActionType.BET_RAISE:
            self._bet_raise(player, amount)
        else:
            raise InvalidAction(f"Unsupported action {action}")

    def declare_winner(self, winner_id: str) -> None:
        winner = self._require_player(winner_id, "Winner not found.")
        self._award_pot(winner)

    def _ensure_turn(self, player_id: str) -> None:
        if self.state.stage == Stage.WAITING:
            raise RoundNotActive("Round has not started yet.")
        if self.state.stage == Stage.SHOWDOWN:
            raise RoundNotActive("Betting is over. Start the next hand.")
        self._require_player(player_id, "Player not found.")
        current = self.current_player()
        if current is None or current.id != player_id:
            raise NotYourTurn("Not your turn.")

    def _fold(self, player: Player) -> None:
        if player.folded:
            raise AlreadyFolded("Already folded.")
        player.folded = True
        self.state.acted.add(player.id)
        self.state.message = f"{player.name} folds."
        self._advance_after_action()

    def _check_call(self, player: Player) -> None:
        to_call = max(0, self.state.current_bet - player.bet)
        contribution = self._commit_chips(player, to_call)
        self.state.acted.add(player.id)
        self.state.message = f"{player.name} calls {contribution}." if contribution else f"{player.name} checks."
        self._advance_after_action()

    def _bet_raise(self, player: Player, amount: Optional[object]) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmount("Bet or raise needs a whole number of chips.")
        if amount <= 0:
            raise InvalidAmount("Bet or raise must be greater than zero.")
        if player.bet + amount <= self.state.current_bet:
            raise InvalidAmount("Raise must exceed the current bet.")
        chips = min(amount, player.stack)
        if player.bet + chips <= self.state.current_bet:
            raise InvalidAmount("Not enough chips to raise; call instead.")

        self._commit_chips(player, chips)
        self.state.current_bet = player.bet
        self.state.acted = {player.id}
        self.state.message = f"{player.name} raises to {player.bet}."
        self._advance_after_action()

    def _advance_after_action(self) -> None:
        contenders = self._contenders()
        if len(contenders) == 1:
            self._award_pot(contenders[0])
            return
        if self._round_complete():
            self._advance_stage()
            return

        nxt = self._next_active_index(self.state.current_player_index)
        self.state.current_player_index = nxt
        if nxt is not None:
            self.state.message += f" {self.players[nxt].name} to act."

    def _round_complete(self) -> bool:
        active = self._active_players()
        everyone_matched = all(player.bet == self.state.current_bet for player in active)
        everyone_acted = all(player.id in self.state.acted for player in active)
        return everyone_matched and everyone_acted

    def _advance_stage(self) -> None:
        state = self.state
        while True:
            if state.stage == Stage.PREFLOP:
                state.community.extend(deal(state.deck, 3))
                state.stage = Stage.FLOP
            elif state.stage == Stage.FLOP:
                state.community.extend(deal(state.deck, 1))
                state.stage = Stage.TURN
            elif state.stage == Stage.TURN:
                state.community.extend(deal(state.deck, 1))
                state.stage = Stage.RIVER
            else:
                self._resolve_showdown()
                return

            self._reset_bets()
            if len(self._active_players()) >= 2:
                state.current_player_index = self._next_active_index(self.dealer_index)
                actor = self.players[state.current_player_index]  # type: ignore[index]
                state.message = f"{state.stage.value.capitalize()} dealt. {actor.name} to act."
                return
            # Fewer than two players can still bet: run the board out.
            state.current_player_index = None

    def _resolve_showdown(self) -> None:
        state = self.state
        state.stage = Stage.SHOWDOWN
        state.current_player_index = None
        self._reset_bets()

        contenders = [
            player
            for player in self._contenders()
            if len(player.hole_cards) + len(state.community) >= 5
        ]
        if not contenders:
            state.stage = Stage.WAITING
            state.message = "No players left for a showdown."
            return

        for player in contenders:
            player.best_hand = evaluate(player.hole_cards + state.community)
        best = best_of(player.best_hand for player in contenders if player.best_hand)
        assert best is not None
        winners = [
            player
            for player in contenders
            if player.best_hand and compare_scores(player.best_hand.score, best.score) == 0
        ]

        pot = state.pot
        share, remainder = divmod(pot, len(winners))
        for idx, player in enumerate(winners):
            player.stack += share + (remainder if idx == 0 else 0)
        state.pot = 0
        state.winners = [player.id for player in winners]

        names = " & ".join(player.name for player in winners)
        if len(winners) > 1:
            state.message = f"{names} split the pot ({share} each) with {best.name}."
        else:
            state.message = f"{names} wins the pot ({pot}) with {best.name}."

    def _award_pot(self, winner: Player) -> None:
        state = self.state
        winner.stack += state.pot
        state.pot = 0
        state.stage = Stage.WAITING
        state.current_player_index = None
        state.community.clear()
        state.winners = [winner.id]
        self._reset_bets()
        state.message = f"{winner.name} wins the pot! Start a new round when ready."

    def _reset_bets(self) -> None:
        for player in self.players:
            player.reset_for_round()
        self.state.current_bet = 0
        self.state.acted = set()

    def _commit_chips(self, player: Player, amount: int) -> int:
        amount = min(amount, player.stack)
        player.stack -= amount
        player.bet += amount
        self.state.pot += amount
        return amount

    # Seat lookups ----------------------------------------------------

    def _contenders(self) -> List[Player]:
        return [player for player in self.players if not player.folded]

    def _active_players(self) -> List[Player]:
        return [player for player in self.players if not player.folded and player.stack > 0]

    def _next_active_index(self, start: Optional[int]) -> Optional[int]:
        return self._next_index(start, lambda player: not player.folded and player.stack > 0)

    def _next_funded_index(self, start: int) -> int:
        idx = self._next_index(start, lambda player: player.stack > 0)
        assert idx is not None
        return idx

    def _next_index(self, start: Optional[int], eligible: Callable[[Player], bool]) -> Optional[int]:
        # Walks the seats after ``start``; the start seat itself is checked last.
        total = len(self.players)
        if total == 0 or start is None:
            return None
        for step in range(1, total + 1):
            idx = (start + step) % total
            if eligible(self.players[idx]):
                return idx
        return None

    def _index_of(self, player_id: str) -> int:
        for idx, player in enumerate(self.players):
            if player.id == player_id:
                return idx
        raise PlayerNotFound("Player not found.")

    def _require_player(self, player_id: Optional[str], msg: str) -> Player:
        player = self.find_player(player_id)
        if player is None:
            raise PlayerNotFound(msg)
        return player

    # Public/Snapshot helpers -----------------------------------------

    def public_state(self, viewer_id: Optional[str] = None) -> Dict[str, object]:
        """Table as ``viewer_id`` may see it. Reads only; safe to call repeatedly."""
        state = self.state
        showdown = state.stage == Stage.SHOWDOWN
        current = self.current_player()
        return {
            "code": self.code,
            "stage": state.stage.value,
            "pot": state.pot,
            "current_bet": state.current_bet,
            "community": cards_to_labels(state.community),
            "message": state.message,
            "current_player_id": current.id if current else None,
            "dealer_id": self.players[self.dealer_index].id if self.players else None,
            "small_blind": self.config.small_blind,
            "big_blind": self.config.big_blind,
            "hand_number": state.hand_number,
            "winners": list(state.winners),
            "players": [
                {
                    "id": player.id,
                    "name": player.name,
                    "stack": player.stack,
                    "bet": player.bet,
                    "folded": player.folded,
                    "is_host": player.is_host,
                    "cards": self._visible_cards(player, viewer_id, showdown),
                    "best_hand": player.best_hand.to_payload() if showdown and player.best_hand else None,
                }
                for player in self.players
            ],
        }

    def _visible_cards(self, player: Player, viewer_id: Optional[str], showdown: bool) -> List[str]:
        if showdown or player.id == viewer_id:
            return cards_to_labels(player.hole_cards)
        return [HIDDEN_CARD] * len(player.hole_cards)
