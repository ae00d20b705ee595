from __future__ import annotations

from typing import List, Optional, Sequence

from holdem.cards import Card, RANKS, SUITS, parse_cards
from holdem.game import TableEngine
from holdem.models import ActionType, Player, TableConfig


def create_engine(
    *,
    players: int = 3,
    starting_stack: int = 1_000,
    small_blind: int = 5,
    big_blind: int = 10,
    rotate_button: bool = False,
    max_seats: int = 10,
) -> TableEngine:
    """Instantiate an engine with a populated table; seat 0 is the host."""
    engine = TableEngine(
        "table",
        TableConfig(
            starting_stack=starting_stack,
            small_blind=small_blind,
            big_blind=big_blind,
            rotate_button=rotate_button,
            max_seats=max_seats,
        ),
    )
    for idx in range(players):
        engine.add_player(f"Player{idx}")
    return engine


def host_id(engine: TableEngine) -> str:
    return next(player.id for player in engine.players if player.is_host)


def start_hand(engine: TableEngine, seed: int = 42) -> None:
    engine.start_hand(host_id(engine), seed=seed)


def stacked_deck(labels: Sequence[str]) -> List[Card]:
    """Deck that deals ``labels`` first (two per seat in seat order, then the board)."""
    top = parse_cards(labels)
    rest = [Card(rank, suit) for suit in SUITS for rank in RANKS if Card(rank, suit) not in top]
    return top + rest


def stack_deck(monkeypatch, labels: Sequence[str]) -> None:
    deck = stacked_deck(labels)
    monkeypatch.setattr("holdem.game.build_deck", lambda seed=None: list(deck))


def act_current(engine: TableEngine, action: ActionType, amount: Optional[int] = None) -> Player:
    player = engine.current_player()
    assert player is not None
    engine.act(player.id, action, amount)
    return player


def check_down(engine: TableEngine) -> None:
    """Check or call every decision until the hand stops betting."""
    while engine.hand_in_progress():
        act_current(engine, ActionType.CHECK_CALL)
