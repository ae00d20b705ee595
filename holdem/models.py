from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set

from .cards import Card
from .evaluator import HandValue


class Stage(str, Enum):
    WAITING = "waiting"
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"
    SHOWDOWN = "showdown"


BETTING_STAGES = (Stage.PREFLOP, Stage.FLOP, Stage.TURN, Stage.RIVER)


class ActionType(str, Enum):
    START = "start"
    FOLD = "fold"
    CHECK_CALL = "checkCall"
    BET_RAISE = "betRaise"
    DECLARE = "declare"


# Two hole cards per seat plus a five-card board must fit in one deck.
MAX_SEATS = (52 - 5) // 2


@dataclass
class TableConfig:
    small_blind: int = 5
    big_blind: int = 10
    starting_stack: int = 1_000
    max_seats: int = 10
    max_name_length: int = 20
    default_room: str = "table"
    rotate_button: bool = False
    subscriber_queue_size: int = 32

    def __post_init__(self) -> None:
        if self.small_blind <= 0:
            raise ValueError("small_blind must be positive")
        if self.big_blind < self.small_blind:
            raise ValueError("big_blind must be at least small_blind")
        if self.starting_stack <= 0:
            raise ValueError("starting_stack must be positive")
        if not 2 <= self.max_seats <= MAX_SEATS:
            raise ValueError(f"max_seats must be between 2 and {MAX_SEATS}")
        if self.max_name_length <= 0:
            raise ValueError("max_name_length must be positive")
        if self.subscriber_queue_size <= 0:
            raise ValueError("subscriber_queue_size must be positive")


@dataclass
class Player:
    id: str
    name: str
    stack: int
    bet: int = 0
    folded: bool = False
    is_host: bool = False
    hole_cards: List[Card] = field(default_factory=list)
    best_hand: Optional[HandValue] = None

    @property
    def is_all_in(self) -> bool:
        return self.stack == 0 and not self.folded

    def reset_for_hand(self) -> None:
        self.bet = 0
        self.folded = False
        self.best_hand = None
        self.hole_cards.clear()

    def sit_out(self) -> None:
        self.reset_for_hand()
        self.folded = True

    def reset_for_round(self) -> None:
        self.bet = 0


@dataclass
class TableState:
    # Everything that changes while a hand is played; players live on the engine.
    stage: Stage = Stage.WAITING
    pot: int = 0
    current_bet: int = 0
    community: List[Card] = field(default_factory=list)
    deck: List[Card] = field(default_factory=list)
    current_player_index: Optional[int] = None
    acted: Set[str] = field(default_factory=set)
    message: str = "Waiting for players to join."
    winners: List[str] = field(default_factory=list)
    hand_number: int = 0
