"""Hold'em table engine and hand evaluator shared by the room host."""

from .cards import Card, RANKS, SUITS, build_deck, deal, parse_cards
from .errors import (
    AlreadyFolded,
    InvalidAction,
    InvalidAmount,
    MissingParameters,
    NotYourTurn,
    PlayerNotFound,
    RoundNotActive,
    TableError,
    TableFull,
)
from .evaluator import HandValue, compare_scores, evaluate
from .game import TableEngine
from .models import MAX_SEATS, ActionType, Player, Stage, TableConfig, TableState
from .rooms import RoomRegistry, Subscription, normalize_room_code

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "build_deck",
    "deal",
    "parse_cards",
    "AlreadyFolded",
    "InvalidAction",
    "InvalidAmount",
    "MissingParameters",
    "NotYourTurn",
    "PlayerNotFound",
    "RoundNotActive",
    "TableError",
    "TableFull",
    "HandValue",
    "compare_scores",
    "evaluate",
    "TableEngine",
    "MAX_SEATS",
    "ActionType",
    "Player",
    "Stage",
    "TableConfig",
    "TableState",
    "RoomRegistry",
    "Subscription",
    "normalize_room_code",
]
