"""Rejected table actions.

Every error is raised before the engine mutates anything, so callers can
report it and carry on with the table exactly as it was.
"""

from __future__ import annotations


class TableError(ValueError):
    code = "TABLE_ERROR"

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg


class InvalidAction(TableError):
    code = "INVALID_ACTION"


class RoundNotActive(TableError):
    code = "ROUND_NOT_ACTIVE"


class NotYourTurn(TableError):
    code = "NOT_YOUR_TURN"


class AlreadyFolded(TableError):
    code = "ALREADY_FOLDED"


class InvalidAmount(TableError):
    code = "INVALID_AMOUNT"


class PlayerNotFound(TableError):
    code = "PLAYER_NOT_FOUND"


class MissingParameters(TableError):
    code = "MISSING_PARAMETERS"


class TableFull(InvalidAction):
    code = "TABLE_FULL"
