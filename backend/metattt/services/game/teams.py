import logging
from typing import Optional

from .win_detector import Piece

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when an operation is invoked without the state it depends on."""


def assign_team(count_x: int, count_o: int, next_to_move: Optional[Piece]) -> Piece:
    """Pick a team for a player joining without an identity.

    The smaller online side gets the player. On a tie the side due to move
    next does, which evens the teams out as play goes on.
    """
    if next_to_move is None:
        raise ConfigurationError("cannot balance teams without a live game")
    logger.info(f"[team-balance] X={count_x} O={count_o} next={next_to_move.value}")
    if count_x < count_o:
        return Piece.X
    if count_o < count_x:
        return Piece.O
    return next_to_move
