import logging
from enum import IntEnum
from typing import Optional

from .identity import Player
from .win_detector import Outcome

logger = logging.getLogger(__name__)


class Award(IntEnum):
    MOVE = 5
    BOARD_WIN = 200
    MATCH_WIN = 1000


class ScoreLedger:
    """Apply point awards to players.

    Memory is updated immediately and is authoritative; the new total is
    handed to ``store.update_score`` without waiting for it.
    """

    def __init__(self, store):
        self.store = store

    def award(self, player: Player, award: Award) -> int:
        player.score += int(award)
        logger.debug(f"[score] {player.describe()} +{int(award)} ({award.name.lower()}) -> {player.score}")
        if not player.is_anonymous:
            self.store.update_score(player.id, player.score)
        return player.score

    def award_move(self, player: Player) -> int:
        return self.award(player, Award.MOVE)

    def award_board(self, player: Player, outcome: Optional[Outcome]) -> int:
        """+200 for a won sub-board; a draw or no outcome awards nothing."""
        if outcome is None or outcome is Outcome.DRAWN:
            return player.score
        return self.award(player, Award.BOARD_WIN)

    def award_match(self, player: Player, outcome: Optional[Outcome]) -> int:
        if outcome is None or outcome is Outcome.DRAWN:
            return player.score
        return self.award(player, Award.MATCH_WIN)
