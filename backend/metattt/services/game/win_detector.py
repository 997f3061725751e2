"""Three-in-a-row detection shared by sub-boards and the meta-board."""

from enum import Enum
from typing import NamedTuple, Optional, Sequence, Tuple


class Piece(str, Enum):
    X = 'X'
    O = 'O'

    @property
    def opponent(self) -> 'Piece':
        return Piece.O if self is Piece.X else Piece.X


class Outcome(str, Enum):
    X = 'X'
    O = 'O'
    DRAWN = 'draw'

    @classmethod
    def won_by(cls, piece: Piece) -> 'Outcome':
        return cls(piece.value)


class MetaCell(Enum):
    """A meta-board cell: an undecided sub-board, a captured one, or a drawn one."""
    OPEN = 'open'
    X = 'X'
    O = 'O'
    SUB_DRAWN = 'sub_drawn'

    @classmethod
    def from_outcome(cls, outcome: Optional[Outcome]) -> 'MetaCell':
        if outcome is None:
            return cls.OPEN
        if outcome is Outcome.DRAWN:
            return cls.SUB_DRAWN
        return cls(outcome.value)

    @property
    def piece(self) -> Optional[Piece]:
        if self in (MetaCell.X, MetaCell.O):
            return Piece(self.value)
        return None


Line = Tuple[int, int, int]

# Scan order decides which line is reported when several complete at once
WINNING_LINES: Tuple[Line, ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


class Evaluation(NamedTuple):
    outcome: Optional[Outcome]
    line: Optional[Line]

    @property
    def decided(self) -> bool:
        return self.outcome is not None


UNDECIDED = Evaluation(None, None)


def _first_line(pieces: Sequence[Optional[Piece]]) -> Evaluation:
    for line in WINNING_LINES:
        a, b, c = (pieces[i] for i in line)
        if a is not None and a == b == c:
            return Evaluation(Outcome.won_by(a), line)
    return UNDECIDED


def evaluate(cells: Sequence[Optional[Piece]]) -> Evaluation:
    """Evaluate a sub-board whose cells are a Piece or None (empty).

    Returns the first completed line in scan order, ``Drawn`` when every
    cell is filled without a line, or an undecided evaluation otherwise.
    """
    if len(cells) != 9:
        raise ValueError(f"expected 9 cells, got {len(cells)}")
    found = _first_line(cells)
    if found.decided:
        return found
    if all(cell is not None for cell in cells):
        return Evaluation(Outcome.DRAWN, None)
    return UNDECIDED


def evaluate_meta(cells: Sequence[MetaCell]) -> Evaluation:
    """Evaluate the meta-board.

    Drawn sub-boards never take part in a line but do count as occupied,
    so a meta-board full of decided sub-boards without a line is a draw.
    """
    if len(cells) != 9:
        raise ValueError(f"expected 9 cells, got {len(cells)}")
    found = _first_line([cell.piece for cell in cells])
    if found.decided:
        return found
    if all(cell is not MetaCell.OPEN for cell in cells):
        return Evaluation(Outcome.DRAWN, None)
    return UNDECIDED
