from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .win_detector import (
    Line,
    MetaCell,
    Outcome,
    Piece,
    evaluate,
    evaluate_meta,
)


BOARD_COUNT = 9
CELL_COUNT = 9


class MoveRejected(Exception):
    """A client move that breaks the rules. Logged and dropped, never surfaced."""


class GameOverError(MoveRejected):
    pass


class NotYourTurnError(MoveRejected):
    pass


class BoardClosedError(MoveRejected):
    pass


class CellOccupiedError(MoveRejected):
    pass


class InvalidCellError(MoveRejected):
    pass


@dataclass
class Board:
    index: int
    cells: List[Optional[Piece]] = field(default_factory=lambda: [None] * CELL_COUNT)
    outcome: Optional[Outcome] = None
    winning_line: Optional[Line] = None

    @property
    def finished(self) -> bool:
        return self.outcome is not None

    def place(self, cell_index: int, piece: Piece) -> None:
        if self.finished:
            raise BoardClosedError(f"board {self.index} already finished ({self.outcome.value})")
        if not isinstance(cell_index, int) or not 0 <= cell_index < CELL_COUNT:
            raise InvalidCellError(f"board {self.index} has no cell {cell_index!r}")
        if self.cells[cell_index] is not None:
            raise CellOccupiedError(
                f"board {self.index} cell {cell_index} already occupied ({self.cells[cell_index].value})"
            )
        self.cells[cell_index] = piece
        result = evaluate(self.cells)
        if result.decided:
            self.outcome = result.outcome
            self.winning_line = result.line

    def to_dict(self) -> Dict[str, Any]:
        return {
            'index': self.index,
            'cells': [cell.value if cell else None for cell in self.cells],
            'outcome': self.outcome.value if self.outcome else None,
            'winning_line': list(self.winning_line) if self.winning_line else None,
        }


@dataclass
class MoveResult:
    board_index: int
    cell_index: int
    piece: Piece
    board_outcome: Optional[Outcome] = None
    board_line: Optional[Line] = None
    match_outcome: Optional[Outcome] = None
    match_line: Optional[Line] = None

    @property
    def board_finished(self) -> bool:
        return self.board_outcome is not None

    @property
    def match_finished(self) -> bool:
        return self.match_outcome is not None


@dataclass
class Game:
    """The meta-board: nine sub-boards plus whose turn it is."""
    id: int
    boards: List[Board] = field(default_factory=lambda: [Board(index=i) for i in range(BOARD_COUNT)])
    next_to_move: Piece = Piece.X
    outcome: Optional[Outcome] = None
    winning_line: Optional[Line] = None
    winning_username: Optional[str] = None

    @property
    def status(self) -> str:
        return 'active' if self.outcome is None else 'decided'

    @property
    def is_active(self) -> bool:
        return self.outcome is None

    def meta_cells(self) -> List[MetaCell]:
        return [MetaCell.from_outcome(board.outcome) for board in self.boards]

    def apply_move(self, board_index: int, cell_index: int, piece: Piece) -> MoveResult:
        """Place ``piece`` and re-evaluate the touched sub-board and the meta-board.

        Checks run in order and the first failure raises: match finished,
        wrong turn, board missing or finished, cell missing or occupied.
        Nothing is mutated unless every check passes.
        """
        if not self.is_active:
            raise GameOverError(f"game {self.id} already decided ({self.outcome.value})")
        if piece is not self.next_to_move:
            raise NotYourTurnError(
                f"game {self.id} expects {self.next_to_move.value} but {piece.value} was played"
            )
        if not isinstance(board_index, int) or not 0 <= board_index < BOARD_COUNT:
            raise BoardClosedError(f"game {self.id} has no board {board_index!r}")

        board = self.boards[board_index]
        board.place(cell_index, piece)
        self.next_to_move = piece.opponent

        result = MoveResult(board_index=board_index, cell_index=cell_index, piece=piece)
        if board.finished:
            result.board_outcome = board.outcome
            result.board_line = board.winning_line
            meta = evaluate_meta(self.meta_cells())
            if meta.decided:
                self.outcome = meta.outcome
                self.winning_line = meta.line
                result.match_outcome = meta.outcome
                result.match_line = meta.line
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'status': self.status,
            'boards': [board.to_dict() for board in self.boards],
            'next_to_move': self.next_to_move.value,
            'outcome': self.outcome.value if self.outcome else None,
            'winning_line': list(self.winning_line) if self.winning_line else None,
            'winning_username': self.winning_username,
        }
