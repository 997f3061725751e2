import pytest

from metattt.services.game.board import (
    Board,
    BoardClosedError,
    CellOccupiedError,
    Game,
    GameOverError,
    InvalidCellError,
    NotYourTurnError,
)
from metattt.services.game.win_detector import MetaCell, Outcome, Piece

X, O = Piece.X, Piece.O

# Alternating X/O placements on one board that end in a draw
DRAW_SEQUENCE = [(0, X), (1, O), (2, X), (4, O), (3, X), (5, O), (7, X), (6, O), (8, X)]


def test_new_game_is_empty_and_active():
    game = Game(id=7)
    assert game.status == 'active'
    assert game.next_to_move is X
    assert all(cell is None for board in game.boards for cell in board.cells)
    assert [board.index for board in game.boards] == list(range(9))


def test_turn_alternates_on_accepted_moves():
    game = Game(id=0)
    game.apply_move(0, 0, X)
    assert game.next_to_move is O
    game.apply_move(4, 4, O)
    assert game.next_to_move is X


def test_same_cell_twice_fails_and_leaves_state_unchanged():
    game = Game(id=0)
    game.apply_move(2, 5, X)
    game.apply_move(3, 0, O)
    before = game.to_dict()
    with pytest.raises(CellOccupiedError):
        game.apply_move(2, 5, X)
    assert game.to_dict() == before
    assert game.next_to_move is X


def test_wrong_turn_does_not_flip():
    game = Game(id=0)
    with pytest.raises(NotYourTurnError):
        game.apply_move(0, 0, O)
    assert game.next_to_move is X
    assert game.boards[0].cells[0] is None


@pytest.mark.parametrize('board_index', [-1, 9, None, '3'])
def test_board_index_out_of_range(board_index):
    game = Game(id=0)
    with pytest.raises(BoardClosedError):
        game.apply_move(board_index, 0, X)
    assert game.next_to_move is X


@pytest.mark.parametrize('cell_index', [-1, 9, None])
def test_cell_index_out_of_range(cell_index):
    game = Game(id=0)
    with pytest.raises(InvalidCellError):
        game.apply_move(0, cell_index, X)
    assert game.next_to_move is X
    assert game.boards[0].cells == [None] * 9


def test_sub_board_win_is_recorded_and_board_closes():
    game = Game(id=0)
    moves = [(0, 0, X), (1, 0, O), (0, 1, X), (1, 1, O)]
    for board, cell, piece in moves:
        game.apply_move(board, cell, piece)
    result = game.apply_move(0, 2, X)
    assert result.board_outcome is Outcome.X
    assert result.board_line == (0, 1, 2)
    assert not result.match_finished
    assert game.boards[0].finished

    with pytest.raises(BoardClosedError):
        game.apply_move(0, 5, O)


def test_drawn_sub_board_stays_drawn():
    board = Board(index=4)
    for cell, piece in DRAW_SEQUENCE:
        board.place(cell, piece)
    assert board.outcome is Outcome.DRAWN
    assert board.winning_line is None
    with pytest.raises(BoardClosedError):
        board.place(0, O)
    assert board.outcome is Outcome.DRAWN


def test_match_win_decides_game_and_blocks_moves():
    game = Game(id=0)
    for i in (0, 1):
        game.boards[i].outcome = Outcome.X
    # Board 2 is one X short of a row
    game.boards[2].cells[:2] = [X, X]
    result = game.apply_move(2, 2, X)
    assert result.match_outcome is Outcome.X
    assert result.match_line == (0, 1, 2)
    assert game.status == 'decided'
    assert game.winning_line == (0, 1, 2)

    with pytest.raises(GameOverError):
        game.apply_move(5, 5, O)


def test_row_of_drawn_sub_boards_does_not_end_match():
    game = Game(id=0)
    for i in (0, 1):
        game.boards[i].outcome = Outcome.DRAWN
    for cell, piece in DRAW_SEQUENCE[:-1]:
        game.boards[2].cells[cell] = piece
    result = game.apply_move(2, 8, X)
    assert result.board_outcome is Outcome.DRAWN
    assert result.match_outcome is None
    assert game.meta_cells()[:3] == [MetaCell.SUB_DRAWN] * 3
    assert game.is_active


def test_full_meta_board_without_line_is_drawn_match():
    game = Game(id=0)
    pattern = [Outcome.X, Outcome.O, Outcome.X,
               Outcome.X, Outcome.O, Outcome.O,
               Outcome.O, Outcome.X]
    for i, outcome in enumerate(pattern):
        game.boards[i].outcome = outcome
    for cell, piece in DRAW_SEQUENCE[:-1]:
        game.boards[8].cells[cell] = piece
    result = game.apply_move(8, 8, X)
    assert result.board_outcome is Outcome.DRAWN
    assert result.match_outcome is Outcome.DRAWN
    assert result.match_line is None
    assert game.status == 'decided'


def test_to_dict_shape():
    game = Game(id=3)
    game.apply_move(4, 4, X)
    data = game.to_dict()
    assert data['id'] == 3
    assert data['next_to_move'] == 'O'
    assert data['boards'][4]['cells'][4] == 'X'
    assert data['outcome'] is None
