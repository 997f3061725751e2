import pytest

from metattt.services.game.teams import ConfigurationError, assign_team
from metattt.services.game.win_detector import Piece


def test_smaller_side_gets_the_player():
    assert assign_team(2, 3, Piece.O) is Piece.X
    assert assign_team(3, 2, Piece.X) is Piece.O


def test_tie_goes_to_side_due_to_move():
    assert assign_team(2, 2, Piece.O) is Piece.O
    assert assign_team(0, 0, Piece.X) is Piece.X


def test_no_live_game_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        assign_team(1, 1, None)
