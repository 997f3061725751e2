import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Dict, List, Optional

from .board import Game, GameOverError, MoveRejected, MoveResult, NotYourTurnError
from .commands import Connect, Disconnect, Emote, Move, RequestUsername
from .identity import ClaimResult, ClaimStatus, Player, PlayerRegistry
from .scheduler import ScheduledTask
from .scoring import ScoreLedger
from .teams import assign_team
from .win_detector import Outcome, Piece

logger = logging.getLogger(__name__)


class UnknownSessionError(MoveRejected):
    pass


class UnauthenticatedMoveError(MoveRejected):
    pass


class StaleGameError(MoveRejected):
    pass


class WrongTeamError(MoveRejected):
    pass


def player_information(player: Player) -> Dict[str, Any]:
    return {'id': player.id, 'username': player.username, 'team': player.team.value}


class GameManager:
    """Owns the live match and routes every inbound command.

    ``broadcaster`` needs ``send(session_id, event, payload)`` and
    ``broadcast(event, payload)``. ``scheduler`` needs
    ``schedule(delay, callback)`` returning a handle with ``cancel()``.
    Commands are handled one at a time under a single lock.
    """

    def __init__(self, broadcaster, registry: PlayerRegistry, ledger: ScoreLedger, scheduler,
                 reset_delay: float = 5.0, history_length: int = 10,
                 max_emotes_per_window: int = 5, emote_window: float = 10.0,
                 clock: Callable[[], float] = time.monotonic):
        self.broadcaster = broadcaster
        self.registry = registry
        self.ledger = ledger
        self.scheduler = scheduler
        self.reset_delay = reset_delay
        self.max_emotes_per_window = max_emotes_per_window
        self.emote_window = emote_window
        self.clock = clock
        self.games = deque(maxlen=max(1, history_length))
        self.pending_reset: Optional[ScheduledTask] = None
        self._next_game_id = 0
        self._lock = threading.RLock()
        self._handlers = {
            Connect: self.handle_connect,
            RequestUsername: self.handle_request_username,
            Move: self.handle_move,
            Disconnect: self.handle_disconnect,
            Emote: self.handle_emote,
        }
        self._new_game()

    @property
    def game(self) -> Game:
        return self.games[-1]

    def dispatch(self, command):
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"unsupported command {type(command).__name__}")
        with self._lock:
            return handler(command)

    # ---- views ----

    def history(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [game.to_dict() for game in self.games]

    def player_list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self.registry.leaderboard()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self.game.to_dict()

    def _broadcast_player_list(self) -> None:
        self.broadcaster.broadcast('player_list', self.registry.leaderboard())

    def _broadcast_history(self) -> None:
        self.broadcaster.broadcast('history', [game.to_dict() for game in self.games])

    # ---- connection lifecycle ----

    def _assign_team(self) -> Piece:
        count_x, count_o = self.registry.online_team_counts()
        live = self.games[-1] if self.games else None
        return assign_team(count_x, count_o, live.next_to_move if live else None)

    def handle_connect(self, command: Connect) -> Player:
        player = self.registry.resolve_connection(command.ip_address, command.claimed_username, self._assign_team)
        self.registry.bind_session(command.session_id, player)
        logger.info(f"[connect] session={command.session_id} player={player.describe()} team={player.team.value}")

        self.broadcaster.send(command.session_id, 'player_information', player_information(player))
        self.broadcaster.send(command.session_id, 'history', [game.to_dict() for game in self.games])
        self._broadcast_player_list()
        return player

    def handle_disconnect(self, command: Disconnect) -> Optional[Player]:
        player = self.registry.unbind_session(command.session_id)
        if player is None:
            return None
        logger.info(f"[disconnect] session={command.session_id} player={player.describe()}")
        self._broadcast_player_list()
        return player

    def handle_request_username(self, command: RequestUsername) -> ClaimResult:
        player = self.registry.player_for_session(command.session_id)
        if player is None:
            logger.info(f"[auth] username request from unknown session {command.session_id}")
            return ClaimResult(ClaimStatus.INVALID, "Unknown session.")

        result = self.registry.claim_username(player, command.username)
        if not result.ok:
            return result
        if result.rebound:
            self.registry.bind_session(command.session_id, result.player)
            self.broadcaster.send(command.session_id, 'player_information', player_information(result.player))
        self._broadcast_player_list()
        return result

    def handle_emote(self, command: Emote) -> bool:
        player = self.registry.player_for_session(command.session_id)
        if player is None or not command.slug:
            return False

        now = self.clock()
        if now - player.emote_window_start >= self.emote_window:
            player.emote_window_start = now
            player.emote_count = 0
        if player.emote_count >= self.max_emotes_per_window:
            logger.debug(f"[emote-throttle] {player.describe()} over {self.max_emotes_per_window} per window")
            return False

        player.emote_count += 1
        self.broadcaster.broadcast('emote', {'player_id': player.id, 'slug': command.slug})
        return True

    # ---- moves ----

    def handle_move(self, command: Move) -> Optional[MoveResult]:
        try:
            return self._apply_move(command)
        except MoveRejected as exc:
            logger.info(f"[move-reject] session={command.session_id} {type(exc).__name__}: {exc}")
            return None
        except Exception:
            logger.exception(f"[move-error] session={command.session_id} move failed")
            return None

    def _apply_move(self, command: Move) -> MoveResult:
        player = self.registry.player_for_session(command.session_id)
        if player is None:
            raise UnknownSessionError(f"no player bound to session {command.session_id}")
        if player.is_anonymous:
            raise UnauthenticatedMoveError(f"{player.describe()} has not claimed a username")

        game = self.game
        if not game.is_active:
            raise GameOverError(f"game {game.id} already decided")
        if command.game_id is not None and command.game_id != game.id:
            raise StaleGameError(f"move for game {command.game_id} but game {game.id} is live")
        try:
            piece = Piece(command.piece)
        except ValueError:
            raise NotYourTurnError(f"unknown piece {command.piece!r}") from None
        if piece is not game.next_to_move:
            raise NotYourTurnError(f"{game.next_to_move.value} is due to move, got {piece.value}")
        if player.team is not piece:
            raise WrongTeamError(f"{player.describe()} plays {player.team.value}, not {piece.value}")

        result = game.apply_move(command.board_index, command.cell_index, piece)

        self.ledger.award_move(player)
        self.broadcaster.broadcast('board_update', {
            'game_id': game.id,
            'board_index': result.board_index,
            'cell_index': result.cell_index,
            'piece': piece.value,
            'username': player.username,
        })

        if result.board_finished:
            self.ledger.award_board(player, result.board_outcome)
            self._broadcast_match_end(game, result.board_index, result.board_outcome, result.board_line, player)

        if result.match_finished:
            self._finish_match(game, player, result)

        self._broadcast_player_list()
        return result

    def _broadcast_match_end(self, game: Game, board_index: Optional[int], outcome: Outcome,
                             line, player: Player) -> None:
        self.broadcaster.broadcast('match_end', {
            'game_id': game.id,
            'board_index': board_index,
            'outcome': outcome.value,
            'winning_line': list(line) if line else None,
            'winning_username': None if outcome is Outcome.DRAWN else player.username,
        })

    def _finish_match(self, game: Game, player: Player, result: MoveResult) -> None:
        if result.match_outcome is not Outcome.DRAWN:
            game.winning_username = player.username
            self.ledger.award_match(player, result.match_outcome)
        logger.info(
            f"[match-end] game={game.id} outcome={result.match_outcome.value} "
            f"line={result.match_line} winner={game.winning_username}"
        )
        self._broadcast_match_end(game, None, result.match_outcome, result.match_line, player)
        self.pending_reset = self.scheduler.schedule(self.reset_delay, self.reset_match)

    # ---- reset ----

    def _new_game(self) -> Game:
        game = Game(id=self._next_game_id)
        self._next_game_id += 1
        self.games.append(game)
        return game

    def reset_match(self) -> Game:
        """Install a fresh game and send everyone the updated history."""
        with self._lock:
            if self.pending_reset is not None:
                self.pending_reset.cancel()
                self.pending_reset = None
            game = self._new_game()
            logger.info(f"[reset] game={game.id} is live")
            self._broadcast_history()
            return game
