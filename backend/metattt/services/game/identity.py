"""Player identities: who is connected, who owns which username.

Trust is IP based. A username belongs to the IP address it was first
claimed from; records stored before IPs were tracked adopt the first IP
that claims them.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .profanity import Blocklist
from .win_detector import Piece

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Player:
    id: str
    ip_address: Optional[str]
    team: Piece
    score: int = 0
    username: Optional[str] = None
    emote_count: int = 0
    emote_window_start: float = 0.0

    @property
    def is_anonymous(self) -> bool:
        return self.username is None

    def describe(self) -> str:
        return f"{self.username or '<anonymous>'}@{self.ip_address}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'team': self.team.value,
            'score': self.score,
        }


class ClaimStatus(Enum):
    OK = 200
    INVALID = 400
    CONFLICT = 403
    REJECTED_PROFANE = 418

    @property
    def code(self) -> int:
        return self.value


@dataclass
class ClaimResult:
    status: ClaimStatus
    message: str
    player: Optional[Player] = None
    # True when the session should now point at a pre-existing record
    rebound: bool = False

    @property
    def ok(self) -> bool:
        return self.status is ClaimStatus.OK

    @property
    def code(self) -> int:
        return self.status.code

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'message': self.message}


class PlayerRegistry:
    """Known players, live sessions and username arbitration.

    ``store`` receives ``insert_player``/``update_player`` calls and is
    expected not to block; see ``BackgroundPlayerWriter``.
    """

    def __init__(self, store, blocklist: Optional[Blocklist] = None,
                 max_username_length: int = 64, support_email: str = ''):
        self.store = store
        self.blocklist = blocklist or Blocklist()
        self.max_username_length = max_username_length
        self.support_email = support_email
        self.players: List[Player] = []
        self.sessions: Dict[str, Player] = {}
        self._by_username: Dict[str, Player] = {}

    # ---- known players ----

    def restore(self, players: Iterable[Player]) -> None:
        count = 0
        for player in players:
            self._remember(player)
            count += 1
        logger.info(f"[registry] restored {count} players")

    def _remember(self, player: Player) -> None:
        self.players.append(player)
        self._by_username[player.username.lower()] = player

    def find_by_username(self, username: Optional[str]) -> Optional[Player]:
        if not username:
            return None
        return self._by_username.get(username.strip().lower())

    @staticmethod
    def _ip_may_control(owner: Player, ip_address: Optional[str]) -> bool:
        return owner.ip_address is None or owner.ip_address == ip_address

    def _adopt_ip(self, owner: Player, ip_address: Optional[str]) -> bool:
        if owner.ip_address is not None:
            return False
        logger.info(
            f"[auth] legacy account {owner.username} has no recorded IP, adopting {ip_address}"
        )
        owner.ip_address = ip_address
        return True

    # ---- sessions ----

    def bind_session(self, session_id: str, player: Player) -> None:
        for sid, bound in list(self.sessions.items()):
            if bound is player and sid != session_id:
                logger.info(f"[session] {sid} superseded by {session_id} for {player.describe()}")
                del self.sessions[sid]
        self.sessions[session_id] = player

    def unbind_session(self, session_id: str) -> Optional[Player]:
        return self.sessions.pop(session_id, None)

    def player_for_session(self, session_id: str) -> Optional[Player]:
        return self.sessions.get(session_id)

    def is_online(self, player: Player) -> bool:
        return any(bound is player for bound in self.sessions.values())

    def online_team_counts(self) -> Tuple[int, int]:
        online = {id(p): p for p in self.sessions.values()}.values()
        count_x = sum(1 for p in online if p.team is Piece.X)
        count_o = sum(1 for p in online if p.team is Piece.O)
        return count_x, count_o

    # ---- identity ----

    def resolve_connection(self, ip_address: Optional[str], claimed_username: Optional[str],
                           assign_team: Callable[[], Piece]) -> Player:
        """Map a new connection to a player.

        A claimed username is honoured only when its owner's IP matches
        (or is unset). Anything else gets a fresh anonymous player that
        is not persisted until it claims a username.
        """
        if claimed_username:
            owner = self.find_by_username(claimed_username)
            if owner is None:
                logger.info(f"[auth] {ip_address} presented unknown username {claimed_username!r}")
            elif self._ip_may_control(owner, ip_address):
                if self._adopt_ip(owner, ip_address):
                    self.store.update_player(owner)
                logger.info(f"[player] {owner.describe()} is returning")
                return owner
            else:
                logger.info(
                    f"[auth] {ip_address} presented {claimed_username!r} owned by another IP, treating as anonymous"
                )

        player = Player(id=str(uuid.uuid4()), ip_address=ip_address, team=assign_team())
        logger.info(f"[player] new connection from {ip_address} assigned {player.team.value}")
        return player

    def claim_username(self, player: Player, requested: Optional[str]) -> ClaimResult:
        requested = (requested or '').strip()
        logger.info(f"[auth] {player.describe()} requested username {requested!r}")

        if not requested or len(requested) > self.max_username_length:
            return ClaimResult(
                ClaimStatus.INVALID,
                f"Usernames must be between 1 and {self.max_username_length} characters.",
            )

        owner = self.find_by_username(requested)
        if owner is not None and owner is not player and not self._ip_may_control(owner, player.ip_address):
            logger.info(f"[auth] {requested!r} is owned by another IP, rejecting")
            return ClaimResult(
                ClaimStatus.CONFLICT,
                "This username was already registered. To reclaim it, log in with your "
                f"original IP address or contact support ({self.support_email})",
            )

        blocked = self.blocklist.match(requested)
        if blocked is not None:
            logger.info(f"[auth] {requested!r} contains a blocked word, rejecting")
            return ClaimResult(
                ClaimStatus.REJECTED_PROFANE,
                "There's something strange about your username... try a different one!",
            )

        if owner is None or owner is player:
            if player.is_anonymous:
                logger.info(f"[auth] registering new player {requested!r}")
                player.username = requested
                self._remember(player)
                self.store.insert_player(player)
            else:
                logger.info(f"[auth] renaming {player.username!r} to {requested!r}")
                del self._by_username[player.username.lower()]
                player.username = requested
                self._by_username[requested.lower()] = player
                self.store.update_player(player)
            return ClaimResult(ClaimStatus.OK, "Success!", player=player)

        logger.info(f"[auth] {player.describe()} taking control of existing account {owner.username!r} ({owner.id})")
        self._adopt_ip(owner, player.ip_address)
        self.store.update_player(owner)
        return ClaimResult(ClaimStatus.OK, "Success!", player=owner, rebound=True)

    def leaderboard(self) -> List[Dict[str, Any]]:
        ranked = sorted(self.players, key=lambda p: p.score, reverse=True)
        entries = []
        for player in ranked:
            entry = player.to_dict()
            entry['online'] = self.is_online(player)
            entries.append(entry)
        return entries
