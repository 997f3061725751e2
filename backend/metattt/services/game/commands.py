"""Inbound commands, one per transport event."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Connect:
    session_id: str
    ip_address: Optional[str]
    claimed_username: Optional[str] = None


@dataclass(frozen=True)
class RequestUsername:
    session_id: str
    username: Optional[str]


@dataclass(frozen=True)
class Move:
    session_id: str
    game_id: Optional[int]
    board_index: int
    cell_index: int
    piece: str


@dataclass(frozen=True)
class Disconnect:
    session_id: str


@dataclass(frozen=True)
class Emote:
    session_id: str
    slug: str
