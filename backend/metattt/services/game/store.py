"""Durable player storage and the fire-and-forget writer used by gameplay."""

import logging
from dataclasses import replace
from typing import Callable, List

from sqlalchemy.exc import SQLAlchemyError

from metattt import db
from metattt.models import PlayerRecord
from .identity import Player

logger = logging.getLogger(__name__)


class StoreError(Exception):
    pass


class PlayerNotFoundError(StoreError):
    pass


class PlayerStore:
    """Synchronous access to the ``player`` table. Needs an app context."""

    def fetch_all_players(self) -> List[Player]:
        return [record.to_player() for record in PlayerRecord.query.all()]

    def insert_player(self, player: Player, online: bool = True) -> None:
        db.session.add(PlayerRecord.from_player(player, online=online))
        db.session.commit()

    def update_player(self, player: Player, online: bool = True) -> None:
        self._update(player.id, {
            'username': player.username,
            'ip_address': player.ip_address,
            'score': player.score,
            'team': player.team.value,
            'online': online,
        })

    def update_score(self, player_id: str, score: int) -> None:
        self._update(player_id, {'score': score})

    def _update(self, player_id: str, values: dict) -> None:
        affected = PlayerRecord.query.filter_by(id=player_id).update(values, synchronize_session=False)
        if affected == 0:
            db.session.rollback()
            raise PlayerNotFoundError(f"no player matched id {player_id}")
        db.session.commit()


def run_inline(fn: Callable[[], None]) -> None:
    fn()


class BackgroundPlayerWriter:
    """Queue store writes without blocking the caller.

    Each write gets a snapshot of the player taken at call time, so a
    later score can overtake an earlier one (last write wins). Failures
    are logged and dropped; memory stays authoritative.
    """

    def __init__(self, app, store: PlayerStore, spawn: Callable[[Callable[[], None]], object] = run_inline):
        self.app = app
        self.store = store
        self._spawn = spawn

    def _submit(self, description: str, fn: Callable, *args) -> None:
        def _job():
            with self.app.app_context():
                try:
                    fn(*args)
                except (StoreError, SQLAlchemyError) as exc:
                    db.session.rollback()
                    logger.warning(f"[store-error] {description} failed: {exc}")

        self._spawn(_job)

    def insert_player(self, player: Player) -> None:
        self._submit(f"insert {player.id}", self.store.insert_player, replace(player))

    def update_player(self, player: Player) -> None:
        self._submit(f"update {player.id}", self.store.update_player, replace(player))

    def update_score(self, player_id: str, score: int) -> None:
        self._submit(f"score {player_id}={score}", self.store.update_score, player_id, score)
