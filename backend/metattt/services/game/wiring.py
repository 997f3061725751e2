import logging

from sqlalchemy.exc import SQLAlchemyError

from metattt import db
from .identity import PlayerRegistry
from .manager import GameManager
from .profanity import Blocklist, load_blocklist
from .scheduler import BackgroundScheduler
from .scoring import ScoreLedger
from .store import BackgroundPlayerWriter, PlayerStore, run_inline

logger = logging.getLogger(__name__)


def build_game_manager(app, socketio) -> GameManager:
    """Assemble the game manager from the app's configuration.

    In TESTING mode store writes run inline instead of on background tasks.
    """
    from metattt.socketio_events import SocketIOBroadcaster

    cfg = app.config
    store = PlayerStore()
    spawn = run_inline if cfg.get('TESTING') else socketio.start_background_task
    writer = BackgroundPlayerWriter(app, store, spawn)

    words_file = cfg.get('BLOCKED_WORDS_FILE')
    blocklist = Blocklist(load_blocklist(words_file)) if words_file else Blocklist()

    registry = PlayerRegistry(
        writer,
        blocklist,
        max_username_length=int(cfg.get('MAX_USERNAME_LENGTH', 64)),
        support_email=cfg.get('SUPPORT_EMAIL', ''),
    )
    if cfg.get('RESTORE_PLAYERS_ON_START', True):
        with app.app_context():
            try:
                registry.restore(store.fetch_all_players())
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.warning(f"[registry] player history not restored, starting empty: {exc}")

    return GameManager(
        SocketIOBroadcaster(socketio),
        registry,
        ScoreLedger(writer),
        BackgroundScheduler(socketio),
        reset_delay=float(cfg.get('RESET_DELAY_SEC', 5)),
        history_length=int(cfg.get('SEND_HISTORY_LENGTH', 10)),
        max_emotes_per_window=int(cfg.get('MAX_EMOTES_PER_WINDOW', 5)),
        emote_window=float(cfg.get('EMOTE_WINDOW_SEC', 10)),
    )
