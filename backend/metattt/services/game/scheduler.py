import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a delayed callback. ``cancel`` before it fires to skip it."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.deadline = time.time() + delay
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def run(self) -> None:
        if self.cancelled or self.fired:
            return
        self.fired = True
        self.callback()


class BackgroundScheduler:
    """Run callbacks after a delay on a Socket.IO background task."""

    def __init__(self, socketio):
        self.socketio = socketio

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(delay, callback)
        logger.info(f"[timer-set] delay={delay}s deadline={task.deadline}")

        def _worker():
            self.socketio.sleep(max(0.0, task.deadline - time.time()))
            if task.cancelled:
                logger.info("[timer-abort] task cancelled before firing")
                return
            logger.info("[timer-fire] running scheduled task")
            try:
                task.run()
            except Exception:
                logger.exception("[timer-error] scheduled task failed")

        self.socketio.start_background_task(_worker)
        return task
