from typing import Optional

from .controller import RaceController
from .engine import RaceEngine


class RaceScheduler:
    """Time-driven actors around the controller.

    - poll loop: starts the race once the lobby's start time is reached
    - refresh loop: re-announces the lobby so countdowns never stall
    - tick worker: one per race, ticks until the race completes

    In TESTING mode the loops are not started (unless ENABLE_SCHEDULER_IN_TESTS)
    and tick workers run inline on the calling thread.
    """

    def __init__(self, app, socketio, controller: RaceController):
        self.app = app
        self.socketio = socketio
        self.controller = controller
        cfg = app.config
        self.poll_sec = float(cfg.get('SCHEDULER_POLL_SEC', 1))
        self.refresh_sec = float(cfg.get('LOBBY_REFRESH_SEC', 5))
        self.tick_sec = int(cfg.get('RACE_TICK_MS', 500)) / 1000.0
        self.inline = bool(cfg.get('TESTING'))
        self.started = False

    @property
    def logger(self):
        return self.app.logger

    def start(self) -> bool:
        cfg = self.app.config
        if cfg.get('TESTING') and not cfg.get('ENABLE_SCHEDULER_IN_TESTS'):
            return False
        if self.started:
            return False
        self.started = True
        self.socketio.start_background_task(self._loop, 'poll', self.poll_sec, self.poll)
        self.socketio.start_background_task(self._loop, 'refresh', self.refresh_sec, self.controller.refresh_lobby)
        self.logger.info(f"[scheduler-start] poll={self.poll_sec}s refresh={self.refresh_sec}s tick={self.tick_sec}s")
        return True

    def _loop(self, name: str, period: float, action) -> None:
        while True:
            self.socketio.sleep(period)
            try:
                action()
            except Exception:
                self.logger.exception(f"[timer-error] loop={name}")

    def poll(self) -> Optional[RaceEngine]:
        race = self.controller.start_if_due()
        if race is not None:
            self._launch(race.race_id)
        return race

    def force_start(self) -> Optional[RaceEngine]:
        """Start immediately, bypassing the scheduled time."""
        race = self.controller.force_start()
        if race is not None:
            self._launch(race.race_id)
        return race

    def _launch(self, race_id: int) -> None:
        if self.inline:
            self._run_ticks(race_id)
        else:
            self.socketio.start_background_task(self._run_ticks, race_id)

    def _run_ticks(self, race_id: int) -> None:
        while True:
            if self.tick_sec > 0:
                self.socketio.sleep(self.tick_sec)
            try:
                if self.controller.tick(race_id):
                    return
            except Exception:
                self.logger.exception(f"[tick-error] race={race_id}")
                self.controller.abandon_race(race_id)
                return

