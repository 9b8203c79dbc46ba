"""Lobby/race state machine.

Exactly one of OPEN (lobby accepting joins) or RUNNING (race ticking) holds
at any time. Every mutation happens under one re-entrant lock, and every
transition is announced to the broadcast hub before the lock is released,
so observers see events in the same order the state changed.
"""
import logging
import threading
from enum import Enum
from typing import Callable, Optional

from marble_royale.errors import InvalidStateTransition, RaceInProgress
from marble_royale.services.broadcast import (
    LOBBY_UPDATE,
    RACE_COMPLETE,
    RACE_START,
    RACE_UPDATE,
    BroadcastHub,
    Observer,
)
from .engine import RaceEngine, Sampler, validate_settings
from .lobby import LobbyManager, compute_next_start_time, now_ms


class LobbyPhase(Enum):
    OPEN = 'open'
    RUNNING = 'running'


class RaceController:
    def __init__(
        self,
        hub: Optional[BroadcastHub] = None,
        clock: Callable[[], int] = now_ms,
        sampler: Optional[Sampler] = None,
        interval_ms: int = 60_000,
        track_distance: int = 100,
        advance_range=(2, 8),
        max_name_length: int = 24,
        logger=None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.hub = hub if hub is not None else BroadcastHub(logger=self.logger)
        self.clock = clock
        self.sampler = sampler
        self.interval_ms = interval_ms
        self.track_distance = track_distance
        # Bad race settings fail here rather than at the first start time
        self.advance_range = validate_settings(track_distance, advance_range)
        self._lock = threading.RLock()
        self.phase = LobbyPhase.OPEN
        self.race: Optional[RaceEngine] = None
        self.race_id = 0
        self.lobby = LobbyManager(
            compute_next_start_time(self.clock(), self.interval_ms),
            max_name_length=max_name_length,
        )

    @classmethod
    def from_config(cls, config, hub=None, logger=None, **kwargs):
        return cls(
            hub=hub,
            interval_ms=int(config.get('LOBBY_INTERVAL_SEC', 60)) * 1000,
            track_distance=int(config.get('TRACK_DISTANCE', 100)),
            advance_range=(int(config.get('ADVANCE_MIN', 2)), int(config.get('ADVANCE_MAX', 8))),
            max_name_length=int(config.get('MAX_NAME_LENGTH', 24)),
            logger=logger,
            **kwargs,
        )

    @property
    def is_running(self) -> bool:
        return self.phase is LobbyPhase.RUNNING

    # ---- snapshots ----

    def lobby_snapshot(self, visitor_id: Optional[str] = None) -> dict:
        with self._lock:
            return self.lobby.snapshot_for(visitor_id, self.clock())

    def race_snapshot(self) -> dict:
        with self._lock:
            if self.race is None:
                raise InvalidStateTransition('No race is running')
            snapshot = self.race.progress_snapshot()
            snapshot['startTimeMs'] = self.race.start_time_ms
            snapshot['nowMs'] = self.clock()
            return snapshot

    def snapshot_event(self, visitor_id: Optional[str] = None) -> tuple:
        """Point-in-time (event, data) for one observer."""
        with self._lock:
            if self.is_running:
                return RACE_UPDATE, self.race_snapshot()
            return LOBBY_UPDATE, self.lobby_snapshot(visitor_id)

    def state(self) -> dict:
        with self._lock:
            race = None
            if self.race is not None:
                race = {
                    'raceId': self.race_id,
                    'startTimeMs': self.race.start_time_ms,
                    'participants': list(self.race.participants),
                    'finishOrder': list(self.race.finish_order),
                }
            return {
                'phase': self.phase.value,
                'raceInProgress': self.is_running,
                'lobbyStartTimeMs': self.lobby.start_time_ms,
                'lobbyUsers': self.lobby.participants(),
                'currentRace': race,
            }

    # ---- observers ----

    def subscribe(self, observer: Observer) -> int:
        with self._lock:
            return self.hub.subscribe(observer, self.snapshot_event(observer.visitor_id))

    def unsubscribe(self, handle: Optional[int]) -> bool:
        return self.hub.unsubscribe(handle)

    # ---- lobby ----

    def _announce_lobby(self) -> None:
        self.hub.publish(LOBBY_UPDATE, self.lobby_snapshot)

    def try_join(self, name, visitor_id: Optional[str] = None) -> str:
        with self._lock:
            if self.is_running:
                raise RaceInProgress()
            username = self.lobby.try_join(name, visitor_id)
            self.logger.info(f"[join] name={username} lobby_size={len(self.lobby.lobby.members)}")
            self._announce_lobby()
            return username

    def refresh_lobby(self) -> bool:
        """Re-announce the lobby so countdowns stay fresh; suppressed while running."""
        with self._lock:
            if self.is_running:
                return False
            self._announce_lobby()
            return True

    # ---- transitions ----

    def start_if_due(self) -> Optional[RaceEngine]:
        """Start the race when the scheduled time has been reached."""
        with self._lock:
            if self.is_running or self.clock() < self.lobby.start_time_ms:
                return None
            return self._start_race()

    def force_start(self) -> Optional[RaceEngine]:
        with self._lock:
            if self.is_running:
                raise RaceInProgress('Race already in progress.')
            self.logger.info(f"[force-start] scheduled={self.lobby.start_time_ms}")
            return self._start_race()

    def _start_race(self) -> Optional[RaceEngine]:
        """OPEN -> RUNNING. Returns the engine to tick, or None if it finished instantly."""
        participants = self.lobby.participants()
        started_at = self.clock()
        race = RaceEngine(
            participants,
            started_at,
            track_distance=self.track_distance,
            advance_range=self.advance_range,
            sampler=self.sampler,
            race_id=self.race_id + 1,
        )
        # The roster is frozen into the race; the old lobby is discarded
        self.lobby.reset(compute_next_start_time(started_at, self.interval_ms))
        self.race_id = race.race_id
        self.race = race
        self.phase = LobbyPhase.RUNNING
        self.logger.info(f"[race-start] race={self.race_id} participants={len(participants)}")
        self.hub.publish(RACE_START, {
            'raceId': self.race_id,
            'participants': list(participants),
            'startTimeMs': started_at,
            'nowMs': started_at,
        })
        if self.race.is_complete:
            self._complete_race()
            return None
        return self.race

    def tick(self, race_id: Optional[int] = None) -> bool:
        """Advance the running race one step. Returns True once it completed."""
        with self._lock:
            if not self.is_running or self.race is None:
                raise InvalidStateTransition('Cannot tick: no race is running')
            if race_id is not None and race_id != self.race_id:
                raise InvalidStateTransition(f'Cannot tick race {race_id}: race {self.race_id} is current')
            self.race.tick()
            update = self.race.progress_snapshot()
            update['nowMs'] = self.clock()
            self.hub.publish(RACE_UPDATE, update)
            if self.race.is_complete:
                self._complete_race()
                return True
            return False

    def _complete_race(self) -> None:
        """RUNNING -> OPEN: announce results, then open the next lobby."""
        race = self.race
        self.hub.publish(RACE_COMPLETE, {
            'raceId': self.race_id,
            'finishOrder': list(race.finish_order),
            'results': race.results(),
            'nowMs': self.clock(),
        })
        self.logger.info(f"[race-complete] race={self.race_id} ticks={race.ticks} winner={race.finish_order[0] if race.finish_order else None}")
        self._open_next_lobby()

    def _open_next_lobby(self) -> None:
        next_start = compute_next_start_time(self.clock(), self.interval_ms)
        self.lobby.reset(next_start)
        self.race = None
        self.phase = LobbyPhase.OPEN
        self._announce_lobby()

    def abandon_race(self, race_id: int) -> bool:
        """Drop a race whose ticking failed and reopen the lobby."""
        with self._lock:
            if not self.is_running or race_id != self.race_id:
                return False
            self.logger.warning(f"[race-abandon] race={race_id}")
            self._open_next_lobby()
            return True
