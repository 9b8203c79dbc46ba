"""Race domain services: lobby, race engine, state machine and timers.

This package holds the lobby/race cycle itself and is imported by HTTP
routes and socket handlers, keeping transport concerns separated from the
race mechanics.
"""
from .controller import LobbyPhase, RaceController
from .engine import RaceEngine
from .lobby import Lobby, LobbyManager, compute_next_start_time
from .scheduler import RaceScheduler

__all__ = [
    'Lobby',
    'LobbyManager',
    'LobbyPhase',
    'RaceController',
    'RaceEngine',
    'RaceScheduler',
    'compute_next_start_time',
]
