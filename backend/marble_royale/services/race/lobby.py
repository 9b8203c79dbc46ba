"""Lobby roster and start-time scheduling.

A lobby is replaced wholesale whenever a race starts; it is never mutated
field-by-field across cycles.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import time

from marble_royale.errors import AlreadyJoined, DuplicateName, InvalidName


def now_ms() -> int:
    return int(time.time() * 1000)


def compute_next_start_time(now: int, interval_ms: int = 60_000) -> int:
    """Return the next interval boundary strictly after ``now`` (epoch ms).

    Boundaries are epoch-aligned, so the default interval lands on the next
    whole UTC minute with zero seconds and milliseconds.
    """
    if interval_ms <= 0:
        raise ValueError('interval_ms must be positive')
    return (now // interval_ms + 1) * interval_ms


def sort_names(names) -> List[str]:
    return sorted(names, key=lambda n: (n.casefold(), n))


@dataclass
class Lobby:
    start_time_ms: int
    # casefolded name -> display name
    members: Dict[str, str] = field(default_factory=dict)
    # visitor identity -> display name
    visitors: Dict[str, str] = field(default_factory=dict)

    def usernames(self) -> List[str]:
        return sort_names(self.members.values())


class LobbyManager:
    """Owns the current lobby and enforces join eligibility.

    Not thread-safe on its own; the controller serializes access.
    """

    def __init__(self, start_time_ms: int, max_name_length: int = 24):
        self.max_name_length = max_name_length
        self.lobby = Lobby(start_time_ms=start_time_ms)

    @property
    def start_time_ms(self) -> int:
        return self.lobby.start_time_ms

    def validate_name(self, name) -> str:
        username = str(name if name is not None else '').strip()
        if not username:
            raise InvalidName()
        if len(username) > self.max_name_length:
            raise InvalidName(f'Username must be {self.max_name_length} characters or fewer.')
        return username

    def has_joined(self, visitor_id: Optional[str]) -> bool:
        return bool(visitor_id) and visitor_id in self.lobby.visitors

    def try_join(self, name, visitor_id: Optional[str] = None) -> str:
        """Add ``name`` to the lobby and return the accepted display name.

        Raises AlreadyJoined, InvalidName or DuplicateName, in that order.
        """
        if self.has_joined(visitor_id):
            raise AlreadyJoined()
        username = self.validate_name(name)
        key = username.casefold()
        if key in self.lobby.members:
            raise DuplicateName(username)
        self.lobby.members[key] = username
        if visitor_id:
            self.lobby.visitors[visitor_id] = username
        return username

    def participants(self) -> List[str]:
        """Frozen participant order for the next race (join order)."""
        return list(self.lobby.members.values())

    def snapshot_for(self, visitor_id: Optional[str], now: int) -> dict:
        return {
            'startTimeMs': self.lobby.start_time_ms,
            'nowMs': now,
            'users': self.lobby.usernames(),
            'youJoined': self.has_joined(visitor_id),
        }

    def reset(self, start_time_ms: int) -> Lobby:
        self.lobby = Lobby(start_time_ms=start_time_ms)
        return self.lobby
