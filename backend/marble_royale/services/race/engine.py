import random
from typing import Callable, Dict, List, Optional, Sequence, Tuple

# sampler(low, high) -> int in [low, high]
Sampler = Callable[[int, int], int]


def validate_settings(track_distance: int, advance_range: Tuple[int, int]) -> Tuple[int, int]:
    """Check race settings; return the advance range as a (low, high) tuple."""
    low, high = advance_range
    if low < 1 or high < low:
        raise ValueError(f'invalid advance range {tuple(advance_range)!r}')
    if track_distance < 1:
        raise ValueError('track_distance must be positive')
    return low, high


class RaceEngine:
    """One race: frozen participants, per-marble progress and finish order.

    Each tick advances every unfinished participant, in participant order, by
    ``sampler(*advance_range)`` clamped to ``track_distance``. Marbles that
    reach the threshold in the same tick finish in participant order.
    A race with no participants is complete as soon as it is created.
    Ticking a complete race is a no-op.
    """

    def __init__(
        self,
        participants: Sequence[str],
        start_time_ms: int,
        track_distance: int = 100,
        advance_range: Tuple[int, int] = (2, 8),
        sampler: Optional[Sampler] = None,
        race_id: Optional[int] = None,
    ):
        low, high = validate_settings(track_distance, advance_range)
        self.race_id = race_id
        self.participants: List[str] = list(participants)
        if len(set(self.participants)) != len(self.participants):
            raise ValueError('participants must be unique')
        self.start_time_ms = start_time_ms
        self.track_distance = track_distance
        self.advance_range = (low, high)
        self._sample = sampler or random.Random().randint
        self.positions: Dict[str, int] = {name: 0 for name in self.participants}
        self.finish_order: List[str] = []
        self._finished = set()
        self.ticks = 0

    @property
    def is_complete(self) -> bool:
        return len(self.finish_order) == len(self.participants)

    def tick(self) -> List[str]:
        """Advance one step; return the names that finished during it."""
        if self.is_complete:
            return []
        self.ticks += 1
        finished_now = []
        for name in self.participants:
            if name in self._finished:
                continue
            step = self._sample(*self.advance_range)
            self.positions[name] = min(self.track_distance, self.positions[name] + step)
            if self.positions[name] >= self.track_distance:
                self._finished.add(name)
                self.finish_order.append(name)
                finished_now.append(name)
        return finished_now

    def progress_snapshot(self) -> dict:
        return {
            'positions': dict(self.positions),
            'finishOrder': list(self.finish_order),
        }

    def results(self) -> List[dict]:
        return [{'name': name, 'place': index + 1} for index, name in enumerate(self.finish_order)]
