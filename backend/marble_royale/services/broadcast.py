"""Fan-out of race/lobby events to connected observers.

Observers are pure sinks: the hub never lets one failing sink stop delivery
to the others, and a sink that fails a write is dropped silently.
"""
import itertools
import json
import queue
import threading
from typing import Any, Callable, Dict, Optional, Union

LOBBY_UPDATE = 'lobby_update'
RACE_START = 'race_start'
RACE_UPDATE = 'race_update'
RACE_COMPLETE = 'race_complete'

EVENT_KINDS = (LOBBY_UPDATE, RACE_START, RACE_UPDATE, RACE_COMPLETE)

# Either the same payload for everyone, or visitor_id -> payload
Payload = Union[Dict[str, Any], Callable[[Optional[str]], Dict[str, Any]]]


class SinkClosed(Exception):
    """Raised by an observer whose underlying connection is gone."""


def format_sse(event: str, data: Dict[str, Any]) -> str:
    payload = json.dumps(data, separators=(',', ':'))
    return f"event: {event}\ndata: {payload}\n\n"


class Observer:
    """A connected listener. Subclasses implement ``send``."""

    def __init__(self, visitor_id: Optional[str] = None):
        self.visitor_id = visitor_id

    def send(self, event: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError


class SocketIOObserver(Observer):
    def __init__(self, socketio, sid: str, namespace: str = '/ws', visitor_id: Optional[str] = None):
        super().__init__(visitor_id)
        self.socketio = socketio
        self.sid = sid
        self.namespace = namespace

    def send(self, event, data):
        self.socketio.emit(event, data, to=self.sid, namespace=self.namespace)


class QueueObserver(Observer):
    """Buffers SSE frames for a streaming response to drain."""

    def __init__(self, visitor_id: Optional[str] = None, maxsize: int = 256):
        super().__init__(visitor_id)
        self.frames: 'queue.Queue[str]' = queue.Queue(maxsize=maxsize)
        self.closed = False

    def send(self, event, data):
        if self.closed:
            raise SinkClosed('observer closed')
        try:
            self.frames.put_nowait(format_sse(event, data))
        except queue.Full:
            # A reader this far behind is treated as disconnected
            self.closed = True
            raise SinkClosed('observer queue full')

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        try:
            return self.frames.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self.closed = True


class BroadcastHub:
    """Registry of observers with best-effort multicast."""

    def __init__(self, logger=None):
        self._lock = threading.Lock()
        self._observers: Dict[int, Observer] = {}
        self._handles = itertools.count(1)
        self.logger = logger

    def __len__(self):
        with self._lock:
            return len(self._observers)

    def subscribe(self, observer: Observer, snapshot: Optional[tuple] = None) -> int:
        """Register ``observer`` and send it ``snapshot`` (event, data) first.

        Returns a handle for ``unsubscribe``. If the snapshot cannot be
        delivered the observer is dropped straight away.
        """
        with self._lock:
            handle = next(self._handles)
            self._observers[handle] = observer
        if snapshot is not None:
            event, data = snapshot
            self._deliver(handle, observer, event, data)
        return handle

    def unsubscribe(self, handle: Optional[int]) -> bool:
        with self._lock:
            return self._observers.pop(handle, None) is not None

    def publish(self, event: str, payload: Payload) -> int:
        """Send ``event`` to every registered observer; return the delivery count."""
        with self._lock:
            targets = list(self._observers.items())
        delivered = 0
        for handle, observer in targets:
            data = payload(observer.visitor_id) if callable(payload) else payload
            if self._deliver(handle, observer, event, data):
                delivered += 1
        return delivered

    def _deliver(self, handle, observer, event, data) -> bool:
        try:
            observer.send(event, dict(data))
            return True
        except Exception as exc:
            self.unsubscribe(handle)
            if self.logger is not None:
                self.logger.info(f"[observer-drop] handle={handle} event={event} reason={exc!r}")
            return False
