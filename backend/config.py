import os


def _env_flag(name, default):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Lobby cadence: races start on the next whole interval boundary (seconds)
    LOBBY_INTERVAL_SEC = int(os.environ.get('LOBBY_INTERVAL_SEC', '60'))
    # Timer periods
    SCHEDULER_POLL_SEC = float(os.environ.get('SCHEDULER_POLL_SEC', '1'))
    LOBBY_REFRESH_SEC = float(os.environ.get('LOBBY_REFRESH_SEC', '5'))
    RACE_TICK_MS = int(os.environ.get('RACE_TICK_MS', '500'))
    # Simulation
    TRACK_DISTANCE = int(os.environ.get('TRACK_DISTANCE', '100'))
    ADVANCE_MIN = int(os.environ.get('ADVANCE_MIN', '2'))
    ADVANCE_MAX = int(os.environ.get('ADVANCE_MAX', '8'))
    # Lobby rules
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '24'))
    # Dev-only "start now" endpoint
    ENABLE_FORCE_START = _env_flag('ENABLE_FORCE_START', 'true')
    # Visitor identity cookie (issued by the frontend host)
    VISITOR_COOKIE = os.environ.get('VISITOR_COOKIE', 'visitorId')
    # Server-Sent-Events stream
    SSE_KEEPALIVE_SEC = float(os.environ.get('SSE_KEEPALIVE_SEC', '15'))
    SSE_QUEUE_SIZE = int(os.environ.get('SSE_QUEUE_SIZE', '256'))
