from flask import Flask, current_app
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from datetime import datetime, timezone
from config import Config

allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

EXTENSION_KEY = 'marble_royale'


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Race state lives for the lifetime of the process; nothing is persisted
    from marble_royale.services.broadcast import BroadcastHub
    from marble_royale.services.race import RaceController, RaceScheduler
    hub = BroadcastHub(logger=flask_app.logger)
    controller = RaceController.from_config(flask_app.config, hub=hub, logger=flask_app.logger)
    scheduler = RaceScheduler(flask_app, socketio, controller)
    flask_app.extensions[EXTENSION_KEY] = {
        'controller': controller,
        'scheduler': scheduler,
    }

    from marble_royale.main import main
    flask_app.register_blueprint(main)

    from marble_royale.api.race import race
    flask_app.register_blueprint(race, url_prefix='/api')

    from marble_royale.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('next-start')
    def next_start_command():
        """Print the start time of the lobby that would open now."""
        from marble_royale.services.race import compute_next_start_time
        interval_ms = int(flask_app.config['LOBBY_INTERVAL_SEC']) * 1000
        now = datetime.now(timezone.utc)
        start_ms = compute_next_start_time(int(now.timestamp() * 1000), interval_ms)
        start = datetime.fromtimestamp(start_ms / 1000, tz=timezone.utc)
        click.echo(f"now={now.isoformat(timespec='seconds')} next_start={start.isoformat()} ({start_ms})")

    flask_app.cli.add_command(next_start_command)

    scheduler.start()
    flask_app.logger.info(f"[lobby-open] start={controller.lobby.start_time_ms}")

    return flask_app


def get_controller(app=None):
    app = app or current_app
    return app.extensions[EXTENSION_KEY]['controller']


def get_scheduler(app=None):
    app = app or current_app
    return app.extensions[EXTENSION_KEY]['scheduler']
