from flask import Blueprint, Response, current_app, jsonify, stream_with_context

from marble_royale import get_controller
from marble_royale.services.broadcast import QueueObserver
from marble_royale.visitor import current_visitor_id

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Marble Royale race server'})


@main.route('/health')
def health():
    return jsonify({'status': 'healthy'})


@main.route('/events')
def events():
    """Server-Sent-Events stream: current snapshot first, then every broadcast."""
    controller = get_controller()
    keepalive = float(current_app.config.get('SSE_KEEPALIVE_SEC', 15))
    observer = QueueObserver(
        visitor_id=current_visitor_id(),
        maxsize=int(current_app.config.get('SSE_QUEUE_SIZE', 256)),
    )
    handle = controller.subscribe(observer)
    logger = current_app.logger
    logger.info(f"[sse-connect] handle={handle} visitor={observer.visitor_id}")

    def gen():
        try:
            while not observer.closed:
                frame = observer.get(timeout=keepalive)
                if frame is None:
                    yield ': keepalive\n\n'
                    continue
                yield frame
        finally:
            observer.close()
            controller.unsubscribe(handle)
            logger.info(f"[sse-disconnect] handle={handle}")

    return Response(
        stream_with_context(gen()),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )


