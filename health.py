"""
CMDR Kael - Health Endpoint
Small Flask app reporting heartbeat freshness for uptime monitors.
"""

import asyncio
import concurrent.futures
import os
import threading
import time
from typing import Optional

from flask import Flask, jsonify

from heartbeat import HeartbeatPublisher, evaluate_heartbeat, read_heartbeat
from storage import KVStore

READ_TIMEOUT = 5.0


def create_app(kv: KVStore, publisher: Optional[HeartbeatPublisher] = None,
               loop: Optional[asyncio.AbstractEventLoop] = None) -> Flask:
    """Build the health app.

    With a configured KV the heartbeat is read from the shared key on the
    bot's event loop; otherwise the publisher's last in-process payload is
    used.
    """
    app = Flask(__name__)

    def current_payload():
        if kv.configured and loop is not None and loop.is_running():
            future = asyncio.run_coroutine_threadsafe(read_heartbeat(kv), loop)
            try:
                return future.result(timeout=READ_TIMEOUT)
            except concurrent.futures.TimeoutError:
                future.cancel()
                raise
        return publisher.last_payload if publisher else None

    @app.route('/health')
    def health():
        try:
            payload = current_payload()
        except Exception as e:
            return jsonify({"ok": False, "error": str(e) or type(e).__name__}), 500
        body = evaluate_heartbeat(payload, int(time.time() * 1000))
        body["env"] = os.getenv("ENVIRONMENT", "development")
        return jsonify(body), 200 if body["ok"] else 503

    return app


def start_health_server(kv: KVStore, publisher: HeartbeatPublisher,
                        loop: asyncio.AbstractEventLoop, host='0.0.0.0', port=3000):
    """Serve the health app from a background thread."""
    app = create_app(kv, publisher, loop)

    # Disable Flask's default request logging
    import logging
    logging.getLogger('werkzeug').setLevel(logging.ERROR)

    thread = threading.Thread(
        target=lambda: app.run(host=host, port=port, debug=False, use_reloader=False),
        daemon=True
    )
    thread.start()
    return thread
