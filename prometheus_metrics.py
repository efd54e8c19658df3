"""
CMDR Kael - Prometheus Metrics
Provides Prometheus-compatible metrics for monitoring and observability.
"""

from prometheus_client import Counter, Histogram, Gauge, start_http_server
import logger as log


# --- Message Metrics ---

messages_processed = Counter(
    'kael_messages_processed_total',
    'Total number of inbound messages handled',
    ['kind']  # kind: chat, command
)

responses_sent = Counter(
    'kael_responses_sent_total',
    'Total number of replies delivered',
    ['success']
)

llm_request_duration = Histogram(
    'kael_llm_request_duration_seconds',
    'LLM request duration in seconds',
    ['status'],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)


# --- Storage Metrics ---

kv_operations = Counter(
    'kael_kv_operations_total',
    'Remote key-value operations',
    ['op', 'status']  # status: ok, miss, error
)

cache_lookups = Counter(
    'kael_cache_lookups_total',
    'TTL cache lookups',
    ['result']  # result: hit, miss
)

store_flushes = Counter(
    'kael_store_flushes_total',
    'File-backed store flushes to disk',
    ['store', 'status']
)

pending_writes = Gauge(
    'kael_store_pending_writes',
    'In-flight durable store writes',
    ['store']
)


# --- Tool Metrics ---

tool_calls = Counter(
    'kael_tool_calls_total',
    'Data tool invocations',
    ['tool', 'status']
)


# --- Liveness ---

heartbeat_writes = Counter(
    'kael_heartbeat_writes_total',
    'Heartbeat publications',
    ['status']
)

last_heartbeat = Gauge(
    'kael_last_heartbeat_timestamp',
    'Unix timestamp of the last successful heartbeat'
)


# --- Metrics Manager ---

class MetricsManager:
    """Centralized metrics management for CMDR Kael."""

    def __init__(self, metrics_port: int = 8000):
        self.metrics_port = metrics_port
        self._started = False

    def start_metrics_server(self):
        """Start the Prometheus metrics HTTP server."""
        if self._started or not self.metrics_port:
            return

        try:
            start_http_server(self.metrics_port)
            self._started = True
            log.info(f"Prometheus metrics server started on port {self.metrics_port}", "metrics")
        except Exception as e:
            log.error(f"Failed to start metrics server: {e}", "metrics")

    # --- Message Metrics ---

    def record_message(self, kind: str = 'chat'):
        messages_processed.labels(kind=kind).inc()

    def record_response(self, success: bool):
        responses_sent.labels(success=str(success)).inc()

    def record_llm_request(self, status: str, duration_seconds: float):
        llm_request_duration.labels(status=status).observe(duration_seconds)

    # --- Storage Metrics ---

    def record_kv(self, op: str, status: str):
        """Record a remote KV operation outcome."""
        kv_operations.labels(op=op, status=status).inc()

    def record_cache(self, hit: bool):
        cache_lookups.labels(result='hit' if hit else 'miss').inc()

    def record_flush(self, store: str, success: bool):
        store_flushes.labels(store=store, status='ok' if success else 'error').inc()

    def update_pending_writes(self, store: str, count: int):
        pending_writes.labels(store=store).set(count)

    # --- Tool Metrics ---

    def record_tool_call(self, tool: str, success: bool):
        tool_calls.labels(tool=tool, status='ok' if success else 'error').inc()

    # --- Liveness ---

    def record_heartbeat(self, success: bool, timestamp: float = None):
        heartbeat_writes.labels(status='ok' if success else 'error').inc()
        if success and timestamp is not None:
            last_heartbeat.set(timestamp)


# Global metrics manager instance
metrics_manager = MetricsManager()
