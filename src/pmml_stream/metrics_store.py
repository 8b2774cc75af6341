"""
metrics_store.py - Processor Metrics

Keeps processor counters (processed, failed, per error type) and the
most recent outputs, and publishes them for monitoring.

Backends:
    - file: JSON file (demo)
    - redis: Redis keys (production)

Usage:
    from pmml_stream.metrics_store import MetricsStore

    store = MetricsStore()
    store.record_success({"predictedSpecies": "versicolor"})
    store.record_failure(FieldNotFoundError("sepalLength"))
    store.flush()
"""

import json
import os
from datetime import datetime
from collections import deque
import threading
import logging

import redis

from .config import METRICS_CONFIG, REDIS_CONFIG

logger = logging.getLogger(__name__)


class MetricsStore:
    """
    Processor counters with a file or Redis backend.

    Attributes:
        backend: "file" or "redis"
        metrics_file: JSON file path (file backend)
    """

    def __init__(self, backend=None, metrics_file=None, redis_client=None):
        """
        Args:
            backend: "file" or "redis" (None = config)
            metrics_file: override for METRICS_CONFIG["file_path"]
            redis_client: pre-built client (redis backend)
        """
        self.backend = backend or METRICS_CONFIG["backend"]
        self.metrics_file = metrics_file or METRICS_CONFIG["file_path"]
        self.lock = threading.Lock()

        self.processed = 0
        self.failed = 0
        self.errors_by_type = {}
        self.recent_outputs = deque(maxlen=METRICS_CONFIG["recent_limit"])
        self.last_error = None

        self.redis_client = redis_client
        if self.backend == "redis" and self.redis_client is None:
            self._init_redis()

    def _init_redis(self):
        """Initialize the Redis client."""
        try:
            self.redis_client = redis.Redis(
                host=REDIS_CONFIG["host"],
                port=REDIS_CONFIG["port"],
                db=REDIS_CONFIG["db"],
                decode_responses=True
            )
            self.redis_client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis not available: {e}. Using file backend.")
            self.redis_client = None
            self.backend = "file"

    def record_success(self, outbound_payload=None):
        """Count one emitted message."""
        with self.lock:
            self.processed += 1
            if outbound_payload is not None:
                self.recent_outputs.append(outbound_payload)

    def record_failure(self, error):
        """Count one dropped message."""
        with self.lock:
            self.failed += 1
            name = type(error).__name__
            self.errors_by_type[name] = self.errors_by_type.get(name, 0) + 1
            self.last_error = f"{name}: {error}"

    def snapshot(self):
        """
        Current metrics.

        Returns:
            dict: counters, error breakdown and recent outputs
        """
        with self.lock:
            total = self.processed + self.failed
            return {
                "processed": self.processed,
                "failed": self.failed,
                "error_rate": round(self.failed / total, 4) if total else 0.0,
                "errors_by_type": dict(self.errors_by_type),
                "last_error": self.last_error,
                "recent_outputs": list(self.recent_outputs),
                "timestamp": datetime.now().isoformat()
            }

    def flush(self, extra=None):
        """
        Publish the current snapshot to the backend.

        Args:
            extra: additional fields merged into the snapshot
        """
        metrics = self.snapshot()
        if extra:
            metrics.update(extra)

        if self.backend == "redis" and self.redis_client is not None:
            self._write_redis(metrics)
        else:
            self._write_file(metrics)
        return metrics

    def _write_redis(self, metrics):
        """Write to Redis."""
        try:
            pipe = self.redis_client.pipeline(transaction=False)
            pipe.set("pmml:current_metrics", json.dumps(metrics, default=str))
            pipe.set("pmml:processed", metrics["processed"])
            pipe.set("pmml:failed", metrics["failed"])
            pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Redis update error: {e}")

    def _write_file(self, metrics):
        """Write to file (atomic via temp file)."""
        try:
            directory = os.path.dirname(self.metrics_file)
            if directory:
                os.makedirs(directory, exist_ok=True)

            temp_file = self.metrics_file + ".tmp"
            with open(temp_file, 'w') as f:
                json.dump(metrics, f, indent=2, default=str)

            os.replace(temp_file, self.metrics_file)

        except OSError as e:
            logger.error(f"File update error: {e}")

    def load(self):
        """
        Read the last published snapshot.

        Returns:
            dict: published metrics ({} if none)
        """
        if self.backend == "redis" and self.redis_client is not None:
            data = self.redis_client.get("pmml:current_metrics")
            return json.loads(data) if data else {}

        if not os.path.exists(self.metrics_file):
            return {}
        with open(self.metrics_file, 'r') as f:
            return json.load(f)
