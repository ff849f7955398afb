"""
Structured logging for the Monitored Microservice.

Log events are rendered as compact JSON (rendered message plus the original
structured fields) and pushed to Grafana Loki. Every pushed stream carries two
static labels: the application identity and the host machine name.

Usage:
    from monitored.logging_setup import configure_logging, shutdown_logging

    logger = configure_logging(settings)
    logger.error("Error generating weather forecast", extra={"fields": {"fail": True}})
    shutdown_logging(logger)
"""

import json
import logging
import queue
import sys
import threading
import time
import zlib
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from monitored.config import Settings

PUSH_PATH = "/loki/api/v1/push"

# logging level -> compact JSON level name (INFO is implied and omitted)
LEVEL_NAMES = {
    logging.DEBUG: "Debug",
    logging.WARNING: "Warning",
    logging.ERROR: "Error",
    logging.CRITICAL: "Fatal",
}

_STOP = object()


class RenderedCompactJsonFormatter(logging.Formatter):
    """Format records as single-line compact JSON.

    Output keys:
    - @t: UTC timestamp (ISO 8601)
    - @m: rendered message
    - @i: event id, CRC32 of the message template
    - @l: level, omitted for INFO
    - @x: formatted exception, when present
    - SourceContext: logger name
    - every entry of ``record.fields`` (passed via ``extra={"fields": {...}}``)
    """

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "@t": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "@m": record.getMessage(),
            "@i": f"{zlib.crc32(str(record.msg).encode('utf-8')):08x}",
        }

        level = LEVEL_NAMES.get(record.levelno)
        if level is None and record.levelno != logging.INFO:
            level = record.levelname
        if level:
            event["@l"] = level

        if record.exc_info:
            event["@x"] = self.formatException(record.exc_info)

        event["SourceContext"] = record.name

        fields = getattr(record, "fields", None)
        if isinstance(fields, Mapping):
            for key, value in fields.items():
                # Reserved keys are never overwritten by user fields
                if key.startswith("@"):
                    key = "@" + key
                event[key] = value

        return json.dumps(event, separators=(",", ":"), default=str)


class LokiHandler(logging.Handler):
    """Push log lines to the Loki HTTP API from a background thread.

    ``emit`` only formats and enqueues, so callers never wait on the network.
    The worker sends a batch when ``batch_size`` lines are queued or every
    ``flush_interval`` seconds. Failed pushes are reported on stderr and the
    batch is dropped.
    """

    def __init__(
        self,
        url: str,
        labels: Mapping[str, str],
        batch_size: int = 100,
        flush_interval: float = 2.0,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__()
        self.push_url = url.rstrip("/") + PUSH_PATH
        self.labels = dict(labels)
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.timeout = timeout

        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._worker: Optional[threading.Thread] = None
        self._worker_lock = threading.Lock()
        self._closed = False
        self.setFormatter(RenderedCompactJsonFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            timestamp_ns = str(int(record.created * 1_000_000_000))
            self._ensure_worker()
            self._queue.put((timestamp_ns, line))
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        """Block until every queued line has been pushed."""
        worker = self._worker
        if worker is None or not worker.is_alive():
            return
        done = threading.Event()
        self._queue.put(done)
        done.wait(timeout=self.timeout + self.flush_interval)

    def close(self) -> None:
        with self._worker_lock:
            self._closed = True
            worker = self._worker
        if worker is not None and worker.is_alive():
            self._queue.put(_STOP)
            worker.join(timeout=self.timeout + self.flush_interval)
        # A worker still pushing after the join timeout keeps the client open
        if worker is None or not worker.is_alive():
            self._client.close()
        super().close()

    def build_payload(self, entries: list[tuple[str, str]]) -> dict[str, Any]:
        """Build the Loki push body for a batch of (timestamp_ns, line) pairs."""
        return {
            "streams": [
                {
                    "stream": self.labels,
                    "values": [[timestamp, line] for timestamp, line in entries],
                }
            ]
        }

    def _ensure_worker(self) -> None:
        with self._worker_lock:
            if self._closed:
                raise RuntimeError("LokiHandler is closed")
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name="loki-push", daemon=True
                )
                self._worker.start()

    def _run(self) -> None:
        batch: list[tuple[str, str]] = []
        deadline = time.monotonic() + self.flush_interval

        while True:
            try:
                item = self._queue.get(timeout=max(0.0, deadline - time.monotonic()))
            except queue.Empty:
                item = None

            if item is None:
                self._push(batch)
                batch = []
                deadline = time.monotonic() + self.flush_interval
            elif item is _STOP:
                self._push(batch)
                return
            elif isinstance(item, threading.Event):
                self._push(batch)
                batch = []
                item.set()
            else:
                batch.append(item)
                if len(batch) >= self.batch_size:
                    self._push(batch)
                    batch = []
                    deadline = time.monotonic() + self.flush_interval

    def _push(self, batch: list[tuple[str, str]]) -> None:
        if not batch:
            return
        try:
            response = self._client.post(self.push_url, json=self.build_payload(batch))
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            sys.stderr.write(
                f"Loki push to {self.push_url} failed, dropped {len(batch)} events: {e}\n"
            )


def configure_logging(
    settings: Settings, transport: Optional[httpx.BaseTransport] = None
) -> logging.Logger:
    """Build the service logger.

    The logger is constructed directly rather than fetched from the global
    logger registry, so it has no parent and must be passed to whoever logs.

    Args:
        settings: Service settings (level, Loki endpoint, labels)
        transport: Optional httpx transport for the Loki client

    Returns:
        Configured logger
    """
    logger = logging.Logger(settings.service_name, level=settings.log_level.upper())
    formatter = RenderedCompactJsonFormatter()

    if settings.loki_enabled:
        loki_handler = LokiHandler(
            url=settings.loki_url,
            labels={"app": settings.app_label, "machine": settings.machine_name},
            batch_size=settings.loki_batch_size,
            flush_interval=settings.loki_flush_interval,
            timeout=settings.loki_timeout,
            transport=transport,
        )
        logger.addHandler(loki_handler)

    if settings.log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


def shutdown_logging(logger: logging.Logger) -> None:
    """Flush and close every handler attached to ``logger``."""
    for handler in list(logger.handlers):
        handler.flush()
        handler.close()
        logger.removeHandler(handler)
