"""Log producer that delivers events to the sink and buffers them on failure."""

import logging
import sys
import threading
from collections.abc import Mapping

import requests

from log_relay.buffer import RetryBuffer
from log_relay.config import ProducerConfig
from log_relay.models import Level, LogEvent, describe_error
from log_relay.transport import HttpTransport

logger = logging.getLogger(__name__)

# Console-equivalent output for events the sink did not accept
fallback_logger = logging.getLogger("log_relay.fallback")


def _as_mapping(data) -> dict:
    """Copy a mapping payload; any other value is wrapped under ``data``."""
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return dict(data)
    return {"data": data}


class LogProducer:
    """Store-and-forward logging client for one process or page context.

    Each call tries one delivery. Undelivered events go into a bounded
    retry buffer that is drained after the next successful delivery or on
    an explicit ``flush()``. Delivery errors never reach the caller.
    """

    def __init__(
        self,
        config: ProducerConfig | None = None,
        transport: HttpTransport | None = None,
        buffer: RetryBuffer | None = None,
    ):
        self._config = config or ProducerConfig()
        if transport is None:
            transport = HttpTransport(self._config.server_url, timeout=self._config.timeout)
        if buffer is None:
            buffer = RetryBuffer(self._config.max_queue_size)
        self._transport = transport
        self._buffer = buffer
        self._user_agent = f"{requests.utils.default_user_agent()} log-relay/{self._config.version}"
        self.enabled = self._config.enabled
        self._lock = threading.Lock()
        self._sent = 0

    @property
    def buffer(self) -> RetryBuffer:
        return self._buffer

    @property
    def sent(self) -> int:
        with self._lock:
            return self._sent

    def log(self, message: str, data=None, source: str | None = None) -> bool:
        return self.send_log(Level.INFO, message, data, source)

    def warn(self, message: str, data=None, source: str | None = None) -> bool:
        return self.send_log(Level.WARN, message, data, source)

    def debug(self, message: str, data=None, source: str | None = None) -> bool:
        return self.send_log(Level.DEBUG, message, data, source)

    def error(self, message: str, error=None, source: str | None = None,
              additional_data: dict | None = None) -> bool:
        """Submit at error level with ``error`` projected under the ``error`` key."""
        data = _as_mapping(additional_data)
        data["error"] = describe_error(error)
        return self.send_log(Level.ERROR, message, data, source)

    def bind(self, source: str, **context) -> "ContextLogger":
        return ContextLogger(self, source, context)

    def send_log(self, level: Level, message: str, data=None, source: str | None = None) -> bool:
        """Build and deliver one event. Returns True if the sink accepted it."""
        if not self.enabled:
            return False

        event = LogEvent.create(
            level,
            message,
            data,
            source=source or self._config.default_source,
            url=self._config.context_url,
            user_agent=self._user_agent,
            version=self._config.version,
        )

        if self._deliver(event):
            if len(self._buffer) > 0:
                self.flush()
            return True

        evicted = self._buffer.push(event)
        if evicted is not None:
            logger.debug("Retry buffer full, dropped event from %s", evicted.timestamp)
        self._emit_fallback(event)
        return False

    def flush(self) -> int:
        """Retry buffered events in order, stopping at the first failure.

        Returns the number of events delivered.
        """
        pending = self._buffer.drain()
        delivered = 0
        for index, event in enumerate(pending):
            if not self._deliver(event):
                self._buffer.requeue(pending[index:])
                logger.debug("Flush stopped after %d of %d events", delivered, len(pending))
                break
            delivered += 1
        return delivered

    def close(self):
        self._transport.close()

    def _deliver(self, event: LogEvent) -> bool:
        if not self._transport.send(event.to_dict()):
            return False
        with self._lock:
            self._sent += 1
        return True

    def _emit_fallback(self, event: LogEvent):
        level = logging.ERROR if event.level is Level.ERROR else logging.INFO
        fallback_logger.log(
            level, "[%s] [%s] %s %s",
            event.level.value, event.source, event.message, event.data,
        )


class ContextLogger:
    """Producer view with a default source and extra fields merged into every payload."""

    def __init__(self, producer: LogProducer, source: str, context: dict):
        self._producer = producer
        self._source = source
        self._context = dict(context)

    def _merge(self, data) -> dict:
        merged = _as_mapping(data)
        merged.update(self._context)
        return merged

    def log(self, message: str, data=None, source: str | None = None) -> bool:
        return self._producer.log(message, self._merge(data), source or self._source)

    def warn(self, message: str, data=None, source: str | None = None) -> bool:
        return self._producer.warn(message, self._merge(data), source or self._source)

    def debug(self, message: str, data=None, source: str | None = None) -> bool:
        return self._producer.debug(message, self._merge(data), source or self._source)

    def error(self, message: str, error=None, source: str | None = None,
              additional_data: dict | None = None) -> bool:
        return self._producer.error(
            message, error, source or self._source, self._merge(additional_data),
        )


def install_error_hooks(producer: LogProducer):
    """Report uncaught exceptions through ``producer``, then defer to the previous hooks."""
    previous_excepthook = sys.excepthook
    previous_thread_hook = threading.excepthook

    def excepthook(exc_type, exc_value, exc_tb):
        producer.error("Uncaught exception", exc_value, "uncaught-exception")
        previous_excepthook(exc_type, exc_value, exc_tb)

    def thread_excepthook(args):
        producer.error(
            "Unhandled thread exception", args.exc_value, "thread-exception",
            {"thread": args.thread.name if args.thread else None},
        )
        previous_thread_hook(args)

    sys.excepthook = excepthook
    threading.excepthook = thread_excepthook
