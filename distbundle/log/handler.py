import sys
import socket
import logging
import requests
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional
from distbundle.config import effective_settings as config


class LokiHandler(logging.Handler):
    """
    A logging handler that ships records to a Grafana Loki instance
    in batches using a background thread.

    Supervisor invocations are short-lived, so everything still buffered is
    pushed when the handler is closed (logging.shutdown does this at exit).
    """
    def __init__(
        self,
        url: str,
        org_id: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
        flush_interval: Optional[float] = None,
        batch_size: Optional[int] = None,
    ):
        """
        Initializes the Loki handler.

        :param url: The base URL of the Loki instance.
        :param org_id: The tenant ID for Loki (sent as 'X-Scope-OrgID').
        :param labels: Extra stream labels, e.g. {"service": "my-service"}.
        :param flush_interval: Seconds between background flushes.
        :param batch_size: Flush as soon as this many records are buffered.
        """
        super().__init__()
        self.url = f"{url.rstrip('/')}/loki/api/v1/push"
        self.org_id = org_id
        self.labels = dict(labels or {})
        self.flush_interval = flush_interval if flush_interval is not None else config.LOG_BUFFER_FLUSH_INTERVAL
        self.batch_size = batch_size if batch_size is not None else config.LOG_BUFFER_SIZE
        self.hostname = socket.gethostname() or "unknown-host"

        self.log_buffer: Deque[Dict[str, Any]] = deque()
        self.buffer_lock = threading.Lock()
        self.send_lock = threading.Lock()
        self.stop_event = threading.Event()
        self.flush_thread = threading.Thread(target=self._periodic_flush, daemon=True, name="LokiFlushThread")
        self.flush_thread.start()

    def _periodic_flush(self) -> None:
        """Flushes the buffer every `flush_interval` seconds until the handler is closed."""
        while not self.stop_event.wait(self.flush_interval):
            self.flush()

    def emit(self, record: logging.LogRecord) -> None:
        """
        Formats a log record and adds it to the buffer.
        Triggers a flush once the buffer reaches the batch size.

        :param record: The log record to be processed.
        """
        try:
            entry = {
                "stream": {
                    "job": "distbundle",
                    "level": record.levelname.lower(),
                    "hostname": self.hostname,
                    "logger": record.name,
                    **self.labels,
                },
                "values": [
                    [str(int(record.created * 1e9)), self.format(record)]
                ]
            }
            with self.buffer_lock:
                self.log_buffer.append(entry)
                should_flush = len(self.log_buffer) >= self.batch_size
            if should_flush:
                self.flush()
        except Exception:
            self.handleError(record)

    def _drain(self) -> List[Dict[str, Any]]:
        with self.buffer_lock:
            entries = list(self.log_buffer)
            self.log_buffer.clear()
        return entries

    def flush(self) -> None:
        """
        Sends everything buffered to Loki.
        The network call happens outside the buffer lock so emit() never blocks on it.
        """
        with self.send_lock:
            entries = self._drain()
            if not entries:
                return

            headers = {'Content-Type': 'application/json'}
            if self.org_id:
                headers['X-Scope-OrgID'] = self.org_id
            try:
                response = requests.post(self.url, json={"streams": entries}, headers=headers, timeout=5)
                # 204 No Content is the success status for Loki push
                if response.status_code != 204:
                    print(
                        f"ERROR: Loki returned non-204 status: {response.status_code} - {response.text}",
                        file=sys.stderr
                    )
            except requests.RequestException as e:
                print(f"CRITICAL: Failed to send {len(entries)} logs to Loki: {e}", file=sys.stderr)

    def close(self) -> None:
        """Stops the flush thread and pushes whatever is left in the buffer."""
        self.stop_event.set()
        if self.flush_thread.is_alive():
            self.flush_thread.join(timeout=self.flush_interval + 2)
        self.flush()
        super().close()
