"""
Update listener - client side of the change notification channel.

Holds the server's Server-Sent Events stream open and calls ``on_change``
for every "update" signal. When the transport fails, or the server closes
the stream, it waits a fixed delay and reconnects, indefinitely, until
stop() is called. Signals missed while disconnected are covered by one
extra ``on_change`` call after each reconnect.
"""

import threading
from typing import Callable, Optional

import httpx

from deku_tracker.utils.logger import get_logger

logger = get_logger(__name__)

UPDATE_SIGNAL = "update"


class UpdateListener:
    """Reconnecting SSE consumer for ``GET /api/updates``."""

    def __init__(
        self,
        base_url: str,
        on_change: Callable[[], None],
        reconnect_delay: float = 1.0,
        path: str = "/api/updates",
        read_timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.path = path
        self.on_change = on_change
        self.reconnect_delay = reconnect_delay
        self._timeout = httpx.Timeout(10.0, read=read_timeout)
        self._transport = transport
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.connections = 0
        self.failures = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def start(self) -> "UpdateListener":
        """Run the listener on a daemon thread."""
        self._thread = threading.Thread(target=self.run, name="deku-update-listener", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def run(self) -> None:
        """Listen until stop() is called."""
        with httpx.Client(base_url=self.base_url, timeout=self._timeout, transport=self._transport) as client:
            while not self._stop.is_set():
                try:
                    self._listen_once(client)
                except httpx.HTTPError as e:
                    self.failures += 1
                    logger.warning(
                        f"Update stream failed ({e.__class__.__name__}: {e}); "
                        f"reconnecting in {self.reconnect_delay}s"
                    )
                if self._stop.wait(self.reconnect_delay):
                    break
        logger.debug("Update listener stopped")

    def _listen_once(self, client: httpx.Client) -> None:
        with client.stream("GET", self.path, headers={"Accept": "text/event-stream"}) as response:
            response.raise_for_status()
            self.connections += 1
            logger.debug(f"Update stream connected (connection #{self.connections})")
            if self.connections > 1:
                self._notify()

            for line in response.iter_lines():
                if self._stop.is_set():
                    return
                if not line.startswith("data:"):
                    continue
                if line[len("data:"):].strip() == UPDATE_SIGNAL:
                    self._notify()

        logger.info("Update stream closed by server")

    def _notify(self) -> None:
        try:
            self.on_change()
        except Exception as e:
            logger.error(f"Update handler failed: {e}")
