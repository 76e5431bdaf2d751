"""WebSocket push transport for telemetry updates and alerts."""

import json
import logging

from PySide6.QtCore import QObject, Signal
from PySide6.QtNetwork import QHostAddress
from PySide6.QtWebSockets import QWebSocketServer

from netwatch.models import Alert, SampleResult

logger = logging.getLogger(__name__)


def encode_event(event: str, data: dict) -> str:
    """Encode one event as the JSON text frame sent to clients."""
    return json.dumps({"event": event, "data": data})


class TelemetryBroadcaster(QObject):
    """Pushes ``update`` and ``alert`` events to every connected websocket client.

    Implements the AlertSink protocol. ``emit_alert`` may be called from the
    sampling worker thread; the alert is handed to the main thread through a
    queued signal before any socket is touched.
    """

    client_count_changed = Signal(int)
    _alert_posted = Signal(object)

    def __init__(self, host: str = "127.0.0.1", port: int = 3000, parent=None):
        super().__init__(parent)

        self.host = host
        self.port = port
        self._clients = []
        self._last_update: str | None = None

        self.server = QWebSocketServer("NetWatch", QWebSocketServer.SslMode.NonSecureMode, self)
        self.server.newConnection.connect(self._on_new_connection)
        self._alert_posted.connect(self._broadcast_alert)

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def start(self) -> int:
        """Start listening.

        Returns:
            The bound port (useful when port 0 asked for any free port)

        Raises:
            OSError: If the address cannot be bound
        """
        if not self.server.listen(QHostAddress(self.host), self.port):
            raise OSError(f"Cannot listen on {self.host}:{self.port}: {self.server.errorString()}")

        self.port = self.server.serverPort()
        logger.info("Server running at ws://%s:%d", self.host, self.port)
        return self.port

    def close(self):
        """Disconnect all clients and stop listening."""
        for client in list(self._clients):
            client.close()
        self._clients.clear()
        self.server.close()
        logger.info("Server closed")

    def publish_update(self, result: SampleResult):
        """Broadcast the ``update`` event for a successful sample."""
        message = encode_event("update", result.to_dict())
        self._last_update = message
        self._send_text(message)

    def emit_alert(self, alert: Alert) -> None:
        self._alert_posted.emit(alert)

    def _broadcast_alert(self, alert):
        logger.debug("Broadcasting alert to %d clients: %s", len(self._clients), alert.message)
        self._send_text(encode_event("alert", alert.to_dict()))

    def _send_text(self, message: str):
        for client in list(self._clients):
            client.sendTextMessage(message)

    def _on_new_connection(self):
        while self.server.hasPendingConnections():
            client = self.server.nextPendingConnection()
            client.disconnected.connect(lambda c=client: self._on_disconnected(c))
            self.add_client(client)

    def add_client(self, client):
        """Register a connected client and bring it up to date with the last update."""
        self._clients.append(client)
        logger.debug("Client connected (total: %d)", len(self._clients))
        if self._last_update is not None:
            client.sendTextMessage(self._last_update)
        self.client_count_changed.emit(len(self._clients))

    def _on_disconnected(self, client):
        if client in self._clients:
            self._clients.remove(client)
            client.deleteLater()
            logger.debug("Client disconnected (remaining: %d)", len(self._clients))
            self.client_count_changed.emit(len(self._clients))
