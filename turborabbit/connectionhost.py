"""A single broker connection and the channel budget it may carry."""

from __future__ import annotations

import queue
import ssl
import threading

import pika

from .message import ErrorMessage


def _dial(
    uri: str,
    connection_name: str,
    heartbeat: int,
    connection_timeout: int,
    ssl_context: ssl.SSLContext | None = None,
):
    """Open a blocking connection to the broker."""
    if ssl_context is not None and not uri.startswith("amqps://"):
        uri = "amqps://" + uri
    params = pika.URLParameters(uri)
    params.heartbeat = heartbeat
    params.socket_timeout = connection_timeout
    params.client_properties = {"connection_name": connection_name}
    if ssl_context is not None:
        params.ssl_options = pika.SSLOptions(ssl_context, params.host)
    return pika.BlockingConnection(params)


class ConnectionHost:
    """Wraps a broker connection and tracks how many channels it hosts."""

    def __init__(
        self,
        connection,
        connection_id: int,
        max_channel_count: int,
        max_ack_channel_count: int,
    ) -> None:
        self.connection = connection
        self.connection_id = connection_id
        self.max_channel_count = max_channel_count
        self.max_ack_channel_count = max_ack_channel_count
        self._channel_count = 0
        self._ack_channel_count = 0
        self._chan_lock = threading.Lock()
        self._ack_chan_lock = threading.Lock()
        self._close_errors: queue.Queue[ErrorMessage] = queue.Queue(maxsize=1)
        self._close_reported = False
        self._report_lock = threading.Lock()

    def close_errors(self) -> queue.Queue:
        """Return the queue that receives an error once the connection closes."""
        with self._report_lock:
            if not self._close_reported and self.connection.is_closed:
                self._close_reported = True
                self._close_errors.put_nowait(
                    ErrorMessage(reason="connection closed")
                )
        return self._close_errors

    def is_closed(self) -> bool:
        """Whether the underlying connection is closed."""
        return bool(self.connection.is_closed)

    def can_add_channel(self) -> bool:
        """Whether this connection can host another channel."""
        with self._chan_lock:
            return self._channel_count < self.max_channel_count

    def add_channel(self) -> None:
        """Count one more channel on this connection."""
        with self._chan_lock:
            self._channel_count += 1

    def remove_channel(self) -> None:
        """Count one channel fewer on this connection."""
        with self._chan_lock:
            if self._channel_count == 0:
                raise RuntimeError(
                    "can't remove any more channels from this connection host"
                )
            self._channel_count -= 1

    def can_add_ack_channel(self) -> bool:
        """Whether this connection can host another ackable channel."""
        with self._ack_chan_lock:
            return self._ack_channel_count < self.max_ack_channel_count

    def add_ack_channel(self) -> None:
        """Count one more ackable channel on this connection."""
        with self._ack_chan_lock:
            self._ack_channel_count += 1

    def remove_ack_channel(self) -> None:
        """Count one ackable channel fewer on this connection."""
        with self._ack_chan_lock:
            if self._ack_channel_count == 0:
                raise RuntimeError(
                    "can't remove any more channels from this connection host"
                )
            self._ack_channel_count -= 1

    def close(self) -> None:
        """Close the underlying connection if it is still open."""
        if not self.connection.is_closed:
            self.connection.close()