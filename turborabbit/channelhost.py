"""A single broker channel together with its close and return notifications."""

from __future__ import annotations

import queue
import threading

from .message import ErrorMessage, ReturnMessage


class ChannelHost:
    """Wraps a broker channel opened on a connection."""

    def __init__(
        self,
        connection,
        channel_id: int,
        connection_id: int,
        ackable: bool,
    ) -> None:
        if connection.is_closed:
            raise RuntimeError("can't open a channel - connection is already closed")
        self.channel = connection.channel()
        self.channel_id = channel_id
        self.connection_id = connection_id
        self._ackable = ackable
        self.error_messages: queue.Queue[ErrorMessage] = queue.Queue(maxsize=1)
        self.return_messages: queue.Queue[ReturnMessage] = queue.Queue()
        self._raw_returns: queue.Queue = queue.Queue()
        self._close_reported = False
        self._report_lock = threading.Lock()
        self.channel.add_on_return_callback(self._on_return)

    def _on_return(self, _channel, method, properties, body) -> None:
        self._raw_returns.put((method, properties, body))

    def close_errors(self) -> queue.Queue:
        """Return the queue that receives an error once the channel closes."""
        with self._report_lock:
            if not self._close_reported and self.channel.is_closed:
                self._close_reported = True
                self.error_messages.put_nowait(ErrorMessage(reason="channel closed"))
        return self.error_messages

    def returns(self) -> queue.Queue:
        """Return the queue of messages the broker sent back as unroutable."""
        try:
            method, properties, body = self._raw_returns.get_nowait()
        except queue.Empty:
            pass
        else:
            self.return_messages.put(
                ReturnMessage.from_return(method, properties, body)
            )
        return self.return_messages

    def is_ackable(self) -> bool:
        """Whether this host holds an ackable (confirming) channel."""
        return self._ackable