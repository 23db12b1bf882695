"""A pool of broker channels, plain and ackable, that heals dead members."""

from __future__ import annotations

import contextlib
import queue
import threading
import time

from .channelhost import ChannelHost
from .configs import PoolConfig
from .connectionpool import ConnectionPool

_CONNECTION_ATTEMPTS = 4


class _ConnectionsFull(Exception):
    """Every connection tried in a row already carries its full channel budget."""


class ChannelPool:
    """Holds plain and ackable channels handed out in round-robin order."""

    def __init__(
        self,
        config: PoolConfig,
        connection_pool: ConnectionPool | None = None,
        initialize_now: bool = False,
    ) -> None:
        chan_config = config.channel_pool_config
        if chan_config is None:
            raise ValueError("channelpool needs a channel pool config")
        if chan_config.max_channel_count == 0 or chan_config.max_ack_channel_count == 0:
            raise ValueError(
                "channelpool maxchannelcount or maxackchannelcount can't be 0"
            )

        if connection_pool is None:
            connection_pool = ConnectionPool(config, initialize_now)

        self.config = config
        self.initialized = False
        self._connection_pool = connection_pool
        self._errors: queue.Queue[BaseException] = queue.Queue(
            maxsize=chan_config.error_buffer
        )
        self._max_channels = chan_config.max_channel_count
        self._max_ack_channels = chan_config.max_ack_channel_count
        self._channels: queue.Queue[ChannelHost] = queue.Queue()
        self._ack_channels: queue.Queue[ChannelHost] = queue.Queue()
        self._channel_id = 0
        self._pool_lock = threading.Lock()
        self._flag_lock = threading.Lock()
        self._shutting_down = threading.Event()
        self._flagged: dict[int, bool] = {}
        self._sleep_on_error = chan_config.sleep_on_error_interval / 1000.0
        self._global_qos_count = chan_config.global_qos_count
        self._ack_no_wait = chan_config.ack_no_wait

        if initialize_now:
            self.initialize()

    def initialize(self) -> None:
        """Open every channel of the pool, initializing the connections first."""
        with self._pool_lock:
            if not self._connection_pool.initialized:
                self._connection_pool.initialize()
            if self.initialized:
                return
            try:
                channel_id = 0
                for _ in range(self._max_channels):
                    self._channels.put(self._create_channel_host(channel_id, False))
                    channel_id += 1
                for _ in range(self._max_ack_channels):
                    self._ack_channels.put(self._create_channel_host(channel_id, True))
                    channel_id += 1
            except Exception as err:
                self._channel_id = 0
                self._channels = queue.Queue()
                self._ack_channels = queue.Queue()
                raise RuntimeError("errors occurred creating channels") from err
            self._channel_id = channel_id
            self.initialized = True

    def _create_channel_host(self, channel_id: int, ackable: bool) -> ChannelHost:
        for _ in range(_CONNECTION_ATTEMPTS):
            conn_host = self._connection_pool.get_connection()
            has_room = (
                conn_host.can_add_ack_channel() if ackable else conn_host.can_add_channel()
            )
            if not has_room:
                self._connection_pool.return_connection(conn_host)
                continue

            try:
                channel_host = ChannelHost(
                    conn_host.connection, channel_id, conn_host.connection_id, ackable
                )
            except Exception:
                self._connection_pool.flag_connection(conn_host.connection_id)
                self._connection_pool.return_connection(conn_host)
                raise

            if ackable:
                conn_host.add_ack_channel()
            else:
                conn_host.add_channel()

            if self._global_qos_count > 0:
                try:
                    channel_host.channel.basic_qos(
                        prefetch_count=self._global_qos_count, global_qos=True
                    )
                except Exception as err:
                    self._handle_error(err)

            if ackable:
                try:
                    channel_host.channel.confirm_delivery()
                except Exception as err:
                    self._handle_error(err)

            self._connection_pool.return_connection(conn_host)
            return channel_host

        raise _ConnectionsFull()

    def _handle_error(self, err: BaseException) -> None:
        threading.Thread(target=self._errors.put, args=(err,), daemon=True).start()

    def errors(self) -> queue.Queue:
        """Return the queue of errors raised while managing channels."""
        return self._errors

    def _check_available(self) -> None:
        if self._shutting_down.is_set():
            raise RuntimeError("can't get channel - channel pool has been shutdown")
        if not self.initialized:
            time.sleep(self._sleep_on_error)
            raise RuntimeError("can't get channel - channel pool has not been initialized")

    @staticmethod
    def _is_healthy(channel_host: ChannelHost) -> bool:
        try:
            channel_host.close_errors().get_nowait()
        except queue.Empty:
            return True
        return False

    def get_channel(self) -> ChannelHost:
        """Take the next plain channel, replacing it first if it is dead or flagged.

        Blocks while the pool is empty. The caller must hand it back with
        return_channel.
        """
        self._check_available()

        while True:
            channel_host = self._channels.get()
            healthy = self._is_healthy(channel_host)
            if healthy and not self.is_channel_flagged(channel_host.channel_id):
                return channel_host

            replacement_id = channel_host.channel_id
            replacement = None
            while replacement is None:
                if self._sleep_on_error > 0:
                    time.sleep(self._sleep_on_error)
                try:
                    replacement = self._create_channel_host(replacement_id, False)
                except _ConnectionsFull:
                    # Keep the pool size; the bad channel gets another try later.
                    self.return_channel(channel_host, True)
                    break
                except Exception as err:
                    self._handle_error(err)
            if replacement is None:
                continue

            self.unflag_channel(replacement_id)
            return replacement

    def return_channel(self, chan_host: ChannelHost, flag_channel: bool) -> None:
        """Put a channel back in its queue, optionally flagging it as dead."""
        if chan_host.is_ackable():
            self._ack_channels.put(chan_host)
        else:
            self._channels.put(chan_host)
        if flag_channel:
            self.flag_channel(chan_host.channel_id)

    def get_ackable_channel(self) -> ChannelHost:
        """Take the next ackable channel, replacing it if dead or flagged.

        The channel also goes straight back into the pool, keeping the round robin.
        """
        self._check_available()

        channel_host = self._ack_channels.get()
        healthy = self._is_healthy(channel_host)

        if not healthy or self.is_channel_flagged(channel_host.channel_id):
            self._connection_pool.flag_connection(channel_host.connection_id)
            replacement_id = channel_host.channel_id
            while True:
                try:
                    channel_host = self._create_channel_host(replacement_id, True)
                except Exception:
                    if self._sleep_on_error > 0:
                        time.sleep(self._sleep_on_error)
                    continue
                break
            self.unflag_channel(replacement_id)

        self._ack_channels.put(channel_host)
        return channel_host

    def channel_count(self) -> int:
        """How many plain channels are waiting in the pool."""
        return self._channels.qsize()

    def ack_channel_count(self) -> int:
        """How many ackable channels are waiting in the pool."""
        return self._ack_channels.qsize()

    def unflag_channel(self, channel_id: int) -> None:
        """Mark a channel as usable."""
        with self._flag_lock:
            self._flagged[channel_id] = False

    def flag_channel(self, channel_id: int) -> None:
        """Mark a channel as dead so it is replaced on its next use."""
        with self._flag_lock:
            self._flagged[channel_id] = True

    def is_channel_flagged(self, channel_id: int) -> bool:
        """Whether a channel has been marked as dead."""
        with self._flag_lock:
            return self._flagged.get(channel_id, False)

    @staticmethod
    def _close_all(channels: queue.Queue) -> None:
        while True:
            try:
                channel_host = channels.get_nowait()
            except queue.Empty:
                return
            with contextlib.suppress(Exception):
                channel_host.channel.close()

    def shutdown(self) -> None:
        """Close every channel and connection and reset the pool."""
        with self._pool_lock:
            self._shutting_down.set()
            try:
                if self.initialized:
                    self._close_all(self._channels)
                    self._close_all(self._ack_channels)
                    self._channels = queue.Queue()
                    self._ack_channels = queue.Queue()
                    with self._flag_lock:
                        self._flagged = {}
                    self._channel_id = 0
                    self.initialized = False
                    self._connection_pool.shutdown()
            finally:
                self._shutting_down.clear()

    def flush_errors(self) -> None:
        """Discard every error waiting in the error queue."""
        while True:
            try:
                self._errors.get_nowait()
            except queue.Empty:
                return