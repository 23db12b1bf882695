"""A round-robin pool of broker connections that heals dead members."""

from __future__ import annotations

import queue
import ssl
import threading
import time

from .configs import PoolConfig
from .connectionhost import ConnectionHost, _dial


def _create_ssl_context(pem_cert_location: str, local_cert_location: str) -> ssl.SSLContext:
    context = ssl.create_default_context(cafile=pem_cert_location or None)
    if local_cert_location:
        context.load_cert_chain(local_cert_location)
    return context


class ConnectionPool:
    """Holds a fixed number of connections handed out in round-robin order."""

    def __init__(self, config: PoolConfig, initialize_now: bool = False, connection_factory=None) -> None:
        conn_config = config.connection_pool_config
        chan_config = config.channel_pool_config
        if conn_config is None or chan_config is None:
            raise ValueError("connectionpool needs both connection and channel pool configs")
        if conn_config.heartbeat == 0 or conn_config.connection_timeout == 0:
            raise ValueError("connectionpool heartbeat or connectiontimeout can't be 0")
        if conn_config.max_connection_count == 0:
            raise ValueError("connectionpool maxconnectioncount can't be 0")

        ssl_context = None
        if conn_config.enable_tls:
            if conn_config.tls_config is None:
                raise ValueError("can't enable TLS when TLS config is nil")
            ssl_context = _create_ssl_context(
                conn_config.tls_config.pem_cert_location,
                conn_config.tls_config.local_cert_location,
            )

        if conn_config.error_buffer == 0:
            raise ValueError("can't create a ConnectionPool when the ErrorBuffer value is 0")

        max_connections = conn_config.max_connection_count
        max_channel_per_connection = 1
        if max_connections == 1:
            max_channel_per_connection = chan_config.max_channel_count
        elif chan_config.max_channel_count > 1:
            max_channel_per_connection = chan_config.max_channel_count // max_connections + 1

        max_ack_channel_per_connection = 1
        if max_connections == 1:
            max_ack_channel_per_connection = chan_config.max_ack_channel_count
        elif chan_config.max_channel_count > 1:
            max_ack_channel_per_connection = chan_config.max_ack_channel_count // max_connections + 1

        self.config = config
        self.initialized = False
        self._connection_name = conn_config.connection_name
        self._uri = conn_config.uri
        self._enable_tls = conn_config.enable_tls
        self._ssl_context = ssl_context
        self._errors: queue.Queue[BaseException] = queue.Queue(maxsize=conn_config.error_buffer)
        self._heartbeat = conn_config.heartbeat
        self._connection_timeout = conn_config.connection_timeout
        self._connections: queue.Queue[ConnectionHost] = queue.Queue()
        self._max_connections = max_connections
        self._max_channel_per_connection = max_channel_per_connection
        self._max_ack_channel_per_connection = max_ack_channel_per_connection
        self._connection_id = 0
        self._pool_lock = threading.Lock()
        self._flag_lock = threading.Lock()
        self._shutting_down = threading.Event()
        self._flagged: dict[int, bool] = {}
        self._sleep_on_error = conn_config.sleep_on_error_interval / 1000.0
        self._connection_factory = connection_factory or _dial

        if initialize_now:
            self.initialize()

    def initialize(self) -> None:
        """Open every connection of the pool; does nothing when already done."""
        with self._pool_lock:
            if self.initialized:
                return
            hosts: list[ConnectionHost] = []
            try:
                for connection_id in range(self._max_connections):
                    hosts.append(self._create_host(connection_id))
            except Exception as err:
                for host in hosts:
                    host.close()
                self._connection_id = 0
                self._connections = queue.Queue()
                raise RuntimeError("initialization failed during connection creation") from err
            for host in hosts:
                self._connections.put(host)
            self._connection_id = len(hosts)
            self.initialized = True

    def _create_host(self, connection_id: int) -> ConnectionHost:
        if self._enable_tls and self._ssl_context is None:
            raise RuntimeError("tls enabled but tlsConfig has not been created")
        connection = self._connection_factory(
            self._uri,
            f"{self._connection_name}-{connection_id}",
            self._heartbeat,
            self._connection_timeout,
            self._ssl_context if self._enable_tls else None,
        )
        return ConnectionHost(
            connection,
            connection_id,
            self._max_channel_per_connection,
            self._max_ack_channel_per_connection,
        )

    def _handle_error(self, err: BaseException) -> None:
        threading.Thread(target=self._errors.put, args=(err,), daemon=True).start()

    def errors(self) -> queue.Queue:
        """Return the queue of errors raised while managing connections."""
        return self._errors

    def get_connection(self) -> ConnectionHost:
        """Take the next connection, replacing it first if it is dead or flagged.

        Blocks while the pool is empty and while a replacement cannot be made.
        """
        if self._shutting_down.is_set():
            raise RuntimeError("can't get connection - connection pool has been shutdown")
        if not self.initialized:
            raise RuntimeError("can't get connection - connection pool has not been initialized")

        host = self._connections.get()

        healthy = True
        try:
            host.close_errors().get_nowait()
        except queue.Empty:
            pass
        else:
            healthy = False

        closed = host.is_closed()
        flagged = self.is_connection_flagged(host.connection_id)

        if flagged or not healthy or closed:
            replacement_id = host.connection_id
            self.flag_connection(replacement_id)
            while True:
                if self._sleep_on_error > 0:
                    time.sleep(self._sleep_on_error)
                try:
                    host = self._create_host(replacement_id)
                except Exception as err:
                    self._handle_error(err)
                    continue
                break
            self.unflag_connection(replacement_id)

        return host

    def return_connection(self, conn_host: ConnectionHost) -> None:
        """Put a connection back at the end of the round robin."""
        self._connections.put(conn_host)

    def connection_count(self) -> int:
        """How many connections are waiting in the pool."""
        return self._connections.qsize()

    def unflag_connection(self, connection_id: int) -> None:
        """Mark a connection as usable."""
        with self._flag_lock:
            self._flagged[connection_id] = False

    def flag_connection(self, connection_id: int) -> None:
        """Mark a connection as dead so it is replaced on its next use."""
        with self._flag_lock:
            self._flagged[connection_id] = True

    def is_connection_flagged(self, connection_id: int) -> bool:
        """Whether a connection has been marked as dead."""
        with self._flag_lock:
            return self._flagged.get(connection_id, False)

    def shutdown(self) -> None:
        """Close every connection and return the pool to its uninitialized state."""
        with self._pool_lock:
            self._shutting_down.set()
            try:
                if self.initialized:
                    while True:
                        try:
                            host = self._connections.get_nowait()
                        except queue.Empty:
                            break
                        if not host.is_closed():
                            host.connection.close()
                    self._connections = queue.Queue()
                    with self._flag_lock:
                        self._flagged = {}
                    self._connection_id = 0
                    self.initialized = False
                    self.flush_errors()
            finally:
                self._shutting_down.clear()

    def flush_errors(self) -> None:
        """Discard every error waiting in the error queue."""
        while True:
            try:
                self._errors.get_nowait()
            except queue.Empty:
                return