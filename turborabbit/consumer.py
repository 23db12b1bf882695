"""Consumers that pull messages from a queue through a channel pool."""

from __future__ import annotations

import contextlib
import queue
import threading
import time
from collections import deque
from typing import Any

from .channelhost import ChannelHost
from .channelpool import ChannelPool
from .configs import ConsumerConfig, RabbitSeasoning
from .message import Message

_PUT_POLL = 0.05
_MIN_IDLE = 0.001


class Consumer:
    """Receives messages from one queue and buffers them for the caller."""

    def __init__(
        self,
        channel_pool: ChannelPool,
        queue_name: str,
        consumer_name: str = "",
        *,
        config: RabbitSeasoning | None = None,
        enabled: bool = True,
        auto_ack: bool = False,
        exclusive: bool = False,
        no_wait: bool = False,
        args: dict[str, Any] | None = None,
        qos_count_override: int = 0,
        message_buffer: int = 1,
        error_buffer: int = 1,
        sleep_on_error_interval: int = 0,
        sleep_on_idle_interval: int = 0,
    ) -> None:
        if message_buffer == 0 or error_buffer == 0:
            raise ValueError("message and/or error buffer can't be 0")
        self.config = config
        self.enabled = enabled
        self.queue_name = queue_name
        self.consumer_name = consumer_name
        self.auto_ack = auto_ack
        self.exclusive = exclusive
        self.no_wait = no_wait
        self.args = dict(args) if args else None
        self.qos_count_override = qos_count_override
        self._channel_pool = channel_pool
        self._errors: queue.Queue[BaseException] = queue.Queue(maxsize=error_buffer)
        self._messages: queue.Queue[Message] = queue.Queue(maxsize=message_buffer)
        self._sleep_on_error = sleep_on_error_interval / 1000.0
        self._sleep_on_idle = sleep_on_idle_interval / 1000.0
        self._stop = threading.Event()
        self._stop_immediate = False
        self._started = False
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ConsumerConfig, channel_pool: ChannelPool) -> Consumer:
        """Create a consumer from a consumer configuration and an existing pool."""
        if channel_pool is None:
            raise ValueError("can't start a consumer without a channel pool")
        if not channel_pool.initialized:
            channel_pool.initialize()
        if config.message_buffer == 0 or config.error_buffer == 0:
            raise ValueError("message and/or error buffer in config can't be 0")
        return cls(
            channel_pool,
            config.queue_name,
            config.consumer_name,
            enabled=config.enabled,
            auto_ack=config.auto_ack,
            exclusive=config.exclusive,
            no_wait=config.no_wait,
            args=config.args,
            qos_count_override=config.qos_count_override,
            message_buffer=config.message_buffer,
            error_buffer=config.error_buffer,
            sleep_on_error_interval=config.sleep_on_error_interval,
            sleep_on_idle_interval=config.sleep_on_idle_interval,
        )

    def _acquire(self, auto_ack: bool) -> ChannelHost:
        if auto_ack:
            return self._channel_pool.get_channel()
        return self._channel_pool.get_ackable_channel()

    def _release(self, chan_host: ChannelHost, flag: bool) -> None:
        # Ackable channels already went back into the pool when taken.
        if chan_host.is_ackable():
            if flag:
                self._channel_pool.flag_channel(chan_host.channel_id)
        else:
            self._channel_pool.return_channel(chan_host, flag)

    def get(self, queue_name: str, auto_ack: bool) -> Message | None:
        """Fetch a single message from any queue, or None when it is empty."""
        chan_host = self._acquire(auto_ack)
        try:
            method, _properties, body = chan_host.channel.basic_get(
                queue=queue_name, auto_ack=auto_ack
            )
        except Exception:
            self._release(chan_host, True)
            raise
        if method is None:
            self._release(chan_host, False)
            return None
        if auto_ack:
            self._release(chan_host, False)
        return Message(not auto_ack, bytes(body), method.delivery_tag, chan_host.channel)

    def get_batch(self, queue_name: str, batch_size: int, auto_ack: bool) -> list[Message]:
        """Fetch up to batch_size messages from any queue."""
        if batch_size < 1:
            raise ValueError(
                "can't get a batch of messages whose size is less than 1"
            )
        chan_host = self._acquire(auto_ack)
        messages: list[Message] = []
        while len(messages) < batch_size:
            try:
                method, _properties, body = chan_host.channel.basic_get(
                    queue=queue_name, auto_ack=auto_ack
                )
            except Exception:
                self._release(chan_host, True)
                raise
            if method is None:
                break
            messages.append(
                Message(not auto_ack, bytes(body), method.delivery_tag, chan_host.channel)
            )
        if auto_ack:
            self._release(chan_host, False)
        return messages

    def start_consuming(self) -> None:
        """Start receiving messages in the background."""
        with self._lock:
            if self._started:
                raise RuntimeError("can't start an already started consumer")
            if self.enabled:
                self.flush_errors()
                self.flush_stop()
                threading.Thread(target=self._run, daemon=True).start()
                self._started = True

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                chan_host, deliveries, tag = self._open_deliveries()
            except Exception:
                if self._sleep_on_error > 0:
                    time.sleep(self._sleep_on_error)
                continue
            if self._process_deliveries(chan_host, deliveries, tag):
                break
        with self._lock:
            self._started = False
            self._stop_immediate = False

    def _open_deliveries(self) -> tuple[ChannelHost, deque, Any]:
        try:
            chan_host = self._acquire(self.auto_ack)
        except Exception as err:
            self._handle_error(err)
            raise

        channel = chan_host.channel
        if self.qos_count_override > 0:
            try:
                channel.basic_qos(prefetch_count=self.qos_count_override, global_qos=False)
            except Exception as err:
                self._handle_error_and_channel(err, chan_host)
                raise

        deliveries: deque = deque()

        def on_message(_channel, method, _properties, body) -> None:
            deliveries.append((method.delivery_tag, bytes(body)))

        try:
            tag = channel.basic_consume(
                queue=self.queue_name,
                on_message_callback=on_message,
                auto_ack=self.auto_ack,
                exclusive=self.exclusive,
                consumer_tag=self.consumer_name or None,
                arguments=None,
            )
        except Exception as err:
            self._handle_error_and_channel(err, chan_host)
            raise
        return chan_host, deliveries, tag

    def _process_deliveries(self, chan_host: ChannelHost, deliveries: deque, tag) -> bool:
        """Pump deliveries until the channel dies (False) or a stop arrives (True)."""
        channel = chan_host.channel
        idle = max(self._sleep_on_idle, _MIN_IDLE)
        while True:
            try:
                closed = chan_host.close_errors().get_nowait()
            except queue.Empty:
                pass
            else:
                self._handle_error_and_channel(
                    RuntimeError(
                        "consumer's current channel closed\r\n"
                        f"[reason: {closed.reason}]\r\n[code: {closed.code}]"
                    ),
                    chan_host,
                )
                return False

            if deliveries:
                delivery_tag, body = deliveries.popleft()
                self._deliver(Message(not self.auto_ack, body, delivery_tag, channel))
            else:
                try:
                    channel.connection.process_data_events(time_limit=idle)
                except Exception as err:
                    self._handle_error_and_channel(err, chan_host)
                    return False

            if self._stop.is_set():
                with contextlib.suppress(Exception):
                    channel.basic_cancel(tag)
                self._release(chan_host, False)
                return True

    def _deliver(self, msg: Message) -> None:
        while True:
            try:
                self._messages.put(msg, timeout=_PUT_POLL)
                return
            except queue.Full:
                if self._stop.is_set() and self._stop_immediate:
                    return

    def stop_consuming(self, immediate: bool, flush_messages: bool) -> None:
        """Signal the consumer to stop; optionally drop buffered messages.

        Ackable messages that are dropped stay on the broker; auto-acked ones are lost.
        """
        with self._lock:
            if not self._started:
                raise RuntimeError("can't stop a stopped consumer")
            self._stop_immediate = immediate
            self._stop.set()
            if flush_messages:
                self.flush_messages()

    def messages(self) -> queue.Queue:
        """Return the queue of received messages."""
        return self._messages

    def _handle_error_and_channel(self, err: BaseException, chan_host: ChannelHost) -> None:
        self._release(chan_host, True)
        self._handle_error(err)

    def _handle_error(self, err: BaseException) -> None:
        threading.Thread(target=self._errors.put, args=(err,), daemon=True).start()

    def errors(self) -> queue.Queue:
        """Return the queue of errors raised while consuming."""
        return self._errors

    def flush_stop(self) -> None:
        """Discard any earlier stop signal."""
        self._stop.clear()

    def flush_errors(self) -> None:
        """Discard every error waiting in the error queue."""
        _drain(self._errors)

    def flush_messages(self) -> None:
        """Discard every buffered message. These messages are lost."""
        _drain(self._messages)


def _drain(items: queue.Queue) -> None:
    while True:
        try:
            items.get_nowait()
        except queue.Empty:
            return


def new_consumer(
    config,
    channel_pool,
    queue_name,
    consumer_name,
    auto_ack,
    exclusive,
    no_wait,
    args,
    qos_count_override,
    message_buffer,
    error_buffer,
    sleep_on_error_interval,
    sleep_on_idle_interval,
) -> Consumer:
    """Create a consumer, building a channel pool from the config when none is given."""
    if channel_pool is None:
        channel_pool = ChannelPool(config.pool_config, None, True)
    if message_buffer == 0 or error_buffer == 0:
        raise ValueError("message and/or error buffer can't be 0")
    return Consumer(
        channel_pool,
        queue_name,
        consumer_name,
        config=config,
        auto_ack=auto_ack,
        exclusive=exclusive,
        no_wait=no_wait,
        args=args,
        qos_count_override=qos_count_override,
        message_buffer=message_buffer,
        error_buffer=error_buffer,
        sleep_on_error_interval=sleep_on_error_interval,
        sleep_on_idle_interval=sleep_on_idle_interval,
    )