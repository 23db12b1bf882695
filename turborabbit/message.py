"""Received messages, publish notifications and broker error reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .letter import Letter


@dataclass
class Notification:
    """The outcome of publishing a letter."""

    letter_id: int = 0
    failed_letter: Letter | None = None
    success: bool = False
    error: BaseException | None = None

    def __str__(self) -> str:
        if self.success:
            return f"[LetterID: {self.letter_id}] - Successful.\r\n"
        return f"[LetterID: {self.letter_id}] - Failed.\r\nError: {self.error}\r\n"


@dataclass
class Message:
    """A delivery that can be acknowledged on the channel it arrived on."""

    is_ackable: bool
    body: bytes
    delivery_tag: int = 0
    channel: Any = field(default=None, repr=False)

    def _check(self, action: str) -> None:
        if not self.is_ackable:
            raise RuntimeError(f"can't {action}, not an ackable message")
        if self.channel is None:
            raise RuntimeError(f"can't {action}, internal channel is nil")

    def acknowledge(self) -> None:
        """Acknowledge the message on its original channel."""
        self._check("acknowledge")
        self.channel.basic_ack(delivery_tag=self.delivery_tag, multiple=False)

    def nack(self, requeue: bool) -> None:
        """Negatively acknowledge the message on its original channel."""
        self._check("nack")
        self.channel.basic_nack(
            delivery_tag=self.delivery_tag, multiple=False, requeue=requeue
        )

    def reject(self, requeue: bool) -> None:
        """Reject the message on its original channel."""
        self._check("reject")
        self.channel.basic_reject(delivery_tag=self.delivery_tag, requeue=requeue)


@dataclass
class ErrorMessage:
    """The reason a connection or channel was closed."""

    code: int = 0
    reason: str = ""
    server: bool = False
    recover: bool = False

    @classmethod
    def from_close(cls, code, reason, server, recover) -> ErrorMessage:
        """Build an error message from the details of a close event."""
        return cls(code=code, reason=reason, server=server, recover=recover)

    def __str__(self) -> str:
        server = "true" if self.server else "false"
        recover = "true" if self.recover else "false"
        return (
            f"[ErrorCode: {self.code}] Reason: {self.reason} \r\n"
            f"[Server Initiated: {server}]\r\n"
            f"[Recoverable: {recover}]\r\n"
        )


@dataclass
class ReturnMessage:
    """A published message that the broker returned as unroutable."""

    reply_code: int = 0
    reply_text: str = ""
    exchange: str = ""
    routing_key: str = ""
    content_type: str = ""
    content_encoding: str = ""
    headers: dict[str, Any] = field(default_factory=dict)
    delivery_mode: int = 0
    priority: int = 0
    correlation_id: str = ""
    reply_to: str = ""
    expiration: str = ""
    message_id: str = ""
    timestamp: datetime | None = None
    type: str = ""
    user_id: str = ""
    app_id: str = ""
    body: bytes = b""

    @classmethod
    def from_return(cls, method, properties, body) -> ReturnMessage:
        """Build a return message from a basic.return frame, its properties and body."""
        stamp = properties.timestamp
        return cls(
            reply_code=method.reply_code or 0,
            reply_text=method.reply_text or "",
            exchange=method.exchange or "",
            routing_key=method.routing_key or "",
            content_type=properties.content_type or "",
            content_encoding=properties.content_encoding or "",
            headers=dict(properties.headers or {}),
            delivery_mode=int(properties.delivery_mode or 0),
            priority=properties.priority or 0,
            correlation_id=properties.correlation_id or "",
            reply_to=properties.reply_to or "",
            expiration=properties.expiration or "",
            message_id=properties.message_id or "",
            timestamp=(
                datetime.fromtimestamp(stamp, tz=timezone.utc)
                if stamp is not None
                else None
            ),
            type=properties.type or "",
            user_id=properties.user_id or "",
            app_id=properties.app_id or "",
            body=bytes(body or b""),
        )


class TcrError(Exception):
    """A library error carrying a numeric code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"[err: {self.code}] - {self.message}"