"""RabbitMQ connection and channel pools, a consumer, and configuration and message models."""

__version__ = "1.0.0"

__all__ = [
    "configs",
    "topology",
    "letter",
    "message",
    "connectionhost",
    "channelhost",
    "connectionpool",
    "channelpool",
    "consumer",
]