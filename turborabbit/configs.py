"""Configuration models for pools, consumers, publishers and services."""

from __future__ import annotations

import base64
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar


class _JsonModel:
    """Builds a dataclass from a mapping keyed by its JSON field names."""

    _KEYS: ClassVar[dict[str, str]] = {}
    _CONVERT: ClassVar[dict[str, Callable[[Any], Any]]] = {}

    @classmethod
    def _from_mapping(cls, data: Any):
        if not isinstance(data, Mapping):
            raise TypeError(
                f"{cls.__name__} expects a mapping, got {type(data).__name__}"
            )
        values = {}
        for attr, key in cls._KEYS.items():
            raw = data.get(key)
            if raw is None:
                continue
            convert = cls._CONVERT.get(attr)
            values[attr] = convert(raw) if convert is not None else raw
        return cls(**values)

    @classmethod
    def _parse(cls, data: Any):
        if data is None:
            return None
        return cls._from_mapping(data)


def _table(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise TypeError(f"expected a mapping of arguments, got {type(raw).__name__}")
    return dict(raw)


def _bytes(raw: Any) -> bytes:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        return base64.b64decode(raw, validate=True)
    raise TypeError(f"expected base64 text or bytes, got {type(raw).__name__}")


@dataclass
class ServiceConfig(_JsonModel):
    """Settings for creating rabbit services."""

    error_buffer: int = 0

    _KEYS = {"error_buffer": "ErrorBuffer"}


@dataclass
class TLSConfig(_JsonModel):
    """Settings for configuring TLS."""

    pem_cert_location: str = ""
    local_cert_location: str = ""
    cert_server_name: str = ""

    _KEYS = {
        "pem_cert_location": "PEMCertLocation",
        "local_cert_location": "LocalCertLocation",
        "cert_server_name": "CertServerName",
    }


@dataclass
class ChannelPoolConfig(_JsonModel):
    """Settings for creating channel pools."""

    error_buffer: int = 0
    sleep_on_error_interval: int = 0
    max_channel_count: int = 0
    max_ack_channel_count: int = 0
    ack_no_wait: bool = False
    global_qos_count: int = 0

    _KEYS = {
        "error_buffer": "ErrorBuffer",
        "sleep_on_error_interval": "SleepOnErrorInterval",
        "max_channel_count": "MaxChannelCount",
        "max_ack_channel_count": "MaxAckChannelCount",
        "ack_no_wait": "AckNoWait",
        "global_qos_count": "GlobalQosCount",
    }


@dataclass
class ConnectionPoolConfig(_JsonModel):
    """Settings for creating connection pools."""

    connection_name: str = ""
    uri: str = ""
    heartbeat: int = 0
    connection_timeout: int = 0
    error_buffer: int = 0
    sleep_on_error_interval: int = 0
    enable_tls: bool = False
    max_connection_count: int = 0
    tls_config: TLSConfig | None = None

    _KEYS = {
        "connection_name": "ConnectionName",
        "uri": "URI",
        "heartbeat": "Heartbeat",
        "connection_timeout": "ConnectionTimeout",
        "error_buffer": "ErrorBuffer",
        "sleep_on_error_interval": "SleepOnErrorInterval",
        "enable_tls": "EnableTLS",
        "max_connection_count": "MaxConnectionCount",
        "tls_config": "TLSConfig",
    }
    _CONVERT = {"tls_config": TLSConfig._parse}


@dataclass
class PoolConfig(_JsonModel):
    """Settings for creating and configuring pools."""

    channel_pool_config: ChannelPoolConfig | None = None
    connection_pool_config: ConnectionPoolConfig | None = None

    _KEYS = {
        "channel_pool_config": "ChannelPoolConfig",
        "connection_pool_config": "ConnectionPoolConfig",
    }
    _CONVERT = {
        "channel_pool_config": ChannelPoolConfig._parse,
        "connection_pool_config": ConnectionPoolConfig._parse,
    }

    @classmethod
    def from_dict(cls, data):
        """Build a pool configuration from its JSON mapping."""
        return cls._from_mapping(data)


@dataclass
class ConsumerConfig(_JsonModel):
    """Settings for configuring a consumer."""

    enabled: bool = False
    queue_name: str = ""
    consumer_name: str = ""
    auto_ack: bool = False
    exclusive: bool = False
    no_wait: bool = False
    args: dict[str, Any] | None = None
    qos_count_override: int = 0
    message_buffer: int = 0
    error_buffer: int = 0
    sleep_on_error_interval: int = 0
    sleep_on_idle_interval: int = 0

    _KEYS = {
        "enabled": "Enabled",
        "queue_name": "QueueName",
        "consumer_name": "ConsumerName",
        "auto_ack": "AutoAck",
        "exclusive": "Exclusive",
        "no_wait": "NoWait",
        "args": "Args",
        "qos_count_override": "QosCountOverride",
        "message_buffer": "MessageBuffer",
        "error_buffer": "ErrorBuffer",
        "sleep_on_error_interval": "SleepOnErrorInterval",
        "sleep_on_idle_interval": "SleepOnIdleInterval",
    }
    _CONVERT = {"args": _table}

    @classmethod
    def from_dict(cls, data):
        """Build a consumer configuration from its JSON mapping."""
        return cls._from_mapping(data)


@dataclass
class PublisherConfig(_JsonModel):
    """Global settings shared by all publishers."""

    sleep_on_idle_interval: int = 0
    sleep_on_queue_full_interval: int = 0
    sleep_on_error_interval: int = 0
    letter_buffer: int = 0
    max_over_buffer: int = 0
    notification_buffer: int = 0

    _KEYS = {
        "sleep_on_idle_interval": "SleepOnIdleInterval",
        "sleep_on_queue_full_interval": "SleepOnQueueFullInterval",
        "sleep_on_error_interval": "SleepOnErrorInterval",
        "letter_buffer": "LetterBuffer",
        "max_over_buffer": "MaxOverBuffer",
        "notification_buffer": "NotificationBuffer",
    }


@dataclass
class CompressionConfig(_JsonModel):
    """Settings for compressing message bodies."""

    enabled: bool = False
    type: str = ""

    _KEYS = {"enabled": "Enabled", "type": "Type"}


@dataclass
class EncryptionConfig(_JsonModel):
    """Settings for symmetric key encryption of message bodies."""

    enabled: bool = False
    type: str = ""
    hashkey: bytes = b""
    time_consideration: int = 0
    memory_multiplier: int = 0
    threads: int = 0

    _KEYS = {
        "enabled": "Enabled",
        "type": "Type",
        "hashkey": "Hashkey",
        "time_consideration": "TimeConsideration",
        "memory_multiplier": "MemoryMultiplier",
        "threads": "Threads",
    }
    _CONVERT = {"hashkey": _bytes}


def _consumer_configs(raw: Any) -> dict[str, ConsumerConfig]:
    if not isinstance(raw, Mapping):
        raise TypeError(f"ConsumerConfigs expects a mapping, got {type(raw).__name__}")
    return {name: ConsumerConfig._parse(item) for name, item in raw.items()}


@dataclass
class RabbitSeasoning(_JsonModel):
    """The complete set of configuration values."""

    service_config: ServiceConfig | None = None
    encryption_config: EncryptionConfig | None = None
    compression_config: CompressionConfig | None = None
    pool_config: PoolConfig | None = None
    consumer_configs: dict[str, ConsumerConfig] = field(default_factory=dict)
    publisher_config: PublisherConfig | None = None

    _KEYS = {
        "service_config": "ServiceConfig",
        "encryption_config": "EncryptionConfig",
        "compression_config": "CompressionConfig",
        "pool_config": "PoolConfig",
        "consumer_configs": "ConsumerConfigs",
        "publisher_config": "PublisherConfig",
    }
    _CONVERT = {
        "service_config": ServiceConfig._parse,
        "encryption_config": EncryptionConfig._parse,
        "compression_config": CompressionConfig._parse,
        "pool_config": PoolConfig._parse,
        "consumer_configs": _consumer_configs,
        "publisher_config": PublisherConfig._parse,
    }

    @classmethod
    def from_dict(cls, data):
        """Build the full configuration from its JSON mapping."""
        return cls._from_mapping(data)