"""Models describing exchanges, queues and the bindings between them."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .configs import _JsonModel, _table


def _list_of(parse: Callable[[Any], Any]) -> Callable[[Any], list]:
    def convert(raw: Any) -> list:
        if not isinstance(raw, list):
            raise TypeError(f"expected a list, got {type(raw).__name__}")
        return [parse(item) for item in raw]

    return convert


@dataclass
class Exchange(_JsonModel):
    """An exchange to declare; type is direct, fanout, topic or headers."""

    name: str = ""
    type: str = ""
    passive_declare: bool = False
    durable: bool = False
    auto_delete: bool = False
    internal_only: bool = False
    no_wait: bool = False
    args: dict[str, Any] | None = None

    _KEYS = {
        "name": "Name",
        "type": "Type",
        "passive_declare": "PassiveDeclare",
        "durable": "Durable",
        "auto_delete": "AutoDelete",
        "internal_only": "InternalOnly",
        "no_wait": "NoWait",
        "args": "Args",
    }
    _CONVERT = {"args": _table}


@dataclass
class Queue(_JsonModel):
    """A queue to declare."""

    name: str = ""
    passive_declare: bool = False
    durable: bool = False
    auto_delete: bool = False
    exclusive: bool = False
    no_wait: bool = False
    args: dict[str, Any] | None = None

    _KEYS = {
        "name": "Name",
        "passive_declare": "PassiveDeclare",
        "durable": "Durable",
        "auto_delete": "AutoDelete",
        "exclusive": "Exclusive",
        "no_wait": "NoWait",
        "args": "Args",
    }
    _CONVERT = {"args": _table}


@dataclass
class QueueBinding(_JsonModel):
    """A binding between a queue and an exchange."""

    queue_name: str = ""
    exchange_name: str = ""
    routing_key: str = ""
    no_wait: bool = False
    args: dict[str, Any] | None = None

    _KEYS = {
        "queue_name": "QueueName",
        "exchange_name": "ExchangeName",
        "routing_key": "RoutingKey",
        "no_wait": "NoWait",
        "args": "Args",
    }
    _CONVERT = {"args": _table}


@dataclass
class ExchangeBinding(_JsonModel):
    """A binding between an exchange and its parent exchange."""

    exchange_name: str = ""
    parent_exchange_name: str = ""
    routing_key: str = ""
    no_wait: bool = False
    args: dict[str, Any] | None = None

    _KEYS = {
        "exchange_name": "ExchangeName",
        "parent_exchange_name": "ParentExchangeName",
        "routing_key": "RoutingKey",
        "no_wait": "NoWait",
        "args": "Args",
    }
    _CONVERT = {"args": _table}


@dataclass
class TopologyConfig(_JsonModel):
    """A simple topology built from a JSON document."""

    exchanges: list[Exchange] = field(default_factory=list)
    queues: list[Queue] = field(default_factory=list)
    queue_bindings: list[QueueBinding] = field(default_factory=list)
    exchange_bindings: list[ExchangeBinding] = field(default_factory=list)

    _KEYS = {
        "exchanges": "Exchanges",
        "queues": "Queues",
        "queue_bindings": "QueueBindings",
        "exchange_bindings": "ExchangeBindings",
    }
    _CONVERT = {
        "exchanges": _list_of(Exchange._parse),
        "queues": _list_of(Queue._parse),
        "queue_bindings": _list_of(QueueBinding._parse),
        "exchange_bindings": _list_of(ExchangeBinding._parse),
    }

    @classmethod
    def from_dict(cls, data):
        """Build a topology from its JSON mapping."""
        return cls._from_mapping(data)