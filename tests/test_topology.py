import pytest

from turborabbit.topology import (
    Exchange,
    ExchangeBinding,
    Queue,
    QueueBinding,
    TopologyConfig,
)

TOPOLOGY = {
    "Exchanges": [
        {"Name": "MyTestExchangeRoot", "Type": "direct", "Durable": True},
        {"Name": "MyTestExchange.Child01", "Type": "topic", "AutoDelete": True},
    ],
    "Queues": [
        {
            "Name": "QueueAttachedToExch01",
            "Durable": True,
            "Exclusive": False,
            "Args": {"x-queue-type": "quorum"},
        }
    ],
    "QueueBindings": [
        {
            "QueueName": "QueueAttachedToExch01",
            "ExchangeName": "MyTestExchange.Child01",
            "RoutingKey": "RoutingKey1",
        }
    ],
    "ExchangeBindings": [
        {
            "ExchangeName": "MyTestExchange.Child01",
            "ParentExchangeName": "MyTestExchangeRoot",
            "RoutingKey": "ExchangeKey1",
            "NoWait": True,
        }
    ],
}


def test_topology_sections_are_parsed():
    config = TopologyConfig.from_dict(TOPOLOGY)

    assert [e.name for e in config.exchanges] == [
        "MyTestExchangeRoot",
        "MyTestExchange.Child01",
    ]
    assert config.exchanges[0] == Exchange(
        name="MyTestExchangeRoot", type="direct", durable=True
    )
    assert config.queues == [
        Queue(
            name="QueueAttachedToExch01",
            durable=True,
            args={"x-queue-type": "quorum"},
        )
    ]
    assert config.queue_bindings == [
        QueueBinding(
            queue_name="QueueAttachedToExch01",
            exchange_name="MyTestExchange.Child01",
            routing_key="RoutingKey1",
        )
    ]
    assert config.exchange_bindings == [
        ExchangeBinding(
            exchange_name="MyTestExchange.Child01",
            parent_exchange_name="MyTestExchangeRoot",
            routing_key="ExchangeKey1",
            no_wait=True,
        )
    ]


def test_empty_topology_has_empty_lists():
    config = TopologyConfig.from_dict({})

    assert config.exchanges == []
    assert config.queues == []
    assert config.queue_bindings == []
    assert config.exchange_bindings == []


def test_args_default_to_none():
    config = TopologyConfig.from_dict({"Exchanges": [{"Name": "e"}]})

    assert config.exchanges[0].args is None
    assert config.exchanges[0].internal_only is False


def test_sections_must_be_lists():
    with pytest.raises(TypeError):
        TopologyConfig.from_dict({"Queues": {"Name": "q"}})


def test_entries_must_be_mappings():
    with pytest.raises(TypeError):
        TopologyConfig.from_dict({"Exchanges": ["name"]})


def test_non_mapping_document_raises():
    with pytest.raises(TypeError):
        TopologyConfig.from_dict(None)