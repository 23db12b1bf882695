# turborabbit

Helpers for working with RabbitMQ through `pika`:

- `turborabbit.connectionpool.ConnectionPool`: a round-robin pool of
  blocking connections that replaces closed or flagged connections.
- `turborabbit.channelpool.ChannelPool`: a pool of plain channels and
  "ackable" (publisher-confirm) channels built on a connection pool.
- `turborabbit.consumer.Consumer`: pulls single messages or batches from a
  queue, or consumes in a background thread into an internal buffer.
- Data models: `configs`, `topology`, `letter` and `message`.

## Installing

```
pip install turborabbit
```

## Configuration

Settings are built from a plain mapping keyed by the JSON field names,
for example one you loaded from a file yourself:

```python
import json
from turborabbit.configs import RabbitSeasoning

with open("seasoning.json") as fh:
    seasoning = RabbitSeasoning.from_dict(json.load(fh))
```

`PoolConfig` holds a `ConnectionPoolConfig` (`URI`, `Heartbeat`,
`ConnectionTimeout`, `MaxConnectionCount`, `ErrorBuffer`, `EnableTLS`,
`TLSConfig`, ...) and a `ChannelPoolConfig` (`MaxChannelCount`,
`MaxAckChannelCount`, `GlobalQosCount`, `AckNoWait`,
`SleepOnErrorInterval`, ...). `ConsumerConfigs` maps consumer names to
`ConsumerConfig` entries. Missing keys keep their defaults; a value of the
wrong shape raises `TypeError`.

`TopologyConfig.from_dict` reads `Exchanges`, `Queues`, `QueueBindings`
and `ExchangeBindings` into `Exchange`, `Queue`, `QueueBinding` and
`ExchangeBinding` objects.

## Pools

```python
from turborabbit.connectionpool import ConnectionPool
from turborabbit.channelpool import ChannelPool

connection_pool = ConnectionPool(seasoning.pool_config, initialize_now=True)
channel_pool = ChannelPool(seasoning.pool_config, connection_pool, initialize_now=True)

chan_host = channel_pool.get_channel()
try:
    chan_host.channel.basic_publish(exchange="", routing_key="MyQueue", body=b"hello")
    channel_pool.return_channel(chan_host, False)
except Exception:
    channel_pool.return_channel(chan_host, True)  # flag it so it gets replaced

channel_pool.shutdown()
```

Invalid settings (a zero heartbeat, timeout, connection count, error
buffer or channel count, or TLS enabled without a TLS config) raise
`ValueError`. When TLS is enabled, an SSL context is built from
`PEMCertLocation` (CA file) and `LocalCertLocation` (client certificate
chain). Passing no connection pool to `ChannelPool` makes it create one.

`get_channel()` hands out a plain channel that must be returned with
`return_channel(chan_host, flag_channel)`. `get_ackable_channel()` hands
out a confirming channel and keeps it in the pool at the same time.
Flagged or closed channels and connections are replaced the next time
they are taken. Getting from a pool that is not initialized raises
`RuntimeError`.

`errors()` returns a `queue.Queue` of background errors; `flush_errors()`
discards them. `channel_count()`, `ack_channel_count()` and
`connection_count()` report how many members are waiting in the pools.

## Consuming

```python
from turborabbit.consumer import Consumer

consumer = Consumer.from_config(seasoning.consumer_configs["MyConsumer"], channel_pool)
consumer.start_consuming()

message = consumer.messages().get()
print(message.body)
message.acknowledge()

consumer.stop_consuming(immediate=False, flush_messages=True)
```

`new_consumer(...)` builds a consumer from individual arguments and
creates a channel pool from `config.pool_config` when none is given.
Zero message or error buffers raise `ValueError`; starting a started
consumer or stopping a stopped one raises `RuntimeError`.

Without a running consumer, `Consumer.get(queue_name, auto_ack)` returns
one `Message` or `None` when the queue is empty, and
`Consumer.get_batch(queue_name, batch_size, auto_ack)` returns up to
`batch_size` messages (a size below 1 raises `ValueError`).

A `Message` received without auto-ack supports `acknowledge()`,
`nack(requeue)` and `reject(requeue)` on the channel it came from;
calling them on a message that is not ackable, or has no channel, raises
`RuntimeError`.

## What this package does not do

There is no publisher, no higher-level service object, and nothing that
declares exchanges, queues or bindings on the broker: the topology and
letter models only describe them. Configuration is not read from files;
you pass in a mapping. There is no command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```