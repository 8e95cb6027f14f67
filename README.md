# minibroker

Core pieces of a small publish/subscribe message broker, usable on their own.

## What is inside

- `minibroker.big_set.BigSet`: a set of values such as acknowledged message
  ids, with `add`, `remove` (both silent when nothing changes) and membership
  tests through `contains` or `in`.
- `minibroker.dual_key_map.DualKeyHashMap`: a map whose values are found with
  `get_using_key1` / `get_using_key2` and removed with `remove`,
  `remove_using_key1` or `remove_using_key2`. Freed slots are reset with the
  `default_factory` given to the constructor and reused, oldest first.
  `remove` raises `ValueError` if the two keys point at different values.
- `minibroker.plain_text_builder`: `PlainTextBuilder` writes column-aligned
  text (`str_left`, `str_right`, `int_left`, `timestamp_left`, `new_line`)
  with two-space indentation (`indent`, `outdent`); text deeper than the
  maximum indent level (2 by default) is dropped. `ToPlainText` is the
  abstract interface for records that write themselves as a row and a header.
- `minibroker.assets`: `is_css_filename` accepts only names like
  `log-detail.css`; `serve_css(name, root)` returns an `HttpReply` with the
  stylesheet (200, `text/css`, long-lived cache header), 400 for a bad name or
  404 for a missing file; `docs_root()` returns the documentation root page.
- `minibroker.http_server`: `run(counter, host, port, stop_event)` listens
  on a socket and spreads connections over one worker thread per CPU. Every
  request is answered with an empty `200 OK`; HTTP/1.1 and
  `Connection: keep-alive` keep the connection open, `Connection: close`
  closes it. Answered requests are counted in a `RequestCounter`. `run`
  returns once `stop_event` is set and the workers have finished.
  `extract_request`, `wants_keep_alive` and `handle_connection` are available
  separately.
- `minibroker.store`: the entities `Cluster`, `Node`, `Topic`, `Partition`,
  `Subscription` and `Ledger`, each with a `key(...)` static method; an
  `InMemoryStore` with versioned `load`, `save` and `delete`; the error
  hierarchy `DataError` → `NotFoundError`, `UnmodifiedError`,
  `PersistenceFailure`, `VersionMismatch`; and `DataLayerBase` with
  `get_entity` and the retrying `update_entity`.
- `minibroker.ledgers.PartitionLedgerMixin`: add, read, update and delete
  partitions and ledgers, including `add_ledger_if_none` and
  `get_last_ledger_id`.
- `minibroker.data_layer.DataLayer`: the full data layer for one cluster,
  adding nodes, topics and subscriptions on top of the mixin.

Saving an entity whose version no longer matches the stored one raises
`VersionMismatch`, and the update methods re-read and retry. Adding an entity
appends its id to its owner's list; deleting removes it, and deleting a topic
also deletes its subscriptions, partitions and their ledgers. Reading an
entity that does not exist raises `PersistenceFailure`. `update_partition`
raises `UnmodifiedError` when its update function returns `False`.

## Installing

```
pip install .
```

Tests run with `pytest` after `pip install .[test]`.

## Examples

```python
from minibroker.store import InMemoryStore
from minibroker.data_layer import DataLayer

data = DataLayer("local", InMemoryStore())
node = data.add_node("10.0.0.1", 8000, 8001, 8002)
topic = data.add_topic("orders")
partition = data.add_partition(topic.topic_id, node.node_id)
ledger = data.add_ledger_if_none(topic.topic_id, partition.partition_id)
print(ledger.ledger_id)  # 1
```

```python
from minibroker.plain_text_builder import PlainTextBuilder

builder = PlainTextBuilder()
builder.str_left("name", 10)
builder.int_left(42, 5)
builder.new_line()
print(builder.build())
```

```python
import threading
from minibroker.http_server import RequestCounter, run

counter = RequestCounter()
stop = threading.Event()
server = threading.Thread(target=run, args=(counter, "127.0.0.1", 8080, stop))
server.start()
# ... send requests ...
stop.set()
server.join()
print(counter.value())
```

## What it does not do

- There is no command-line program; everything is used from Python.
- The HTTP server does not route requests or serve the broker's API: it only
  answers each request with an empty `200 OK`. Stylesheet and documentation
  replies from `minibroker.assets` are plain `HttpReply` values and are not
  wired to any server.
- Storage is in memory only; `InMemoryStore` keeps nothing across restarts.
- There is no message publishing, consuming or acknowledging, and no
  rendering of event logs or HTML pages.