import pytest

from minibroker.ledgers import PartitionLedgerMixin
from minibroker.store import (
    InMemoryStore,
    Ledger,
    NotFoundError,
    Partition,
    PersistenceFailure,
    Topic,
    UnmodifiedError,
)


@pytest.fixture
def store():
    store = InMemoryStore()
    store.save(Topic(1, "orders"))
    return store


@pytest.fixture
def layer(store):
    return PartitionLedgerMixin("test", store)


def test_add_partition_allocates_sequential_ids(layer):
    first = layer.add_partition(1, 5)
    second = layer.add_partition(1, 6)
    assert (first.partition_id, second.partition_id) == (1, 2)
    assert first.node_id == 5
    topic = layer.get_entity(Topic.key(1))
    assert topic.partition_ids == [1, 2]
    assert layer.get_partitions(topic) == [first, second]


def test_new_partition_starts_without_ledgers(layer):
    partition = layer.add_partition(1, 5)
    stored = layer.get_partition(1, partition.partition_id)
    assert stored.ledger_ids == []
    assert stored.next_ledger_id == 1


def test_add_partition_to_missing_topic_fails(layer):
    with pytest.raises(PersistenceFailure):
        layer.add_partition(99, 5)


def test_add_ledger_updates_partition(layer):
    partition = layer.add_partition(1, 5)
    first = layer.add_ledger(1, partition.partition_id, 7)
    second = layer.add_ledger(1, partition.partition_id, 8)
    assert (first.ledger_id, second.ledger_id) == (1, 2)
    assert first.node_id == 7
    stored = layer.get_partition(1, partition.partition_id)
    assert stored.ledger_ids == [1, 2]
    assert layer.get_ledgers(stored) == [first, second]


def test_add_ledger_to_missing_partition_fails(layer):
    with pytest.raises(PersistenceFailure):
        layer.add_ledger(1, 42, 7)


def test_add_ledger_if_none_creates_once(layer):
    partition = layer.add_partition(1, 5)
    created = layer.add_ledger_if_none(1, partition.partition_id)
    again = layer.add_ledger_if_none(1, partition.partition_id)
    assert created == again
    assert created.node_id == 5
    assert layer.get_partition(1, partition.partition_id).ledger_ids == [created.ledger_id]


def test_add_ledger_if_none_returns_latest_ledger(layer):
    partition = layer.add_partition(1, 5)
    layer.add_ledger(1, partition.partition_id, 5)
    latest = layer.add_ledger(1, partition.partition_id, 5)
    assert layer.add_ledger_if_none(1, partition.partition_id) == latest


def test_get_last_ledger_id_is_stable(layer):
    partition = layer.add_partition(1, 5)
    first = layer.get_last_ledger_id(partition)
    assert first == layer.get_last_ledger_id(partition)
    assert layer.get_partition(1, partition.partition_id).ledger_ids == [first]


def test_get_last_ledger_id_of_missing_partition_is_none(layer):
    assert layer.get_last_ledger_id(Partition(1, 42)) is None


def test_update_partition_without_change_raises(layer):
    partition = layer.add_partition(1, 5)
    with pytest.raises(UnmodifiedError):
        layer.update_partition(1, partition.partition_id, lambda p: False)


def test_update_partition_saves_change(layer):
    partition = layer.add_partition(1, 5)

    def move(p):
        p.node_id = 9
        return True

    layer.update_partition(1, partition.partition_id, move)
    assert layer.get_partition(1, partition.partition_id).node_id == 9


def test_update_ledger_saves_change(layer):
    partition = layer.add_partition(1, 5)
    ledger = layer.add_ledger(1, partition.partition_id, 5)

    def move(led):
        led.node_id = 9
        return True

    updated = layer.update_ledger(1, partition.partition_id, ledger.ledger_id, move)
    assert updated.node_id == 9
    assert layer.get_ledger(1, partition.partition_id, ledger.ledger_id).node_id == 9


def test_delete_ledger_removes_it(layer, store):
    partition = layer.add_partition(1, 5)
    keep = layer.add_ledger(1, partition.partition_id, 5)
    gone = layer.add_ledger(1, partition.partition_id, 5)
    layer.delete_ledger(1, partition.partition_id, gone.ledger_id)
    assert layer.get_partition(1, partition.partition_id).ledger_ids == [keep.ledger_id]
    with pytest.raises(NotFoundError):
        store.load(Ledger.key(1, partition.partition_id, gone.ledger_id))


def test_delete_unknown_ledger_leaves_partition_alone(layer):
    partition = layer.add_partition(1, 5)
    ledger = layer.add_ledger(1, partition.partition_id, 5)
    layer.delete_ledger(1, partition.partition_id, ledger.ledger_id + 10)
    assert layer.get_partition(1, partition.partition_id).ledger_ids == [ledger.ledger_id]


def test_delete_partition_cascades(layer, store):
    partition = layer.add_partition(1, 5)
    other = layer.add_partition(1, 6)
    ledgers = [layer.add_ledger(1, partition.partition_id, 5) for _ in range(2)]
    layer.delete_partition(1, partition.partition_id)
    assert layer.get_entity(Topic.key(1)).partition_ids == [other.partition_id]
    with pytest.raises(NotFoundError):
        store.load(Partition.key(1, partition.partition_id))
    for ledger in ledgers:
        with pytest.raises(NotFoundError):
            store.load(Ledger.key(1, partition.partition_id, ledger.ledger_id))


def test_delete_missing_partition_fails(layer):
    with pytest.raises(PersistenceFailure):
        layer.delete_partition(1, 42)