"""Partitions of topics and the ledgers within partitions."""

from __future__ import annotations

from typing import Any, Callable, Optional

from .store import (
    DataError,
    DataLayerBase,
    Ledger,
    NotFoundError,
    Partition,
    PersistenceFailure,
    Topic,
    UnmodifiedError,
)


class PartitionLedgerMixin(DataLayerBase):
    """Adds, reads, updates and deletes partitions and ledgers.

    Adding or deleting keeps the owning topic's or partition's id list in
    step, and deleting a partition deletes its ledgers too.
    """

    def _save_new(self, entity: Any, context: str) -> Any:
        try:
            self._store.save(entity)
        except PersistenceFailure as err:
            raise PersistenceFailure(f"{err.msg} {context}") from err
        return entity

    def _delete_key(self, key: Any, context: str) -> None:
        try:
            self._store.delete(key)
        except NotFoundError:
            pass
        except PersistenceFailure as err:
            raise PersistenceFailure(f"{err.msg} {context}") from err

    def get_partition(self, topic_id: int, partition_id: int) -> Partition:
        """Return a partition of a topic."""
        return self.get_entity(Partition.key(topic_id, partition_id))

    def get_partitions(self, topic: Topic) -> list[Partition]:
        """Return the partitions of a topic in the order the topic lists them."""
        return [self.get_partition(topic.topic_id, pid) for pid in topic.partition_ids]

    def add_partition(self, topic_id: int, node_id: int) -> Partition:
        """Allocate the topic's next partition id and create that partition."""
        allocated = 0

        def allocate(topic: Topic) -> bool:
            nonlocal allocated
            allocated = topic.next_partition_id
            topic.next_partition_id += 1
            topic.partition_ids.append(allocated)
            return True

        try:
            self.update_entity(Topic.key(topic_id), allocate)
        except DataError as err:
            raise PersistenceFailure(f"Failed to update topic. {err!r}") from err

        partition = Partition(topic_id, allocated, [], 1, node_id)
        return self._save_new(partition, f"saving the new partition in topic {topic_id}")

    def delete_partition(self, topic_id: int, partition_id: int) -> None:
        """Delete a partition, its ledgers, and its id from the topic."""
        partition = self.get_partition(topic_id, partition_id)

        for ledger_id in partition.ledger_ids:
            self.delete_ledger(topic_id, partition_id, ledger_id)

        def forget(topic: Topic) -> bool:
            topic.partition_ids = [pid for pid in topic.partition_ids if pid != partition_id]
            return True

        self.update_entity(Topic.key(topic_id), forget)
        self._delete_key(
            Partition.key(topic_id, partition_id),
            f"deleting partition {partition_id} from topic {topic_id}",
        )

    def update_partition(
        self, topic_id: int, partition_id: int, update: Callable[[Partition], bool]
    ) -> Partition:
        """Apply update to a partition; raise UnmodifiedError if it returns False."""
        return self.update_entity(Partition.key(topic_id, partition_id), update, strict=True)

    def get_ledger(self, topic_id: int, partition_id: int, ledger_id: int) -> Ledger:
        """Return a ledger of a partition."""
        return self.get_entity(Ledger.key(topic_id, partition_id, ledger_id))

    def get_ledgers(self, partition: Partition) -> list[Ledger]:
        """Return the ledgers of a partition in the order the partition lists them."""
        return [
            self.get_ledger(partition.topic_id, partition.partition_id, lid)
            for lid in partition.ledger_ids
        ]

    def get_last_ledger_id(self, partition: Partition) -> Optional[int]:
        """Return the id of the partition's current ledger, creating one if needed."""
        try:
            ledger = self.add_ledger_if_none(partition.topic_id, partition.partition_id)
        except DataError:
            return None
        return ledger.ledger_id

    def add_ledger(self, topic_id: int, partition_id: int, node_id: int) -> Ledger:
        """Allocate the partition's next ledger id and create that ledger."""
        allocated = 0

        def allocate(partition: Partition) -> bool:
            nonlocal allocated
            allocated = partition.next_ledger_id
            partition.next_ledger_id += 1
            partition.ledger_ids.append(allocated)
            return True

        try:
            self.update_partition(topic_id, partition_id, allocate)
        except DataError as err:
            raise PersistenceFailure(f"Failed to update partition. {err!r}") from err

        ledger = Ledger(topic_id, partition_id, allocated, node_id)
        return self._save_new(ledger, "saving the new ledger")

    def add_ledger_if_none(self, topic_id: int, partition_id: int) -> Ledger:
        """Return the partition's latest ledger, creating it if it does not exist."""
        ledger_id = 0
        node_id = 0

        def allocate(partition: Partition) -> bool:
            nonlocal ledger_id, node_id
            ledger_id = partition.next_ledger_id - 1
            node_id = partition.node_id
            if ledger_id in partition.ledger_ids:
                return False
            ledger_id = partition.next_ledger_id
            partition.next_ledger_id += 1
            partition.ledger_ids.append(ledger_id)
            return True

        try:
            self.update_partition(topic_id, partition_id, allocate)
        except UnmodifiedError:
            try:
                return self.get_ledger(topic_id, partition_id, ledger_id)
            except DataError as err:
                raise PersistenceFailure(repr(err)) from err
        except DataError as err:
            raise PersistenceFailure(repr(err)) from err

        ledger = Ledger(topic_id, partition_id, ledger_id, node_id)
        return self._save_new(ledger, "saving the new ledger")

    def update_ledger(
        self,
        topic_id: int,
        partition_id: int,
        ledger_id: int,
        update: Callable[[Ledger], bool],
    ) -> Ledger:
        """Apply update to a ledger and save it."""
        return self.update_entity(Ledger.key(topic_id, partition_id, ledger_id), update)

    def delete_ledger(self, topic_id: int, partition_id: int, ledger_id: int) -> None:
        """Delete a ledger and remove its id from the partition."""

        def forget(partition: Partition) -> bool:
            partition.ledger_ids = [lid for lid in partition.ledger_ids if lid != ledger_id]
            return True

        self.update_partition(topic_id, partition_id, forget)
        self._delete_key(
            Ledger.key(topic_id, partition_id, ledger_id),
            f"deleting ledger {ledger_id} in partition {partition_id} from topic {topic_id}",
        )