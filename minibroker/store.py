"""Persisted configuration entities, an in-memory store and the data layer core.

Updates use optimistic concurrency: every saved entity carries a version,
and saving an entity whose version no longer matches the stored one fails
so the caller can re-read and retry the whole read-modify-write.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Tuple

EntityKey = Tuple[str, str]


class DataError(Exception):
    """Base class of errors raised by the store and the data layer."""


class NotFoundError(DataError):
    """No entity is stored under the key."""

    def __init__(self, entity_type: str, entity_key: str) -> None:
        super().__init__(f"{entity_type} entity with id={entity_key} was not found")
        self.entity_type = entity_type
        self.entity_key = entity_key


class UnmodifiedError(DataError):
    """The entity was not changed, so nothing was saved."""


class PersistenceFailure(DataError):
    """The underlying storage failed."""

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg


class VersionMismatch(DataError):
    """The entity was changed by someone else since it was read."""


@dataclass
class Cluster:
    """The cluster record listing its nodes and topics."""

    name: str
    node_ids: list[int] = field(default_factory=list)
    topic_ids: list[int] = field(default_factory=list)
    next_node_id: int = 1
    next_topic_id: int = 1
    version: int = field(default=0, compare=False)

    @staticmethod
    def key(name: str) -> EntityKey:
        """Return the storage key of the named cluster."""
        return ("cluster", name)

    def _storage_key(self) -> EntityKey:
        return Cluster.key(self.name)


@dataclass
class Node:
    """A broker node and the ports it listens on."""

    node_id: int
    ip_address: str
    admin_port: int
    pubsub_port: int
    sync_port: int
    version: int = field(default=0, compare=False)

    @staticmethod
    def key(node_id: int) -> EntityKey:
        """Return the storage key of a node."""
        return ("node", str(node_id))

    def _storage_key(self) -> EntityKey:
        return Node.key(self.node_id)


@dataclass
class Topic:
    """A topic with its partitions and subscriptions."""

    topic_id: int
    name: str
    partition_ids: list[int] = field(default_factory=list)
    subscription_ids: list[int] = field(default_factory=list)
    next_partition_id: int = 1
    next_subscription_id: int = 1
    version: int = field(default=0, compare=False)

    @staticmethod
    def key(topic_id: int) -> EntityKey:
        """Return the storage key of a topic."""
        return ("topic", str(topic_id))

    def _storage_key(self) -> EntityKey:
        return Topic.key(self.topic_id)


@dataclass
class Partition:
    """A partition of a topic, owned by one node, holding ledgers."""

    topic_id: int
    partition_id: int
    ledger_ids: list[int] = field(default_factory=list)
    next_ledger_id: int = 1
    node_id: int = 0
    version: int = field(default=0, compare=False)

    @staticmethod
    def key(topic_id: int, partition_id: int) -> EntityKey:
        """Return the storage key of a partition."""
        return ("partition", f"{topic_id}/{partition_id}")

    def _storage_key(self) -> EntityKey:
        return Partition.key(self.topic_id, self.partition_id)


@dataclass
class Subscription:
    """A named subscription to a topic."""

    topic_id: int
    subscription_id: int
    name: str
    has_key_affinity: bool = False
    next_consumer_id: int = 1
    version: int = field(default=0, compare=False)

    @staticmethod
    def key(topic_id: int, subscription_id: int) -> EntityKey:
        """Return the storage key of a subscription."""
        return ("subscription", f"{topic_id}/{subscription_id}")

    def _storage_key(self) -> EntityKey:
        return Subscription.key(self.topic_id, self.subscription_id)


@dataclass
class Ledger:
    """A ledger of messages within a partition."""

    topic_id: int
    partition_id: int
    ledger_id: int
    node_id: int
    version: int = field(default=0, compare=False)

    @staticmethod
    def key(topic_id: int, partition_id: int, ledger_id: int) -> EntityKey:
        """Return the storage key of a ledger."""
        return ("ledger", f"{topic_id}/{partition_id}/{ledger_id}")

    def _storage_key(self) -> EntityKey:
        return Ledger.key(self.topic_id, self.partition_id, self.ledger_id)


class InMemoryStore:
    """A thread-safe versioned entity store held in memory."""

    def __init__(self) -> None:
        self._entities: dict[EntityKey, Any] = {}
        self._lock = threading.RLock()

    def load(self, key: EntityKey) -> Any:
        """Return a copy of the entity stored under key; raise NotFoundError if absent."""
        with self._lock:
            try:
                stored = self._entities[key]
            except KeyError:
                raise NotFoundError(key[0], key[1]) from None
            return copy.deepcopy(stored)

    def save(self, entity: Any) -> None:
        """Store the entity and advance its version.

        Raises VersionMismatch if the stored version differs from the entity's,
        and UnmodifiedError if the entity equals what is stored.
        """
        key = entity._storage_key()
        with self._lock:
            stored = self._entities.get(key)
            if stored is None:
                if entity.version != 0:
                    raise VersionMismatch()
            elif stored.version != entity.version:
                raise VersionMismatch()
            elif stored == entity:
                raise UnmodifiedError()
            entity.version += 1
            self._entities[key] = copy.deepcopy(entity)

    def delete(self, key: EntityKey) -> None:
        """Remove the entity stored under key; raise NotFoundError if absent."""
        with self._lock:
            if key not in self._entities:
                raise NotFoundError(key[0], key[1])
            del self._entities[key]


class DataLayerBase:
    """Reads and read-modify-writes entities of one cluster in a store."""

    def __init__(self, cluster_name: str, store: Any) -> None:
        self.cluster_name = cluster_name
        self._store = store

    def get_entity(self, key: EntityKey) -> Any:
        """Load an entity; a missing one raises PersistenceFailure."""
        try:
            return self._store.load(key)
        except NotFoundError as err:
            raise PersistenceFailure(
                f"{err.entity_type} entity with id={err.entity_key} was not found"
            ) from err

    def update_entity(
        self,
        key: EntityKey,
        update: Callable[[Any], bool],
        strict: bool = False,
    ) -> Any:
        """Apply update to the entity and save it, retrying on concurrent changes.

        update returns whether it changed the entity. With strict set, a False
        return raises UnmodifiedError; otherwise the entity is saved anyway.
        """
        while True:
            entity = self.get_entity(key)
            changed = update(entity)
            if strict and not changed:
                raise UnmodifiedError()
            try:
                self._store.save(entity)
            except UnmodifiedError:
                return entity
            except VersionMismatch:
                continue
            except PersistenceFailure as err:
                raise PersistenceFailure(
                    f"{err.msg} updating {key[0]} {key[1]}"
                ) from err
            return entity