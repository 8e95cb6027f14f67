"""The data layer: the cluster, its nodes, topics and subscriptions.

Adding and deleting entities keeps the id lists of their owners in step,
and deleting a topic deletes its subscriptions and partitions (and so the
partitions' ledgers) as well.
"""

from __future__ import annotations

from typing import Callable

from .ledgers import PartitionLedgerMixin
from .store import (
    Cluster,
    DataError,
    NotFoundError,
    Node,
    PersistenceFailure,
    Subscription,
    Topic,
    UnmodifiedError,
    VersionMismatch,
)


class DataLayer(PartitionLedgerMixin):
    """Adds, reads, updates and deletes the configuration entities of one cluster."""

    # Cluster

    def get_cluster(self) -> Cluster:
        """Return the cluster record, creating an empty one if none is stored."""
        key = Cluster.key(self.cluster_name)
        while True:
            try:
                return self._store.load(key)
            except NotFoundError:
                pass
            except PersistenceFailure as err:
                raise PersistenceFailure(
                    f"{err.msg} getting the cluster record from the database"
                ) from err

            cluster = Cluster(self.cluster_name, [], [], 1, 1)
            try:
                self._store.save(cluster)
            except VersionMismatch:
                # Another writer created it first; read theirs.
                continue
            except PersistenceFailure as err:
                raise PersistenceFailure(
                    f"{err.msg} creating the cluster record in the database"
                ) from err
            return cluster

    def update_cluster(self, update: Callable[[Cluster], bool]) -> Cluster:
        """Apply update to the cluster record and save it, retrying on conflicts."""
        while True:
            cluster = self.get_cluster()
            update(cluster)
            try:
                self._store.save(cluster)
            except UnmodifiedError:
                return cluster
            except VersionMismatch:
                continue
            except PersistenceFailure as err:
                raise PersistenceFailure(f"{err.msg} updating the cluster") from err
            return cluster

    # Nodes

    def get_node(self, node_id: int) -> Node:
        """Return a node."""
        return self.get_entity(Node.key(node_id))

    def get_nodes(self) -> list[Node]:
        """Return the nodes of the cluster in the order the cluster lists them."""
        return [self.get_node(node_id) for node_id in self.get_cluster().node_ids]

    def add_node(
        self,
        ip_address: str,
        admin_port: int,
        pubsub_port: int,
        sync_port: int,
    ) -> Node:
        """Allocate the cluster's next node id and create that node."""
        allocated = 0

        def allocate(cluster: Cluster) -> bool:
            nonlocal allocated
            allocated = cluster.next_node_id
            cluster.next_node_id += 1
            cluster.node_ids.append(allocated)
            return True

        try:
            self.update_cluster(allocate)
        except DataError as err:
            raise PersistenceFailure(f"Failed to update cluster. {err!r}") from err

        node = Node(allocated, ip_address, admin_port, pubsub_port, sync_port)
        return self._save_new(node, "saving the new node")

    def delete_node(self, node_id: int) -> None:
        """Delete a node and remove its id from the cluster."""

        def forget(cluster: Cluster) -> bool:
            cluster.node_ids = [nid for nid in cluster.node_ids if nid != node_id]
            return True

        self.update_cluster(forget)
        self._delete_key(Node.key(node_id), f"deleting node {node_id}")

    def update_node(self, node_id: int, update: Callable[[Node], bool]) -> Node:
        """Apply update to a node and save it."""
        return self.update_entity(Node.key(node_id), update)

    # Topics

    def get_topic(self, topic_id: int) -> Topic:
        """Return a topic."""
        return self.get_entity(Topic.key(topic_id))

    def get_topics(self) -> list[Topic]:
        """Return the topics of the cluster in the order the cluster lists them."""
        return [self.get_topic(topic_id) for topic_id in self.get_cluster().topic_ids]

    def add_topic(self, name: str) -> Topic:
        """Allocate the cluster's next topic id and create that topic."""
        allocated = 0

        def allocate(cluster: Cluster) -> bool:
            nonlocal allocated
            allocated = cluster.next_topic_id
            cluster.next_topic_id += 1
            cluster.topic_ids.append(allocated)
            return True

        try:
            self.update_cluster(allocate)
        except DataError as err:
            raise PersistenceFailure(f"Failed to update cluster. {err!r}") from err

        topic = Topic(allocated, name, [], [], 1, 1)
        return self._save_new(topic, "saving the new topic")

    def delete_topic(self, topic_id: int) -> None:
        """Delete a topic with its subscriptions and partitions."""
        topic = self.get_topic(topic_id)

        for subscription_id in topic.subscription_ids:
            self.delete_subscription(topic_id, subscription_id)

        for partition_id in topic.partition_ids:
            self.delete_partition(topic_id, partition_id)

        def forget(cluster: Cluster) -> bool:
            cluster.topic_ids = [tid for tid in cluster.topic_ids if tid != topic_id]
            return True

        self.update_cluster(forget)
        self._delete_key(Topic.key(topic_id), f"deleting topic {topic_id}")

    def update_topic(self, topic_id: int, update: Callable[[Topic], bool]) -> Topic:
        """Apply update to a topic and save it."""
        return self.update_entity(Topic.key(topic_id), update)

    # Subscriptions

    def get_subscription(self, topic_id: int, subscription_id: int) -> Subscription:
        """Return a subscription to a topic."""
        return self.get_entity(Subscription.key(topic_id, subscription_id))

    def get_subscriptions(self, topic: Topic) -> list[Subscription]:
        """Return the subscriptions of a topic in the order the topic lists them."""
        return [
            self.get_subscription(topic.topic_id, sid) for sid in topic.subscription_ids
        ]

    def add_subscription(
        self, topic_id: int, name: str, has_key_affinity: bool
    ) -> Subscription:
        """Allocate the topic's next subscription id and create that subscription."""
        allocated = 0

        def allocate(topic: Topic) -> bool:
            nonlocal allocated
            allocated = topic.next_subscription_id
            topic.next_subscription_id += 1
            topic.subscription_ids.append(allocated)
            return True

        try:
            self.update_topic(topic_id, allocate)
        except DataError as err:
            raise PersistenceFailure(f"Failed to update topic. {err!r}") from err

        subscription = Subscription(topic_id, allocated, name, has_key_affinity, 1)
        return self._save_new(subscription, "saving the new subscription")

    def delete_subscription(self, topic_id: int, subscription_id: int) -> None:
        """Delete a subscription and remove its id from the topic."""

        def forget(topic: Topic) -> bool:
            topic.subscription_ids = [
                sid for sid in topic.subscription_ids if sid != subscription_id
            ]
            return True

        self.update_topic(topic_id, forget)
        self._delete_key(
            Subscription.key(topic_id, subscription_id),
            f"deleting subscription {subscription_id} from topic {topic_id}",
        )

    def update_subscription(
        self,
        topic_id: int,
        subscription_id: int,
        update: Callable[[Subscription], bool],
    ) -> Subscription:
        """Apply update to a subscription and save it."""
        return self.update_entity(Subscription.key(topic_id, subscription_id), update)