import time
from typing import Callable, Dict, Iterable, List

from confluent_kafka import KafkaException
from confluent_kafka.admin import AdminClient, NewTopic

from .utils.logger import logger


class KafkaAdmin:
    """Thin admin helper for tests talking to a containerized broker."""

    def __init__(
        self,
        bootstrap_servers: str,
        client_factory: Callable[[Dict[str, str]], AdminClient] = AdminClient,
    ) -> None:
        self.bootstrap_servers = bootstrap_servers
        self.admin_client = client_factory({"bootstrap.servers": bootstrap_servers})

    def wait_until_available(self, timeout: float = 30.0) -> None:
        """
        Polls cluster metadata until the broker answers.

        Args:
            timeout (float): Seconds to wait before giving up.

        Raises:
            TimeoutError: If no metadata could be fetched in time.
        """
        logger.debug(f"[KA] Waiting for Kafka broker at {self.bootstrap_servers}...")
        start = time.time()
        while time.time() - start < timeout:
            try:
                metadata = self.admin_client.list_topics(timeout=5)
            except KafkaException as e:
                logger.debug(f"[KA] Broker not available yet: {e}")
            else:
                if metadata.brokers:
                    return
            time.sleep(1)
        raise TimeoutError(f"[KA] Kafka broker at {self.bootstrap_servers} did not become available in time.")

    def list_topics(self) -> List[str]:
        metadata = self.admin_client.list_topics(timeout=10)
        return sorted(t for t in metadata.topics.keys() if not t.startswith("__"))

    def create_topics(self, topics: Iterable[str], num_partitions: int = 1, replication_factor: int = 1) -> None:
        new_topics = [
            NewTopic(topic, num_partitions=num_partitions, replication_factor=replication_factor)
            for topic in topics
        ]
        if not new_topics:
            return
        create_futures = self.admin_client.create_topics(new_topics, operation_timeout=30)
        for topic, future in create_futures.items():
            future.result()
            logger.debug(f"[KA] Created topic: {topic}")

    def reset_broker_state(self) -> None:
        """Delete all non-internal topics from the broker."""
        logger.info("[KA] Resetting Kafka broker state...")
        topics_to_delete = self.list_topics()

        if not topics_to_delete:
            logger.info("[KA] No topics to delete.")
            return

        logger.info(f"[KA] Deleting topics: {topics_to_delete}")
        delete_futures = self.admin_client.delete_topics(topics_to_delete, operation_timeout=30)

        failed = []
        for topic, future in delete_futures.items():
            try:
                future.result()
                logger.debug(f"[KA] Deleted topic: {topic}")
            except KafkaException as e:
                logger.error(f"[KA] Failed to delete topic {topic}: {e}")
                failed.append(topic)
        if failed:
            raise RuntimeError(f"[KA] Failed to delete topics {failed}")
