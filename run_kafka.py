import sys
import time

from kafkabox.containers.kafka_admin import KafkaAdmin
from kafkabox.containers.kafka_container import DEFAULT_VERSION, KafkaContainer
from kafkabox.containers.utils.logger import logger


if __name__ == "__main__":
    version = DEFAULT_VERSION
    external_zookeeper = None
    if len(sys.argv) > 1:
        version = sys.argv[1]
    if len(sys.argv) > 2:
        external_zookeeper = sys.argv[2]

    if external_zookeeper is None:
        kafka = KafkaContainer(version)
    else:
        kafka = KafkaContainer(version, configure=lambda b: b.with_external_zookeeper(external_zookeeper))

    logger.info(f"Starting Kafka {version}, press Ctrl+C to stop")
    with kafka:
        KafkaAdmin(kafka.get_bootstrap_servers()).wait_until_available()
        logger.info(f"Bootstrap servers: {kafka.get_bootstrap_servers()}")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping Kafka...")
