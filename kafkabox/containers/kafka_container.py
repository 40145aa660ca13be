import concurrent.futures
import warnings
from typing import Callable, List, Optional

from typing_extensions import override

from .configuration import ContainersConfiguration
from .generic_container import BindMode, GenericContainer
from .network import Network
from .socat_container import SocatContainer
from .utils.base58 import random_string
from .utils.logger import logger

DEFAULT_VERSION = "4.0.0"
KAFKA_PORT = 9092
BROKER_PORT = 9093
ZOOKEEPER_PORT = 2181

ZOOKEEPER_PROPERTIES_RESOURCE = "tc-zookeeper.properties"
ZOOKEEPER_PROPERTIES_PATH = "/zookeeper.properties"
READY_MESSAGES = ("started (kafka.server.KafkaServer)", "Kafka startTimeMs")


class KafkaContainer(GenericContainer):
    """
    Single Kafka broker, reachable from the host through a socat proxy.

    The broker declares two listeners on the same process. ``BROKER`` binds to
    the container's network alias and carries inter-broker traffic, so peers on
    the same Docker network resolve it by alias. ``PLAINTEXT`` is advertised
    with the proxy's host and mapped port, which is only known once the proxy
    is running, so ``KAFKA_ADVERTISED_LISTENERS`` is computed in :meth:`start`.

    Usage::

        with KafkaContainer("5.4.3") as kafka:
            bootstrap = kafka.get_bootstrap_servers()

        kafka = KafkaContainer(configure=lambda b: b.with_external_zookeeper("zk:2181"))
    """

    class Builder(GenericContainer.Builder):

        def with_embedded_zookeeper(self) -> "KafkaContainer.Builder":
            self.container.external_zookeeper_connect = None
            return self

        def with_external_zookeeper(self, connect_string: str) -> "KafkaContainer.Builder":
            self.container.external_zookeeper_connect = connect_string
            return self

    def __init__(
        self,
        version: str = DEFAULT_VERSION,
        configure: Optional[Callable[["KafkaContainer.Builder"], None]] = None,
        startup_timeout: Optional[float] = None,
    ) -> None:
        GenericContainer.__init__(
            self,
            f"{ContainersConfiguration.get_instance().kafka_image}:{version}",
            startup_timeout=startup_timeout,
        )
        self.external_zookeeper_connect: Optional[str] = None
        self.proxy: Optional[SocatContainer] = None
        self._owned_network: Optional[Network] = None
        self._default_alias: Optional[str] = None
        self._configurators: List[Callable[["KafkaContainer.Builder"], None]] = []

        if configure is None:
            self._apply_defaults(self.Builder(self))
        else:
            self._configurators.append(self._apply_defaults)
            self._configurators.append(configure)

    def _apply_defaults(self, builder: "KafkaContainer.Builder") -> None:
        network = Network.new_network()
        self._owned_network = network
        network_alias = f"kafka-{random_string(6)}"
        self._default_alias = network_alias
        builder.with_network(network)
        builder.with_network_aliases(network_alias)
        builder.with_exposed_ports(KAFKA_PORT)

        # Two listeners with distinct names: with KAFKA_INTER_BROKER_LISTENER_NAME set, the broker talks
        # to itself over BROKER instead of the advertised PLAINTEXT address, which only resolves on the host.
        builder.with_env("KAFKA_LISTENERS", self._listeners(network_alias))
        builder.with_env("KAFKA_LISTENER_SECURITY_PROTOCOL_MAP", "BROKER:PLAINTEXT,PLAINTEXT:PLAINTEXT")
        builder.with_env("KAFKA_INTER_BROKER_LISTENER_NAME", "BROKER")

        builder.with_env("KAFKA_BROKER_ID", "1")
        builder.with_env("KAFKA_OFFSETS_TOPIC_REPLICATION_FACTOR", "1")
        builder.with_env("KAFKA_OFFSETS_TOPIC_NUM_PARTITIONS", "1")
        builder.with_env("KAFKA_LOG_FLUSH_INTERVAL_MESSAGES", str(2**63 - 1))

    @staticmethod
    def _listeners(network_alias: str) -> str:
        return f"PLAINTEXT://0.0.0.0:{KAFKA_PORT},BROKER://{network_alias}:{BROKER_PORT}"

    def with_embedded_zookeeper(self) -> "KafkaContainer":
        warnings.warn(
            "KafkaContainer.with_embedded_zookeeper() is deprecated, use "
            "KafkaContainer(configure=lambda b: b.with_embedded_zookeeper())",
            DeprecationWarning,
            stacklevel=2,
        )
        self._configurators.append(lambda b: b.with_embedded_zookeeper())
        return self

    def with_external_zookeeper(self, connect_string: str) -> "KafkaContainer":
        warnings.warn(
            "KafkaContainer.with_external_zookeeper() is deprecated, use "
            "KafkaContainer(configure=lambda b: b.with_external_zookeeper(...))",
            DeprecationWarning,
            stacklevel=2,
        )
        self._configurators.append(lambda b: b.with_external_zookeeper(connect_string))
        return self

    def get_bootstrap_servers(self) -> str:
        if self.proxy is None:
            raise RuntimeError("[KC] Bootstrap servers are only known after start()")
        return f"PLAINTEXT://{self.proxy.get_container_host_ip()}:{self.proxy.get_first_mapped_port()}"

    @override
    def start(self) -> "KafkaContainer":
        if self.container is not None or (self.proxy is not None and self.proxy.container is not None):
            raise RuntimeError("[KC] Kafka container is already started, call stop() first")

        builder = self.Builder(self)
        configurators, self._configurators = self._configurators, []
        for configure in configurators:
            configure(builder)

        if not self.network_aliases:
            raise ValueError("[KC] Kafka container needs at least one network alias")
        network_alias = self.network_aliases[0]
        if (
            self._default_alias is not None
            and network_alias != self._default_alias
            and self.env.get("KAFKA_LISTENERS") == self._listeners(self._default_alias)
        ):
            # alias replaced by a configure callback
            self.with_env("KAFKA_LISTENERS", self._listeners(network_alias))

        logger.info(f"[KC] Starting proxy for Kafka broker {network_alias}...")
        self.proxy = (
            SocatContainer()
            .with_network(self.network)
            .with_target(KAFKA_PORT, network_alias)
            .with_target(ZOOKEEPER_PORT, network_alias)
        )
        self.proxy.start()

        self.with_env(
            "KAFKA_ADVERTISED_LISTENERS",
            f"BROKER://{network_alias}:{BROKER_PORT},"
            f"PLAINTEXT://{self.proxy.get_container_host_ip()}:{self.proxy.get_first_mapped_port()}",
        )

        if self.external_zookeeper_connect is not None:
            logger.debug(f"[KC] Using external ZooKeeper at {self.external_zookeeper_connect}")
            self.with_env("KAFKA_ZOOKEEPER_CONNECT", self.external_zookeeper_connect)
        else:
            logger.debug("[KC] Using embedded ZooKeeper")
            self.add_exposed_port(ZOOKEEPER_PORT)
            self.with_env("KAFKA_ZOOKEEPER_CONNECT", f"localhost:{ZOOKEEPER_PORT}")
            self.with_resource_mapping(ZOOKEEPER_PROPERTIES_RESOURCE, ZOOKEEPER_PROPERTIES_PATH, BindMode.READ_ONLY)
            self.with_command(
                "sh",
                "-c",
                f"zookeeper-server-start {ZOOKEEPER_PROPERTIES_PATH} & /etc/confluent/docker/run",
            )

        logger.info("[KC] Starting Kafka broker container...")
        GenericContainer.start(self)
        logger.info(f"[KC] Kafka broker is up and running at {self.get_bootstrap_servers()}")
        return self

    @override
    def _wait_until_ready(self) -> None:
        # Embedded ZooKeeper runs in the background; if it dies the broker never logs its startup line.
        self.wait_for_log_message(*READY_MESSAGES)

    @override
    def stop(self) -> None:
        logger.info("[KC] Stopping Kafka broker and proxy...")
        stops = {"kafka": lambda: GenericContainer.stop(self)}
        if self.proxy is not None:
            stops["proxy"] = self.proxy.stop

        errors = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(stops)) as executor:
            futures = {executor.submit(stop): name for name, stop in stops.items()}
            for future in concurrent.futures.as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    logger.error(f"[KC] Failed to stop {futures[future]}: {e}")
                    errors.append(e)
        if errors:
            # containers that failed to stop are still attached to the network
            logger.warning(f"[KC] Leaving network {self.network.name if self.network else None} in place")
            raise errors[0]
        if self._owned_network is not None and self.network is self._owned_network:
            self._owned_network.close()
        logger.info("[KC] Kafka broker and proxy stopped")
