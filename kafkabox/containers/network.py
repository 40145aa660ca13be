import uuid
from typing import Iterable, Optional

import docker
from docker.models.containers import Container
from docker.models.networks import Network as DockerNetwork

from .utils.logger import logger


class Network:
    """Isolated bridge network, created on first use."""

    def __init__(self, name: Optional[str] = None, driver: str = "bridge") -> None:
        self.name = name or f"kafkabox-{uuid.uuid4().hex[:12]}"
        self.driver = driver
        self._client = None
        self._network: Optional[DockerNetwork] = None
        self._created = False

    @classmethod
    def new_network(cls) -> "Network":
        return cls()

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def create(self) -> DockerNetwork:
        if self._network is not None:
            return self._network
        try:
            self._network = self.client.networks.get(self.name)
            logger.debug(f"[NW] Reusing existing network {self.name}")
        except docker.errors.NotFound:
            self._network = self.client.networks.create(self.name, driver=self.driver)
            self._created = True
            logger.debug(f"[NW] Created network {self.name}")
        return self._network

    @property
    def id(self) -> str:
        return self.create().id

    def connect(self, container: Container, aliases: Iterable[str] = ()) -> None:
        aliases = list(aliases)
        logger.debug(f"[NW] Connecting {container.name} to {self.name} with aliases {aliases}")
        self.create().connect(container, aliases=aliases or None)

    def close(self) -> None:
        if self._network is None:
            return
        if self._created:
            logger.debug(f"[NW] Removing network {self.name}")
            try:
                self._network.remove()
            except docker.errors.NotFound:
                pass  # already removed
        self._network = None
        self._created = False
