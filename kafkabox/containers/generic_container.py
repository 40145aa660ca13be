import os
import time
from typing import Dict, List, Optional
from urllib.parse import urlparse

import docker
from docker.models.containers import Container

from .configuration import ContainersConfiguration
from .network import Network
from .utils.logger import logger

RESOURCES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "resources")


class BindMode:
    READ_ONLY = "ro"
    READ_WRITE = "rw"


class GenericContainer:
    """
    A single Docker container described by fluent ``with_*`` setters.

    Nothing touches the Docker daemon until :meth:`start`; the setters only
    record the desired image, environment, ports, network, mounts and command.
    """

    class Builder:
        """Restricted view of a container handed to configuration callbacks."""

        def __init__(self, container: "GenericContainer") -> None:
            self.container = container

        def with_network(self, network: Optional[Network]) -> "GenericContainer.Builder":
            self.container.with_network(network)
            return self

        def with_network_aliases(self, *aliases: str) -> "GenericContainer.Builder":
            self.container.with_network_aliases(*aliases)
            return self

        def with_exposed_ports(self, *ports: int) -> "GenericContainer.Builder":
            self.container.with_exposed_ports(*ports)
            return self

        def with_env(self, key: str, value: str) -> "GenericContainer.Builder":
            self.container.with_env(key, value)
            return self

        def with_command(self, *command: str) -> "GenericContainer.Builder":
            self.container.with_command(*command)
            return self

    def __init__(self, image: str, startup_timeout: Optional[float] = None) -> None:
        self.image = image
        self.name: Optional[str] = None
        self.env: Dict[str, str] = {}
        self.exposed_ports: List[int] = []
        self.network: Optional[Network] = None
        self.network_aliases: List[str] = []
        self.command: Optional[List[str]] = None
        self.entrypoint: Optional[List[str]] = None
        self.volumes: Dict[str, Dict[str, str]] = {}
        self.startup_timeout = startup_timeout or ContainersConfiguration.get_instance().startup_timeout
        self.container: Optional[Container] = None
        self._client = None

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def __enter__(self) -> "GenericContainer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def with_name(self, name: str) -> "GenericContainer":
        self.name = name
        return self

    def with_env(self, key: str, value: str) -> "GenericContainer":
        self.env[key] = str(value)
        return self

    def with_exposed_ports(self, *ports: int) -> "GenericContainer":
        self.exposed_ports = [int(port) for port in ports]
        return self

    def add_exposed_port(self, port: int) -> "GenericContainer":
        if int(port) not in self.exposed_ports:
            self.exposed_ports.append(int(port))
        return self

    def with_network(self, network: Optional[Network]) -> "GenericContainer":
        self.network = network
        return self

    def with_network_aliases(self, *aliases: str) -> "GenericContainer":
        self.network_aliases = list(aliases)
        return self

    def with_command(self, *command: str) -> "GenericContainer":
        self.command = list(command)
        return self

    def with_entrypoint(self, *entrypoint: str) -> "GenericContainer":
        self.entrypoint = list(entrypoint)
        return self

    def with_volume_mapping(self, host_path: str, container_path: str, mode: str = BindMode.READ_WRITE) -> "GenericContainer":
        if mode not in (BindMode.READ_ONLY, BindMode.READ_WRITE):
            raise ValueError(f"[GC] Unknown bind mode '{mode}'")
        self.volumes[os.path.abspath(host_path)] = {"bind": container_path, "mode": mode}
        return self

    def with_resource_mapping(self, resource_name: str, container_path: str, mode: str = BindMode.READ_ONLY) -> "GenericContainer":
        """
        Mounts a file shipped in the package's ``resources`` directory.

        Args:
            resource_name (str): File name relative to the resources directory.
            container_path (str): Absolute path inside the container.
            mode (str): One of the ``BindMode`` values.

        Returns:
            GenericContainer: This container.

        Raises:
            ValueError: If the resource does not exist.
        """
        host_path = os.path.join(RESOURCES_DIR, resource_name)
        if not os.path.exists(host_path):
            raise ValueError(f"[GC] Resource '{resource_name}' not found in {RESOURCES_DIR}")
        return self.with_volume_mapping(host_path, container_path, mode)

    def start(self) -> "GenericContainer":
        self._pull_image()
        logger.debug(f"[GC] Creating container from image {self.image}")
        logger.debug(f"[GC] Environment: {self.env}")
        container = self.client.containers.create(
            image=self.image,
            name=self.name,
            environment=self.env,
            ports={f"{port}/tcp": None for port in self.exposed_ports},
            volumes=self.volumes or None,
            command=self.command,
            entrypoint=self.entrypoint,
            detach=True,
        )
        self.container = container
        if self.network is not None:
            self.network.connect(container, self.network_aliases)
        container.start()
        logger.debug(f"[GC] Started container {container.name}")
        self._wait_until_ready()
        return self

    def stop(self) -> None:
        if self.container is None:
            return
        logger.debug(f"[GC] Removing container {self.container.name}...")
        try:
            self.container.remove(force=True, v=True)
        except docker.errors.NotFound:
            pass  # Nothing to stop
        self.container = None

    def _pull_image(self) -> None:
        try:
            self.client.images.get(self.image)
        except docker.errors.ImageNotFound:
            logger.info(f"[GC] Pulling image {self.image}...")
            self.client.images.pull(self.image)

    def _wait_until_ready(self) -> None:
        start = time.time()
        while time.time() - start < self.startup_timeout:
            if self._is_running():
                return
            time.sleep(0.5)
        raise TimeoutError(f"[GC] Container {self.container.name} did not start within {self.startup_timeout}s")

    def _is_running(self) -> bool:
        self.container.reload()
        if self.container.status in ("exited", "dead"):
            raise RuntimeError(
                f"[GC] Container {self.container.name} exited during startup:\n{self.logs()}"
            )
        return self.container.status == "running"

    def wait_for_log_message(self, *messages: str, timeout: Optional[float] = None) -> None:
        """Blocks until any of ``messages`` appears in the container logs."""
        timeout = timeout or self.startup_timeout
        logger.debug(f"[GC] Waiting for {self.container.name} to log one of {list(messages)}...")
        start = time.time()
        while time.time() - start < timeout:
            logs = self.logs()
            if any(message in logs for message in messages):
                return
            self._is_running()
            time.sleep(1)
        raise TimeoutError(f"[GC] Container {self.container.name} did not become ready in time.")

    def logs(self) -> str:
        if self.container is None:
            return ""
        return self.container.logs().decode("utf-8", errors="replace")

    def get_container_host_ip(self) -> str:
        host_override = ContainersConfiguration.get_instance().host_override
        if host_override:
            return host_override
        docker_host = os.environ.get("DOCKER_HOST", "")
        if docker_host.startswith("tcp://"):
            return urlparse(docker_host).hostname or "localhost"
        return "localhost"

    def get_mapped_port(self, port: int) -> int:
        if self.container is None:
            raise RuntimeError(f"[GC] Container for image {self.image} is not started")
        self.container.reload()
        bindings = (self.container.attrs["NetworkSettings"]["Ports"] or {}).get(f"{port}/tcp")
        if not bindings:
            raise ValueError(f"[GC] Port {port} is not mapped for container {self.container.name}")
        return int(bindings[0]["HostPort"])

    def get_first_mapped_port(self) -> int:
        if not self.exposed_ports:
            raise ValueError(f"[GC] Container for image {self.image} exposes no ports")
        return self.get_mapped_port(self.exposed_ports[0])
