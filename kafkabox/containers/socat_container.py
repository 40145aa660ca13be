from typing import Dict, Optional

from typing_extensions import override

from .configuration import ContainersConfiguration
from .generic_container import GenericContainer
from .utils.base58 import random_string
from .utils.logger import logger


class SocatContainer(GenericContainer):
    """TCP forwarder publishing ports of other containers on its network."""

    def __init__(self, image: Optional[str] = None) -> None:
        GenericContainer.__init__(self, image or ContainersConfiguration.get_instance().socat_image)
        self.targets: Dict[int, str] = {}
        self.with_entrypoint("/bin/sh")
        self.with_name(f"kafkabox-socat-{random_string(8)}")

    def with_target(self, exposed_port: int, host: str, internal_port: Optional[int] = None) -> "SocatContainer":
        self.add_exposed_port(exposed_port)
        self.targets[int(exposed_port)] = f"{host}:{internal_port or exposed_port}"
        return self

    def socat_command(self) -> str:
        return " & ".join(
            f"socat TCP-LISTEN:{port},fork,reuseaddr TCP:{target}"
            for port, target in self.targets.items()
        )

    @override
    def start(self) -> "SocatContainer":
        if not self.targets:
            raise ValueError("[SC] Socat container needs at least one target")
        self.with_command("-c", self.socat_command())
        logger.debug(f"[SC] Forwarding {self.targets}")
        GenericContainer.start(self)
        return self
