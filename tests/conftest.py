"""
Shared pytest fixtures for the kafkabox test suite.
"""

import itertools
from unittest.mock import MagicMock

import pytest

from kafkabox.containers.configuration import ContainersConfiguration


# ---------------------------------------------------------------------------
# Configuration isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_configuration(monkeypatch, tmp_path):
    """Point the configuration at an empty location and drop the singleton."""
    for name in (
        "DOCKER_HOST",
        "KAFKABOX_KAFKA_IMAGE",
        "KAFKABOX_SOCAT_IMAGE",
        "KAFKABOX_STARTUP_TIMEOUT",
        "KAFKABOX_HOST_OVERRIDE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("KAFKABOX_CONFIG", str(tmp_path / "missing.json"))
    ContainersConfiguration.reset_instance()
    yield
    ContainersConfiguration.reset_instance()


# ---------------------------------------------------------------------------
# Docker SDK mock
# ---------------------------------------------------------------------------

READY_LOG = b"[2024-01-01 00:00:00,000] INFO [KafkaServer id=1] started (kafka.server.KafkaServer)\n"


@pytest.fixture
def docker_client(mocker):
    """
    Patch docker.from_env → MagicMock client.

    Every ``containers.create`` call returns a fresh running container whose
    published ports are mapped to 32768, 32769, ... in declaration order. The
    keyword arguments of each call are recorded in ``client.created``.
    """
    client = MagicMock()
    client.created = []
    counter = itertools.count(1)

    def _create(**kwargs):
        container = MagicMock()
        container.name = kwargs.get("name") or f"container-{next(counter)}"
        container.id = f"id-{container.name}"
        container.status = "running"
        container.attrs = {
            "NetworkSettings": {
                "Ports": {
                    port: [{"HostIp": "0.0.0.0", "HostPort": str(32768 + i)}]
                    for i, port in enumerate(kwargs.get("ports") or {})
                }
            }
        }
        container.logs.return_value = READY_LOG
        client.created.append((kwargs, container))
        return container

    client.containers.create.side_effect = _create
    mocker.patch("docker.from_env", return_value=client)
    return client
