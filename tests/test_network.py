"""
Tests for kafkabox.containers.network.
"""

from unittest.mock import MagicMock

import docker

from kafkabox.containers.network import Network


class TestNetwork:

    def test_generated_names_are_unique(self):
        assert Network().name != Network().name
        assert Network.new_network().name.startswith("kafkabox-")

    def test_lazy(self, docker_client):
        Network()
        docker_client.networks.get.assert_not_called()
        docker_client.networks.create.assert_not_called()

    def test_reuses_existing_network(self, docker_client):
        network = Network("shared")
        assert network.create() is docker_client.networks.get.return_value
        docker_client.networks.create.assert_not_called()

    def test_creates_missing_network(self, docker_client):
        docker_client.networks.get.side_effect = docker.errors.NotFound("missing")
        network = Network("fresh")
        assert network.id == docker_client.networks.create.return_value.id
        docker_client.networks.create.assert_called_once_with("fresh", driver="bridge")

    def test_create_is_cached(self, docker_client):
        network = Network("fresh")
        network.create()
        network.create()
        docker_client.networks.get.assert_called_once_with("fresh")

    def test_connect_with_aliases(self, docker_client):
        container = MagicMock()
        Network("n").connect(container, ["kafka-1", "broker"])
        docker_client.networks.get.return_value.connect.assert_called_once_with(
            container, aliases=["kafka-1", "broker"]
        )

    def test_connect_without_aliases(self, docker_client):
        container = MagicMock()
        Network("n").connect(container)
        docker_client.networks.get.return_value.connect.assert_called_once_with(container, aliases=None)

    def test_close_removes_created_network(self, docker_client):
        docker_client.networks.get.side_effect = docker.errors.NotFound("missing")
        network = Network("fresh")
        network.create()
        network.close()
        docker_client.networks.create.return_value.remove.assert_called_once_with()

    def test_close_keeps_reused_network(self, docker_client):
        network = Network("shared")
        network.create()
        network.close()
        docker_client.networks.get.return_value.remove.assert_not_called()

    def test_close_before_create_is_noop(self, docker_client):
        Network("never").close()
        docker_client.networks.get.assert_not_called()
