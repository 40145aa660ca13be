import json
import os
from typing import Any, Dict, Mapping, Optional

from .utils.logger import logger

CONFIG_PATH_ENV = "KAFKABOX_CONFIG"
DEFAULT_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".kafkabox.json")
ENV_PREFIX = "KAFKABOX_"


class ConfigKeys:
    KAFKA_IMAGE = "kafka.image"
    SOCAT_IMAGE = "socat.image"
    STARTUP_TIMEOUT = "startup.timeout"
    HOST_OVERRIDE = "host.override"


DEFAULTS: Dict[str, Any] = {
    ConfigKeys.KAFKA_IMAGE: "confluentinc/cp-kafka",
    ConfigKeys.SOCAT_IMAGE: "alpine/socat:1.7.4.3-r0",
    ConfigKeys.STARTUP_TIMEOUT: 120.0,
    ConfigKeys.HOST_OVERRIDE: None,
}


class ContainersConfiguration:
    """
    Settings shared by every container started by kafkabox.

    Values are resolved in three layers: built-in defaults, then an optional
    JSON file, then ``KAFKABOX_<KEY>`` environment variables, where the key is
    upper-cased with dots replaced by underscores (``kafka.image`` becomes
    ``KAFKABOX_KAFKA_IMAGE``).
    """

    _instance: Optional["ContainersConfiguration"] = None

    def __init__(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        environ = os.environ if environ is None else environ
        self.config_path = config_path or environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)
        self.config: Dict[str, Any] = dict(DEFAULTS)

        if os.path.exists(self.config_path):
            logger.debug(f"Loading container configuration from {self.config_path}")
            self.config.update(self._load_file(self.config_path))

        for key in DEFAULTS:
            env_name = ENV_PREFIX + key.replace(".", "_").upper()
            if env_name in environ:
                self.config[key] = environ[env_name]

    @staticmethod
    def _load_file(config_path: str) -> Dict[str, Any]:
        try:
            with open(config_path, "r", encoding="utf-8") as file:
                loaded = json.load(file)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid container configuration file {config_path}") from e
        if not isinstance(loaded, dict):
            raise ValueError(f"Container configuration in {config_path} must be a JSON object")
        unknown = [key for key in loaded if key not in DEFAULTS]
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys {unknown} in {config_path}")
        return {key: value for key, value in loaded.items() if key in DEFAULTS}

    @classmethod
    def get_instance(cls) -> "ContainersConfiguration":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    @property
    def kafka_image(self) -> str:
        return self.config[ConfigKeys.KAFKA_IMAGE]

    @property
    def socat_image(self) -> str:
        return self.config[ConfigKeys.SOCAT_IMAGE]

    @property
    def startup_timeout(self) -> float:
        value = self.config[ConfigKeys.STARTUP_TIMEOUT]
        try:
            timeout = float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"'{ConfigKeys.STARTUP_TIMEOUT}' must be a number, got {value!r}") from e
        if timeout <= 0:
            raise ValueError(f"'{ConfigKeys.STARTUP_TIMEOUT}' must be positive, got {timeout}")
        return timeout

    @property
    def host_override(self) -> Optional[str]:
        return self.config[ConfigKeys.HOST_OVERRIDE] or None
