import yaml
from typing import Any, Dict

from pydantic import ValidationError

from config.settings import FailoverConfig
from monitoring.errors import ConfigurationError


class ConfigLoader:
    def __init__(self, config_path: str):
        self.config_path = config_path

    def load_raw(self) -> Dict[str, Any]:
        with open(self.config_path, "r") as f:
            return yaml.safe_load(f) or {}

    def load(self) -> FailoverConfig:
        return parse_config(self.load_raw(), source=self.config_path)


def parse_config(data: Dict[str, Any], source: str = "<dict>") -> FailoverConfig:
    try:
        config = FailoverConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid failover configuration in {source}: {e}") from e

    names = [db.name for db in config.databases]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate database names in {source}: {', '.join(duplicates)}")
    return config
