"""Configuration loading for a fleet run."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from flotilla.errors import ConfigMalformed, ConfigMissing
from flotilla.models.config import FleetConfig, GlobalConfig, SecretBundle
from flotilla.models.instance import InstanceSpec


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "FLOTILLA_CONFIG"
VAULT_PASSWORD_CONVENTION = ".vault_pass"


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class ConfigManager:
    """Loads the fleet configuration file and any referenced secrets."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager."""
        if config_path is None:
            config_path = Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE))
        self.config_path = Path(config_path)
        self.yaml = YAML(typ="safe")
        self.config: Optional[GlobalConfig] = None
        self.instances: List[InstanceSpec] = []

    @property
    def base_dir(self) -> Path:
        return self.config_path.resolve().parent

    async def load(self) -> Tuple[GlobalConfig, List[InstanceSpec]]:
        """Load and validate the configuration file."""
        logger.info(f"Loading configuration from {self.config_path}")

        if not self.config_path.is_file():
            raise ConfigMissing(f"Configuration file {self.config_path} not found")

        data = await self._read_yaml(self.config_path)
        if not isinstance(data, dict):
            raise ConfigMalformed(f"{self.config_path}: top level must be a mapping")

        try:
            fleet = FleetConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigMalformed(f"{self.config_path}: {_format_validation_error(e)}") from e

        if not fleet.instances:
            logger.warning(f"No instances declared in {self.config_path}")

        secrets = await self._load_secrets(fleet)
        config = fleet.global_config(secrets=secrets)
        if config.work_dir is None:
            config = config.model_copy(update={"work_dir": self.base_dir})
        else:
            config = config.model_copy(update={"work_dir": self._resolve(config.work_dir)})

        self.config = config
        self.instances = list(fleet.instances)
        logger.info(f"Loaded {len(self.instances)} instance(s)")
        return self.config, self.instances

    async def _read_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse YAML file."""
        try:
            content = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigMalformed(f"Cannot read {file_path}: {e}") from e

        try:
            return self.yaml.load(content)
        except YAMLError as e:
            raise ConfigMalformed(f"{file_path}: invalid YAML: {e}") from e

    def _resolve(self, path: Path) -> Path:
        path = Path(path).expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    async def _read_secret(self, path: Path, what: str) -> str:
        resolved = self._resolve(path)
        try:
            return await asyncio.to_thread(resolved.read_text)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigMalformed(f"Cannot read {what} {resolved}: {e}") from e

    async def _load_secrets(self, fleet: FleetConfig) -> Optional[SecretBundle]:
        """Read key material referenced by the extended configuration."""
        if not fleet.ssh_key:
            return None

        private_key = await self._read_secret(fleet.ssh_key, "ssh_key")
        public_key = await self._read_secret(fleet.ssh_key_pub, "ssh_key_pub")

        vault_password = None
        if fleet.vault_password_file:
            vault_password = (await self._read_secret(fleet.vault_password_file, "vault_password_file")).strip()
        else:
            convention = self.base_dir / VAULT_PASSWORD_CONVENTION
            if convention.is_file():
                logger.debug(f"Using vault password from {convention}")
                vault_password = (await self._read_secret(convention, "vault password file")).strip()

        return SecretBundle(
            ssh_key=private_key,
            ssh_key_pub=public_key,
            key_name=Path(fleet.ssh_key).name,
            vault_password=vault_password,
        )

    def get_instance(self, name: str) -> Optional[InstanceSpec]:
        """Get an instance specification by name."""
        for instance in self.instances:
            if instance.name == name:
                return instance
        return None

    def select(self, names: Optional[List[str]] = None) -> List[InstanceSpec]:
        """Instances matching names, in declaration order."""
        if not names:
            return list(self.instances)
        unknown = [n for n in names if self.get_instance(n) is None]
        if unknown:
            raise ConfigMalformed(f"Unknown instance(s): {', '.join(unknown)}")
        wanted = set(names)
        return [i for i in self.instances if i.name in wanted]
