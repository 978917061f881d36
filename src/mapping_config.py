# Mapping configuration models and loading from the local filesystem.
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from edi_errors import SchemaError
from field_map import MapObject, compile_map
from loop_extractor import LoopSpec

logger = logging.getLogger(__name__)


class MappingConfig(BaseModel):
    """A complete conversion recipe: loop declarations plus the output map."""
    model_config = ConfigDict(populate_by_name=True)

    transaction_name: str = Field(validation_alias=AliasChoices("transaction_name", "transactionName"))
    description: str = ""
    require_transaction_type: Optional[str] = Field(
        None, validation_alias=AliasChoices("require_transaction_type", "requireTransactionType")
    )
    element_delimiter: str = Field(
        "*", min_length=1, max_length=1, validation_alias=AliasChoices("element_delimiter", "elementDelimiter")
    )
    loops: List[LoopSpec] = Field(default_factory=list)
    map: MapObject

    @field_validator("map", mode="before")
    @classmethod
    def compile_map_declaration(cls, value: Any) -> MapObject:
        return compile_map(value)


def load_mapping_config(path: Union[str, Path]) -> MappingConfig:
    """Loads a single mapping configuration file. Any problem is a SchemaError."""
    config_path = Path(path)
    try:
        with open(config_path, 'r') as f:
            config_data = json.load(f)
    except FileNotFoundError as e:
        raise SchemaError(f"Mapping config file not found: {config_path}") from e
    except json.JSONDecodeError as e:
        raise SchemaError(f"Invalid JSON in mapping config {config_path}: {e}") from e

    try:
        return MappingConfig.model_validate(config_data)
    except ValidationError as e:
        raise SchemaError(f"Invalid mapping config {config_path}: {e}") from e


class MappingConfigManager:
    """
    Loads mapping configurations from a directory and supports tenant-specific overrides
    stored under `tenant-specific/<tenant_id>/`.
    """

    def __init__(self, config_base_path: Union[str, Path] = "src/mappings"):
        self.config_base_path = Path(config_base_path)
        self._base_configs: Dict[str, MappingConfig] = {}
        self._tenant_configs_cache: Dict[str, MappingConfig] = {}
        self._load_base_configs()

    def _load_base_configs(self):
        """Load base configs from the config directory. Unreadable files are logged and skipped."""
        if not self.config_base_path.exists():
            logger.warning(f"Mapping config path does not exist: {self.config_base_path}")
            return

        logger.info(f"Loading mapping configs from: {self.config_base_path}")

        for config_file in sorted(self.config_base_path.glob("*.json")):
            try:
                self._base_configs[config_file.name] = load_mapping_config(config_file)
                logger.info(f"Loaded mapping config: {config_file.name}")
            except SchemaError as e:
                logger.error(f"Failed to load mapping config {config_file.name}: {e}")

    def get_config(self, config_name: str, tenant_id: Optional[str] = None) -> Optional[MappingConfig]:
        """
        Get a mapping config. Checks the tenant-specific directory first, then falls back to base configs.

        Args:
            config_name: Name of the config file (e.g., "834.benefit_enrollment.json")
            tenant_id: Optional tenant identifier

        Returns:
            MappingConfig or None if not found
        """
        if tenant_id:
            cache_key = f"{tenant_id}/{config_name}"
            if cache_key in self._tenant_configs_cache:
                return self._tenant_configs_cache[cache_key]

            tenant_config_path = self.config_base_path / "tenant-specific" / tenant_id / config_name
            if tenant_config_path.exists():
                try:
                    config = load_mapping_config(tenant_config_path)
                    self._tenant_configs_cache[cache_key] = config
                    logger.info(f"Loaded tenant-specific mapping config: {cache_key}")
                    return config
                except SchemaError as e:
                    logger.error(f"Failed to load tenant mapping config {cache_key}: {e}")

        config = self._base_configs.get(config_name)
        if config is None:
            logger.error(f"Mapping config not found: {config_name} (tenant: {tenant_id or 'none'})")
        return config

    def list_configs(self) -> List[str]:
        """List available base config names."""
        return list(self._base_configs.keys())

    def reload_configs(self):
        """Reload all configs from filesystem."""
        self._base_configs.clear()
        self._tenant_configs_cache.clear()
        self._load_base_configs()
