"""Configuration management with lazy validation."""

from pathlib import Path
from functools import cached_property

from careerpath.models.config import (
    DEFAULT_CONFIG_PATH,
    Config,
    InsightsConfig,
    LLMConfig,
    StorageConfig,
)
from careerpath.utils.logging import get_logger


logger = get_logger(__name__)


class ConfigManager:
    """
    Configuration manager with lazy per-section access.

    Example:
        >>> config_mgr = ConfigManager.load_default()
        >>> llm_config = config_mgr.llm
        >>> window = config_mgr.insights.entry_window
    """

    def __init__(self, config: Config):
        self._config = config

    @classmethod
    def load_default(cls) -> "ConfigManager":
        """
        Load configuration from default path (~/.config/careerpath/config.yaml).

        Raises:
            FileNotFoundError: If config file doesn't exist
            PermissionError: If config file has wrong permissions
            ValueError: If config is invalid
        """
        return cls.load_from_path(DEFAULT_CONFIG_PATH)

    @classmethod
    def load_from_path(cls, path: Path) -> "ConfigManager":
        """
        Load configuration from specific path.

        Raises:
            FileNotFoundError: If config file doesn't exist
            PermissionError: If config file has wrong permissions
            ValueError: If config is invalid
        """
        logger.info("config_loading", path=str(path))

        try:
            config = Config.load(path)
            logger.info("config_loaded", path=str(path))
            return cls(config)

        except FileNotFoundError as e:
            logger.error("config_not_found", path=str(path), error=str(e))
            raise

        except PermissionError as e:
            logger.error("config_permission_error", path=str(path), error=str(e))
            raise

        except Exception as e:
            logger.error("config_validation_error", path=str(path), error=str(e))
            raise ValueError(f"Configuration validation failed: {e}") from e

    @cached_property
    def llm(self) -> LLMConfig:
        return self._config.llm

    @cached_property
    def insights(self) -> InsightsConfig:
        return self._config.insights

    @cached_property
    def storage(self) -> StorageConfig:
        """Storage locations, with ``~`` expanded."""
        storage = self._config.storage
        return StorageConfig(
            database_path=str(Path(storage.database_path).expanduser()),
            cache_path=str(Path(storage.cache_path).expanduser()),
        )
