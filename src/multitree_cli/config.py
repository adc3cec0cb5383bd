"""Configuration management for multitree."""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class ConfigModel:
    """Global configuration model for multitree."""

    # File paths
    data_dir: str = "~/.multitree"
    store_file: str = "tasks.md"
    export_path: str = "~/sync/tasks.md"

    # Layout
    tree_height: int = 40  # Used when the terminal size is unknown
    wrap_width: int = 0  # 0 disables wrapping of task names
    separators: bool = False

    # UI and logging
    no_color: bool = False
    log_level: str = "WARNING"
    log_file: str = "multitree.log"

    def __post_init__(self):
        """Post-initialization setup."""
        # Expand user paths
        self.data_dir = os.path.expanduser(self.data_dir)
        self.export_path = os.path.expanduser(self.export_path)

        # Ensure directories exist
        Path(self.data_dir).mkdir(parents=True, exist_ok=True)

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        return yaml.dump(asdict(self), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML, ignoring unknown keys."""
        data = yaml.safe_load(yaml_str) or {}
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))
        return cls(**{k: v for k, v in data.items() if k in known})

    def get_config_path(self) -> Path:
        """Get the config file path."""
        return Path(self.data_dir) / "config.yaml"

    def get_store_path(self) -> Path:
        """Get the task store path."""
        return Path(self.data_dir) / self.store_file

    def get_export_path(self) -> Path:
        return Path(self.export_path)

    def get_log_dir(self) -> Path:
        return Path(self.data_dir)

    @property
    def wrap(self) -> Optional[int]:
        """Name column width for the layout engine, or None when disabled."""
        return self.wrap_width or None


class Config:
    """Configuration manager for multitree."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file or create default."""
        if cls._instance is not None:
            return cls._instance

        config = ConfigModel()

        if config_path is None:
            config_path = config.get_config_path()

        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    yaml_content = f.read()
                config = ConfigModel.from_yaml(yaml_content)
                logger.debug("Loaded configuration from %s", config_path)
            except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
                logger.warning("Failed to load config from %s: %s; using defaults", config_path, e)
        else:
            # Create default config file
            cls.save(config, config_path)
            logger.info("Created default configuration at %s", config_path)

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = config.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(config_path, "w", encoding="utf-8") as f:
                f.write(config.to_yaml())
        except OSError as e:
            logger.error("Failed to save config to %s: %s", config_path, e)

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reload(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load(config_path)


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> ConfigModel:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    Config.save(config, config_path)
