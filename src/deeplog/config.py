"""
Configuration Management for Gnosis DeepLog

Handles loading, saving, and managing configuration for DeepLog sessions.
"""

import json
import logging
import threading
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

TREE_MODES = ("shared", "isolated")
LOG_FORMATS = ("console", "structured", "json")
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class DeepLogConfig:
    """Main configuration class for Gnosis DeepLog."""

    # Core settings
    tree_mode: str = "shared"  # shared, isolated
    debug: bool = False

    # Operation logging settings
    log_operations: bool = False
    log_format: str = "console"  # console, structured, json
    log_level: str = "DEBUG"
    include_performance: bool = False
    max_value_length: int = 200

    def __post_init__(self):
        """Validate settings."""
        if self.tree_mode not in TREE_MODES:
            raise ValueError(f"tree_mode must be one of {TREE_MODES}, got {self.tree_mode!r}")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")
        if self.max_value_length <= 0:
            raise ValueError("max_value_length must be positive")


class Config:
    """Global configuration singleton."""

    _instance: Optional[DeepLogConfig] = None
    _lock = threading.RLock()
    _config_file: Optional[Path] = None

    @classmethod
    def initialize(cls, config_path: Optional[Path] = None, **kwargs) -> DeepLogConfig:
        """Initialize configuration from file or kwargs."""
        with cls._lock:
            if config_path:
                cls._config_file = config_path
                cls._instance = cls.load_config(config_path)
            else:
                cls._instance = DeepLogConfig(**kwargs)
            return cls._instance

    @classmethod
    def get_instance(cls) -> DeepLogConfig:
        """Get the configuration instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = DeepLogConfig()
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the current instance so the next access starts from defaults."""
        with cls._lock:
            cls._instance = None
            cls._config_file = None

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        instance = cls.get_instance()
        return getattr(instance, key, default)

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        """Set a configuration value."""
        cls.update({key: value})

    @classmethod
    def load_config(cls, config_path: Path) -> DeepLogConfig:
        """Load configuration from file.

        A missing or unreadable file falls back to defaults; unknown keys are
        ignored and invalid values raise ``ValueError``.
        """
        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Error loading config from %s: %s", config_path, e)
            else:
                known = {f.name for f in fields(DeepLogConfig)}
                return DeepLogConfig(**{k: v for k, v in data.items() if k in known})

        return DeepLogConfig()

    @classmethod
    def save_config(cls, config_path: Optional[Path] = None) -> bool:
        """Save current configuration to file."""
        instance = cls.get_instance()
        path = config_path or cls._config_file

        if not path:
            logger.warning("No config path given and none was loaded; nothing saved")
            return False

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(asdict(instance), f, indent=2, default=str)
            return True
        except OSError as e:
            logger.warning("Error saving config to %s: %s", path, e)
            return False

    @classmethod
    def to_dict(cls) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(cls.get_instance())

    @classmethod
    def update(cls, updates: Dict[str, Any]) -> None:
        """Update multiple configuration values, validating the result."""
        with cls._lock:
            current = asdict(cls.get_instance())
            current.update({k: v for k, v in updates.items() if k in current})
            cls._instance = DeepLogConfig(**current)


# Convenience functions
def load_config(config_path: Optional[Path] = None) -> DeepLogConfig:
    """Load configuration from file or use defaults."""
    return Config.initialize(config_path)


def save_config(config: DeepLogConfig, config_path: Path) -> bool:
    """Save configuration to file."""
    Config._instance = config
    return Config.save_config(config_path)


def get_config() -> DeepLogConfig:
    """Get the current configuration."""
    return Config.get_instance()
