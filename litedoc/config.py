"""
Configuration management for litedoc connections
"""

import os
import yaml
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, fields
from pathlib import Path


JOURNAL_MODES = ["DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class ConnectionConfig:
    """Settings for one named connection (one directory of model stores)"""

    identity: str = ""
    db_path: Optional[str] = None
    # Keep every model store in memory; nothing is written under db_path
    in_memory: bool = False
    file_extension: str = ".db"

    # SQLite busy timeout, seconds
    timeout: float = 5.0
    journal_mode: str = "DELETE"
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, config_path: str) -> "ConnectionConfig":
        """Load configuration from YAML file"""
        config_path = Path(config_path)
        if not config_path.exists():
            return cls()

        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionConfig":
        """Create config from dictionary, ignoring unknown keys"""
        config = cls()

        # Accept the camelCase spellings ORM connection files use
        aliases = {"dbPath": "db_path", "inMemoryOnly": "in_memory"}
        for key, value in data.items():
            key = aliases.get(key, key)
            if hasattr(config, key):
                setattr(config, key, value)

        return config

    @classmethod
    def from_env(cls) -> "ConnectionConfig":
        """Load configuration from environment variables"""
        config = cls()

        config.identity = os.getenv("LITEDOC_IDENTITY", config.identity)
        config.db_path = os.getenv("LITEDOC_DB_PATH", config.db_path)
        config.in_memory = os.getenv("LITEDOC_IN_MEMORY", "false").lower() == "true"
        config.timeout = float(os.getenv("LITEDOC_TIMEOUT", config.timeout))
        config.log_level = os.getenv("LITEDOC_LOG_LEVEL", config.log_level)

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def save_to_file(self, config_path: str):
        """Save configuration to YAML file"""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2)

    def filename_for(self, model_name: str) -> str:
        """Path of the store file backing ``model_name``"""
        if self.in_memory:
            return ":memory:"
        return os.path.join(self.db_path, f"{model_name}{self.file_extension}")

    def validate(self) -> List[str]:
        """Validate configuration and return any errors"""
        errors = []

        if not self.identity:
            errors.append("identity is required")

        if not self.in_memory and not self.db_path:
            errors.append("db_path is required unless in_memory is enabled")

        if not self.file_extension.startswith("."):
            errors.append(f"Invalid file extension: {self.file_extension}")

        if self.timeout < 0:
            errors.append(f"Invalid timeout: {self.timeout}")

        if self.journal_mode.upper() not in JOURNAL_MODES:
            errors.append(f"Invalid journal mode: {self.journal_mode}")

        if self.log_level.upper() not in LOG_LEVELS:
            errors.append(f"Invalid log level: {self.log_level}")

        return errors
