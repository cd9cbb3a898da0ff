"""
Configuration management for services.
"""

import json
import os
from typing import Any

import yaml

from dotenv import load_dotenv


class ServiceConfig:
    """Configuration management for services using environment variables."""

    def __init__(self) -> None:
        """Initialize configuration by loading environment variables."""
        # .env lives next to app.py
        env_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.env"))
        load_dotenv(dotenv_path=env_path, override=False)
        self.config: dict[str, Any] = {}
        self.scheduling_config: dict[str, Any] = {}
        self.scheduling_config_path = os.getenv(
            "SCHEDULING_CONFIG_PATH",
            os.path.join(os.path.dirname(__file__), "../config/scheduling.yaml"),
        )
        self.load_from_env()
        self.load_scheduling_config()

    def load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.config = {
            "database_url": os.getenv("DATABASE_URL"),
            "db_host": os.getenv("DB_HOST"),
            "db_port": os.getenv("DB_PORT", "5432"),
            "db_user": os.getenv("DB_USER", "postgres"),
            "db_password": os.getenv("DB_PASSWORD", "postgres"),
            "db_name": os.getenv("DB_NAME", "presentations"),
            "db_sslmode": os.getenv("DB_SSLMODE", "prefer"),
            "debug": os.getenv("DEBUG", "false").lower() == "true",
            "allowed_origins": json.loads(os.getenv("ALLOWED_ORIGINS", '["*"]')),
            "secret_key": os.getenv("SECRET_KEY", "supersecret"),
            "jwt_algorithm": os.getenv("JWT_ALGORITHM", "HS256"),
            "upload_root": os.getenv("UPLOAD_ROOT", "/app/uploads"),
            "max_upload_size": int(os.getenv("MAX_UPLOAD_SIZE", str(10 * 1024 * 1024))),
            "scheduling_timezone": os.getenv("SCHEDULING_TIMEZONE", "UTC"),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self.config[key] = value

    def reload(self) -> None:
        """Reload configuration from environment variables."""
        self.load_from_env()
        self.load_scheduling_config()

    def load_scheduling_config(self) -> None:
        """Load scheduling defaults from YAML file."""
        path = os.path.abspath(self.scheduling_config_path)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                data = yaml.safe_load(stream) or {}
        except FileNotFoundError:
            data = {}
        self.scheduling_config = data

    def get_scheduling_value(self, path: str, default: Any = None) -> Any:
        """Retrieve a scheduling configuration value via dotted path."""
        env_override_key = f"SCHEDULING_FLAG_{path.replace('.', '_').upper()}"
        env_value = os.getenv(env_override_key)
        if env_value is not None:
            return self._coerce_env_value(env_value, default)

        node: Any = self.scheduling_config
        for part in path.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node if node is not None else default

    def set_scheduling_config(self, scheduling_config: dict[str, Any]) -> None:
        """Override scheduling configuration (useful for tests)."""
        self.scheduling_config = scheduling_config

    @staticmethod
    def _coerce_env_value(raw: str, default: Any) -> Any:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        if lowered.replace(".", "", 1).isdigit():
            try:
                return float(lowered) if "." in lowered else int(lowered)
            except ValueError:
                return raw
        if lowered.startswith(("[", "{")):
            try:
                return json.loads(raw)
            except ValueError:
                return raw
        return raw or default


# Global configuration instance
config = ServiceConfig()
