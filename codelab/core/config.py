"""
Configuration management for CodeLab.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

CONFIG_FILE_NAMES = ("codelab.yaml", "codelab.yml", "codelab.json")


@dataclass
class ExecutionConfig:
    """Configuration for the execution dispatcher."""

    timeout_seconds: float = 10.0
    work_dir: str = "temp"
    max_output_chars: int = 30_000
    env_allowlist: list[str] = field(default_factory=list)  # empty = inherit full environment


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    host: str = "127.0.0.1"
    port: int = 3000
    static_dir: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class CodeLabConfig:
    """Main CodeLab configuration."""

    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CodeLabConfig":
        """Build a configuration from a plain mapping, ignoring unknown keys."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        execution_data = data.get("execution") or {}
        server_data = data.get("server") or {}
        if not isinstance(execution_data, dict) or not isinstance(server_data, dict):
            raise ConfigurationError("'execution' and 'server' sections must be mappings")

        return cls(
            execution=ExecutionConfig(**_known_fields(ExecutionConfig, execution_data)),
            server=ServerConfig(**_known_fields(ServerConfig, server_data)),
            log_level=str(data.get("log_level", "INFO") or "INFO"),
        )

    @classmethod
    def load_from_file(cls, config_path: Path) -> "CodeLabConfig":
        """Load configuration from a YAML or JSON file."""
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path) as f:
                if config_path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
            return cls.from_dict(data)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a YAML or JSON file."""
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            data = asdict(self)
            with open(config_path, "w") as f:
                if config_path.suffix.lower() == ".json":
                    json.dump(data, f, indent=2)
                else:
                    yaml.dump(data, f, default_flow_style=False, indent=2)
        except Exception as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

    def apply_env_overrides(self, environ: dict[str, str] | None = None) -> "CodeLabConfig":
        """Override settings from environment variables."""
        env = os.environ if environ is None else environ

        try:
            if env.get("PORT"):
                self.server.port = int(env["PORT"])
            if env.get("CODELAB_TIMEOUT"):
                self.execution.timeout_seconds = float(env["CODELAB_TIMEOUT"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric environment override: {e}") from e

        if env.get("CODELAB_HOST"):
            self.server.host = env["CODELAB_HOST"]
        if env.get("CODELAB_WORK_DIR"):
            self.execution.work_dir = env["CODELAB_WORK_DIR"]
        if env.get("CODELAB_LOG_LEVEL"):
            self.log_level = env["CODELAB_LOG_LEVEL"]
        return self

    def resolve_work_dir(self, base: Path | None = None) -> Path:
        """Return the working directory as an absolute path."""
        work_dir = Path(self.execution.work_dir).expanduser()
        if not work_dir.is_absolute():
            work_dir = (base or Path.cwd()) / work_dir
        return work_dir.resolve()


def _known_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


def load_config(
    config_path: Path | str | None = None,
    *,
    search_dir: Path | None = None,
    environ: dict[str, str] | None = None,
) -> CodeLabConfig:
    """
    Load configuration from an explicit path or the first config file found.

    Args:
        config_path: Explicit configuration file
        search_dir: Directory searched for ``codelab.yaml``/``.yml``/``.json``
        environ: Environment used for overrides (defaults to ``os.environ``)

    Returns:
        CodeLabConfig with environment overrides applied
    """
    if config_path is not None:
        config = CodeLabConfig.load_from_file(Path(config_path))
    else:
        directory = search_dir or Path.cwd()
        config = CodeLabConfig()
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if candidate.exists():
                config = CodeLabConfig.load_from_file(candidate)
                break

    return config.apply_env_overrides(environ)
