"""Configuration management for the account migration tool."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import (
    DEFAULT_API_ORIGIN,
    DEFAULT_EXPORT_BATCH_SIZE,
    DEFAULT_IMPORT_BATCH_SIZE,
    MAX_TIMEOUT_RETRIES,
)


@dataclass
class ServiceConfig:
    """Identity service connection configuration."""

    project_id: str | None = None
    access_token: str | None = None  # Issued externally, sent as a bearer token
    base_url: str = DEFAULT_API_ORIGIN
    timeout: float = 60.0
    verify_ssl: bool = True


@dataclass
class ExportConfig:
    """Export paging and retry configuration."""

    batch_size: int = DEFAULT_EXPORT_BATCH_SIZE
    max_timeout_retries: int = MAX_TIMEOUT_RETRIES
    retry_wait_seconds: float = 0.0  # 0 retries a timed out page immediately


@dataclass
class ImportConfig:
    """Import batching configuration."""

    batch_size: int = DEFAULT_IMPORT_BATCH_SIZE


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class MigrationConfig:
    """
    Complete configuration for the account migration tool.

    This combines all configuration sections.
    """

    service: ServiceConfig = field(default_factory=ServiceConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    import_: ImportConfig = field(default_factory=ImportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "MigrationConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            MigrationConfig instance
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        logging_data = dict(data.get("logging") or {})
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])

        return cls(
            service=ServiceConfig(**(data.get("service") or {})),
            export=ExportConfig(**(data.get("export") or {})),
            import_=ImportConfig(**(data.get("import") or {})),
            logging=LoggingConfig(**logging_data),
        )

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        The access token is never written.

        Args:
            config_path: Path to save config file
        """
        service = {k: v for k, v in self.service.__dict__.items() if k != "access_token"}
        data = {
            "service": service,
            "export": self.export.__dict__,
            "import": self.import_.__dict__,
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "MigrationConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            IDENTITY_PROJECT_ID: Target project id
            IDENTITY_ACCESS_TOKEN: OAuth access token
            IDENTITY_API_URL: API origin (default: https://www.googleapis.com)
            IDENTITY_VERIFY_SSL: Set to 'false' to disable certificate checks
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: console or json (default: console)

        Returns:
            MigrationConfig instance
        """
        verify_ssl_str = os.environ.get("IDENTITY_VERIFY_SSL", "true").lower()

        service = ServiceConfig(
            project_id=os.environ.get("IDENTITY_PROJECT_ID") or None,
            access_token=os.environ.get("IDENTITY_ACCESS_TOKEN") or None,
            base_url=os.environ.get("IDENTITY_API_URL", DEFAULT_API_ORIGIN),
            verify_ssl=verify_ssl_str not in ("false", "0", "no", "off"),
        )

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(service=service, logging=logging_config)


def load_config(config_file: Path | None = None) -> MigrationConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        MigrationConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return MigrationConfig.from_file(config_file)
    return MigrationConfig.from_env()
