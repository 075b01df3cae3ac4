"""Configuration loading for anibridge."""

import os
from pathlib import Path

import msgspec

from . import logger

CONFIG_ENV_VAR = "ANIBRIDGE_CONFIG"
DEFAULT_CONFIG_FILE = "config.yml"


class GlobalConfig(msgspec.Struct):
    """Process-wide settings."""

    loglevel: str = "info"


class ServerConfig(msgspec.Struct):
    """HTTP surface settings.

    Attributes:
        host: Interface to bind.
        port: Port to bind.
        api_key: Key expected in the ``apikey`` query parameter. When unset,
            every request is accepted.
        base_url: Public URL used in generated links. Falls back to the
            request's own base URL.
    """

    host: str = "0.0.0.0"
    port: int = 8256
    api_key: str | None = None
    base_url: str | None = None


class FetchConfig(msgspec.Struct):
    """Settings for the shared cached fetcher."""

    max_size: int = 100
    cleanup_threshold: int = 80
    default_duration: float = 300.0
    timeout: float = 60.0


class SourceConfig(msgspec.Struct):
    """Per-source overrides. Unset fields keep the built-in source values."""

    enabled: bool = True
    rss_url: str | None = None
    cache_ttl: float | None = None
    rate_limit_max_requests: int | None = None
    rate_limit_period: float | None = None


class Config(msgspec.Struct):
    global_config: GlobalConfig = msgspec.field(default_factory=GlobalConfig)
    server: ServerConfig = msgspec.field(default_factory=ServerConfig)
    fetch: FetchConfig = msgspec.field(default_factory=FetchConfig)
    sources: dict[str, SourceConfig] = msgspec.field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.fetch.max_size < 1:
            raise ValueError("fetch.max_size must be at least 1")
        if not 0 < self.fetch.cleanup_threshold <= self.fetch.max_size:
            raise ValueError(
                "fetch.cleanup_threshold must be between 1 and fetch.max_size"
            )

    def source(self, name: str) -> SourceConfig:
        """Return overrides for a source, or defaults when none are configured."""
        return self.sources.get(name) or SourceConfig()


cfg: Config = Config()


def load_config(path: str | os.PathLike[str]) -> Config:
    """Read and validate a YAML configuration file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file content is invalid.
    """
    content = Path(path).read_bytes()
    if not content.strip():
        return Config()
    try:
        return msgspec.yaml.decode(content, type=Config)
    except msgspec.ValidationError as e:
        raise ValueError(f"Invalid configuration in {path}: {e}") from e


def resolve_config_path(path: str | None = None) -> Path | None:
    """Pick the configuration file to use, if any."""
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    default = Path(DEFAULT_CONFIG_FILE)
    return default if default.is_file() else None


def init_config(path: str | None = None) -> Config:
    """Load configuration into the module-level ``cfg``.

    Args:
        path: Explicit config path. Defaults to ``$ANIBRIDGE_CONFIG`` or
            ``config.yml`` in the working directory when present.

    Returns:
        The active configuration.
    """
    global cfg
    config_path = resolve_config_path(path)
    if config_path is None:
        logger.debug("No configuration file found, using defaults")
        cfg = Config()
    else:
        logger.info("Loading configuration from %s", config_path)
        cfg = load_config(config_path)
    return cfg
