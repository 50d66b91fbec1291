"""Configuration: process settings from the environment and the persisted sync config.

AppSettings is read once from LIVEBTC_* environment variables (or .env) with
pydantic-settings. SyncConfig is the JSON file users edit by hand; ConfigStore
creates it with defaults on first run and never lets a broken file stop the
client from starting.
"""

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from livebtc.exceptions import ConfigParseError
from livebtc.logging import SyncLogger

DEFAULT_API_URL = "https://api.tarkov.dev/graphql"
DEFAULT_USER_AGENT = "SPT-LiveBTC-PVE"


class AppSettings(BaseSettings):
    """Process-level settings. Paths are resolved against the working directory."""

    model_config = SettingsConfigDict(
        env_prefix="LIVEBTC_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"
    config_path: Path = Path("config/config.json")
    price_path: Path = Path("config/price.json")
    api_url: str = DEFAULT_API_URL
    handbook_path: Path | None = None  # host handbook JSON for the CLI runner
    initial_price: int = 0  # starting price when running without a handbook


class AdvancedConfig(BaseModel):
    """The "advanced" block of config.json."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    enable_price_caching: bool = Field(True, alias="enablePriceCaching")
    cache_expiration_hours: float = Field(6, gt=0, alias="cacheExpirationHours")
    api_timeout: int = Field(15000, gt=0, alias="apiTimeout")  # milliseconds
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, alias="userAgent")


class SyncConfig(BaseModel):
    """Tunable parameters persisted in config.json. Read-only after load."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    update_interval: float = Field(2700, gt=0, alias="updateInterval")  # seconds
    enable_logging: bool = Field(True, alias="enableLogging")
    enable_periodic_updates: bool = Field(True, alias="enablePeriodicUpdates")
    advanced: AdvancedConfig = Field(default_factory=AdvancedConfig)

    @property
    def cache_enabled(self) -> bool:
        return self.advanced.enable_price_caching

    @property
    def cache_ttl_seconds(self) -> float:
        return self.advanced.cache_expiration_hours * 3600

    @property
    def timeout_seconds(self) -> float:
        return self.advanced.api_timeout / 1000

    @property
    def user_agent(self) -> str:
        return self.advanced.user_agent

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


def parse_config(raw: str) -> SyncConfig:
    """Parse config.json content. Missing keys take their defaults.

    Raises:
        ConfigParseError: On invalid JSON or values that fail validation.
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigParseError(f"invalid JSON: {e}") from e

    try:
        return SyncConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(f"invalid config values: {e.error_count()} error(s)") from e


class ConfigStore:
    """Loads config.json, writing defaults on first run.

    Args:
        path: Location of config.json.
        logger: Sink for load errors.
    """

    def __init__(self, path: Path, logger: SyncLogger) -> None:
        self._path = path
        self._logger = logger

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> SyncConfig:
        """Return the persisted config, or defaults. Never raises.

        A file that fails to parse is left untouched on disk and the
        defaults are used for this process only.
        """
        if not self._path.exists():
            config = SyncConfig()
            self._write_defaults(config)
            return config

        try:
            raw = self._path.read_text(encoding="utf-8")
            return parse_config(raw)
        except (OSError, ValueError, ConfigParseError) as e:
            self._logger.error(
                "config_load_failed",
                path=str(self._path),
                error=str(e),
            )
            return SyncConfig()

    def _write_defaults(self, config: SyncConfig) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(config.to_json(), indent=4), encoding="utf-8")
            self._logger.info("config_defaults_written", path=str(self._path))
        except OSError as e:
            self._logger.error(
                "config_write_failed",
                path=str(self._path),
                error=str(e),
            )
