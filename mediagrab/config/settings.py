import json
import logging
import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.json")


class RedisConfig(BaseModel):
    enabled: bool = Field(default=True, description="Use Redis as catalog cache when reachable")
    url: str = Field(default="redis://redis:6379", description="Redis connection URL")
    socket_timeout: int = Field(default=5, description="Redis socket timeout in seconds")


class DownloadConfig(BaseModel):
    output_dir: str = Field(default="downloads", description="Directory finished downloads are written to")
    output_template: str = Field(default="%(title)s [%(id)s].%(ext)s", description="yt-dlp output template")
    cleanup_after_serve: bool = Field(default=True, description="Delete a file once it has been streamed to the client")
    info_timeout: float = Field(default=30.0, gt=0, description="Metadata fetch timeout in seconds")
    timeout_seconds: int = Field(default=3600, ge=60, description="Download timeout in seconds")
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout for yt-dlp")
    retries: int = Field(default=3, ge=0, description="yt-dlp internal retries per request")


class YtDlpConfig(BaseModel):
    binary: str = Field(default="yt-dlp", description="yt-dlp executable")
    default_format: str = Field(default="best", description="Format used when none is chosen")
    enable_live_streams: bool = Field(default=False, description="Allow live stream downloads")


class CatalogConfig(BaseModel):
    cache_ttl: int = Field(default=300, ge=0, description="Catalog cache TTL in seconds (0 disables)")
    legacy_audio_ranking: bool = Field(
        default=False,
        description="Rank audio by the leading number of the display size instead of byte count",
    )


class UiConfig(BaseModel):
    debounce_seconds: float = Field(default=1.0, ge=0, description="Delay before URL input triggers a fetch")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: List[str] = Field(default=["en", "ja"], description="Supported locales")


class ApiConfig(BaseModel):
    title: str = Field(default="mediagrab", description="API title")
    version: str = Field(default="1.0.0", description="API version")
    cors_origins: List[str] = Field(default=["*"], description="CORS allowed origins")
    debug: bool = Field(default=False, description="Enable debug mode")


class Config(BaseSettings):
    """Main configuration model"""

    model_config = SettingsConfigDict(env_prefix="MEDIAGRAB_", env_nested_delimiter="__")

    redis: RedisConfig = Field(default_factory=RedisConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    ytdlp: YtDlpConfig = Field(default_factory=YtDlpConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    ui: UiConfig = Field(default_factory=UiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def load_from_file(cls, config_path: str = CONFIG_PATH) -> "Config":
        """Load configuration from JSON file, falling back to env/defaults"""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = json.load(f)
            logger.info(f"Configuration loaded from {config_path}")
            return cls(**config_data)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load config from {config_path}: {str(e)}")
            logger.info("Using environment/default configuration")
            return cls()

    def save_to_file(self, config_path: str = CONFIG_PATH) -> None:
        """Save configuration to JSON file"""
        try:
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
            logger.info(f"Configuration saved to {config_path}")
        except OSError as e:
            logger.error(f"Failed to save config to {config_path}: {str(e)}")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration with priority: config file > env vars > defaults"""
    config_path = config_path or CONFIG_PATH

    if os.path.exists(config_path):
        return Config.load_from_file(config_path)

    logger.info(f"Config file not found at {config_path}, checking environment variables")
    return Config()


config = load_config()
