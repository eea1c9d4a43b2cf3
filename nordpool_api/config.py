"""
Application configuration management using Pydantic Settings.
Handles environment variables and default values for the service.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host address")
    api_port: int = Field(default=8000, description="API port")
    api_debug: bool = Field(default=False, description="Enable debug mode")
    api_reload: bool = Field(default=False, description="Enable auto-reload")

    # Nord Pool API Configuration
    nordpool_base_url: str = Field(
        default="https://dataportal-api.nordpoolgroup.com/api/DayAheadPrices",
        description="Nord Pool day-ahead prices endpoint"
    )
    nordpool_market: str = Field(default="DayAhead", description="Nord Pool market name")
    nordpool_delivery_areas: str = Field(
        default="NO1,NO2,NO3,NO4,NO5",
        description="Comma separated price zones to request"
    )
    nordpool_currency: str = Field(default="NOK", description="Currency to request prices in")
    http_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    # Scheduler Configuration
    fetch_hour: int = Field(default=15, ge=0, le=23, description="Local hour when tomorrow's prices are fetched")
    retry_delay_minutes: int = Field(default=15, ge=1, description="Wait between attempts while prices are unpublished")
    fetch_timezone: str = Field(default="Europe/Oslo", description="Timezone for scheduling")
    cancel_grace_seconds: float = Field(default=5.0, ge=0, description="Max wait for running jobs on shutdown")

    # Presentation
    vat_rate: float = Field(default=0.25, ge=0, description="VAT rate applied when include_vat is requested")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json/text)")

    @property
    def delivery_areas(self) -> list:
        return [area.strip().upper() for area in self.nordpool_delivery_areas.split(",") if area.strip()]


# Global settings instance
settings = Settings()
