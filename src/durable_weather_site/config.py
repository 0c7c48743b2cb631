"""Configuration for the weather site workflow.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Store, secret, bucket and distribution identifiers keep the names the
deployed function used, so an existing `.env` carries over.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from durable_weather_site.weather import DEFAULT_API_BASE_URL


class WeatherSiteSettings(BaseSettings):
    """Settings for one weather site.

    Environment variables:
    - LOCATION_NAME, OPEN_WEATHER_URL, WEATHER_LOCATION_LAT, WEATHER_LOCATION_LON (required)
    - WEATHER_TYPE           (optional, default "snow")
    - SSM_PARAM_NAME, API_KEY_SECRET_ID, BUCKET_NAME, DISTRIBUTION_ID (optional)
    - WEATHER_SITE_STATE_PATH (optional)
    - LOG_LEVEL              (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `WeatherSiteSettings(_env_file=path_to_env)`.
    """

    location_name: str = Field(
        default="",
        validation_alias="LOCATION_NAME",
        description="Human-readable location shown in the page title",
    )
    open_weather_url: str = Field(
        default="",
        validation_alias="OPEN_WEATHER_URL",
        description="Public page linked from the footer for the location's weather",
    )
    weather_type: str = Field(
        default="snow",
        validation_alias="WEATHER_TYPE",
        description="Condition the site answers for, e.g. snow, haze, clouds",
    )
    weather_location_lat: str = Field(default="", validation_alias="WEATHER_LOCATION_LAT")
    weather_location_lon: str = Field(default="", validation_alias="WEATHER_LOCATION_LON")

    status_param_name: str = Field(
        default="weather-site-status",
        validation_alias="SSM_PARAM_NAME",
        description="Key-value entry holding the last published status",
    )
    api_key_secret_id: str = Field(
        default="weather-site-api-key",
        validation_alias="API_KEY_SECRET_ID",
        description="Secret holding the weather API key",
    )
    bucket_name: str = Field(default="site", validation_alias="BUCKET_NAME")
    distribution_id: str = Field(default="local", validation_alias="DISTRIBUTION_ID")

    weather_api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        validation_alias="WEATHER_API_BASE_URL",
    )
    http_timeout_seconds: float = Field(
        default=30.0, gt=0, validation_alias="HTTP_TIMEOUT_SECONDS"
    )

    state_path: Path = Field(
        default=Path("weather_state"),
        validation_alias="WEATHER_SITE_STATE_PATH",
        description="Directory holding parameters, secrets, published objects and the step log",
    )
    execution_timeout_seconds: float = Field(
        default=3600.0, gt=0, validation_alias="EXECUTION_TIMEOUT_SECONDS"
    )
    step_log_retention_days: int = Field(
        default=14, ge=1, validation_alias="STEP_LOG_RETENTION_DAYS"
    )
    initial_status: str = Field(
        default="Initial value",
        validation_alias="INITIAL_STATUS",
        description="Status seeded by `init`; never equal to a real observation",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _require_site_values(self) -> WeatherSiteSettings:
        missing = [
            alias
            for alias, value in (
                ("LOCATION_NAME", self.location_name),
                ("OPEN_WEATHER_URL", self.open_weather_url),
                ("WEATHER_TYPE", self.weather_type),
                ("WEATHER_LOCATION_LAT", self.weather_location_lat),
                ("WEATHER_LOCATION_LON", self.weather_location_lon),
            )
            if not value.strip()
        ]
        if missing:
            raise ValueError(f"Missing required settings: {', '.join(missing)}")
        return self

    @property
    def parameters_file(self) -> Path:
        return self.state_path / "parameters.json"

    @property
    def secrets_dir(self) -> Path:
        return self.state_path / "secrets"

    @property
    def bucket_dir(self) -> Path:
        return self.state_path / "buckets" / self.bucket_name

    @property
    def invalidation_log_file(self) -> Path:
        return self.state_path / "distributions" / f"{self.distribution_id}.json"

    @property
    def step_log_file(self) -> Path:
        """Path where durable step results are persisted."""

        return self.state_path / "steps.json"
