"""Root settings model for Softer configuration."""

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from softer.config.models.claims import ClaimConfig
from softer.config.models.lightward import LightwardConfig
from softer.config.models.observability import ObservabilityConfig
from softer.config.models.payment import PaymentConfig
from softer.config.models.storage import StorageConfig

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Module-level variable to store TOML config for settings source
_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Set the TOML configuration to be used by Settings."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source that reads from the loaded TOML configuration."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return _toml_config.copy()


class Settings(BaseSettings):
    """Root configuration object containing all nested configuration sections."""

    model_config = SettingsConfigDict(
        env_prefix="SOFTER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="softer", description="Application name for logging")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: LogLevel = Field(default="INFO", description="Logging level")
    device_id: str | None = Field(
        default=None,
        description="Stable identifier of this device, used when claiming needs",
    )

    lightward: LightwardConfig = Field(
        default_factory=LightwardConfig,
        description="Lightward completion endpoint configuration",
    )
    payment: PaymentConfig = Field(
        default_factory=PaymentConfig,
        description="Payment authorization configuration",
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Record store backend configuration",
    )
    claims: ClaimConfig = Field(
        default_factory=ClaimConfig,
        description="Need claim configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority order: constructor args, SOFTER_* env vars, TOML files."""
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )
