"""Configuration model exports.

    from softer.config.models import LightwardConfig, StorageConfig
"""

from softer.config.models.claims import ClaimConfig
from softer.config.models.lightward import LightwardConfig
from softer.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from softer.config.models.payment import PaymentConfig
from softer.config.models.storage import StorageConfig

__all__ = [
    "ClaimConfig",
    "LightwardConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "PaymentConfig",
    "StorageConfig",
]
