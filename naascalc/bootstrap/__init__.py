"""
bootstrap/ - Configuration, application wiring and entry points.
"""

from .config import (
    CalculationConfig,
    ConfigError,
    LoggingConfig,
    NaaSCalcConfig,
    PricingConfig,
    load_config,
)
from .app import AppContext, AppState, NaaSCalcApp, create_app

__all__ = [
    "CalculationConfig",
    "ConfigError",
    "LoggingConfig",
    "NaaSCalcConfig",
    "PricingConfig",
    "load_config",
    "AppContext",
    "AppState",
    "NaaSCalcApp",
    "create_app",
]
