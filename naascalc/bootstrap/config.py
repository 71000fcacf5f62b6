"""
bootstrap/config.py - Application configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from naascalc.core.constants import (
    CALCULATION_DEBOUNCE_MS,
    CALCULATION_MAX_WAIT_MS,
    MAX_BATCH_HISTORY_SIZE,
    MAX_EXECUTION_HISTORY_SIZE,
)
from naascalc.errors import ErrorCategory, ErrorCode, NaaSCalcError
from naascalc.pricing.catalog import PricingRates

logger = logging.getLogger("naascalc.bootstrap.config")

ENV_PREFIX = "NAASCALC_"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConfigError(NaaSCalcError):
    """Configuration file could not be read or holds invalid values."""

    code = ErrorCode.CFG_INVALID
    category = ErrorCategory.CONFIGURATION


def _env(name: str, default: str) -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_bool(name: str, default: bool) -> bool:
    return _env(name, "true" if default else "false").lower() == "true"


@dataclass
class CalculationConfig:
    """Scheduling and history settings for the orchestrator."""

    debounce_ms: float = CALCULATION_DEBOUNCE_MS
    max_wait_ms: float = CALCULATION_MAX_WAIT_MS
    history_size: int = MAX_EXECUTION_HISTORY_SIZE
    batch_history_size: int = MAX_BATCH_HISTORY_SIZE

    @classmethod
    def from_env(cls) -> "CalculationConfig":
        return cls(
            debounce_ms=float(_env("DEBOUNCE_MS", str(CALCULATION_DEBOUNCE_MS))),
            max_wait_ms=float(_env("MAX_WAIT_MS", str(CALCULATION_MAX_WAIT_MS))),
            history_size=int(_env("HISTORY_SIZE", str(MAX_EXECUTION_HISTORY_SIZE))),
            batch_history_size=int(_env("BATCH_HISTORY_SIZE", str(MAX_BATCH_HISTORY_SIZE))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "debounce_ms": self.debounce_ms,
            "max_wait_ms": self.max_wait_ms,
            "history_size": self.history_size,
            "batch_history_size": self.batch_history_size,
        }


@dataclass
class PricingConfig:
    """Financial rates used by the pricing calculators."""

    apr_rate: float = 0.05
    cpi_rate: float = 0.03
    default_term_months: int = 36

    @classmethod
    def from_env(cls) -> "PricingConfig":
        return cls(
            apr_rate=float(_env("APR_RATE", "0.05")),
            cpi_rate=float(_env("CPI_RATE", "0.03")),
            default_term_months=int(_env("DEFAULT_TERM_MONTHS", "36")),
        )

    def to_rates(self) -> PricingRates:
        return PricingRates(
            apr_rate=self.apr_rate,
            cpi_rate=self.cpi_rate,
            default_term_months=self.default_term_months,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apr_rate": self.apr_rate,
            "cpi_rate": self.cpi_rate,
            "default_term_months": self.default_term_months,
        }


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=_env("LOG_LEVEL", "INFO"),
            format=_env("LOG_FORMAT", DEFAULT_LOG_FORMAT),
            log_file=os.getenv(f"{ENV_PREFIX}LOG_FILE"),
            json_logs=_env_bool("JSON_LOGS", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "format": self.format,
            "log_file": self.log_file,
            "json_logs": self.json_logs,
        }


@dataclass
class NaaSCalcConfig:
    """Root configuration."""

    environment: str = "development"
    debug: bool = False
    version: str = "1.0.0"

    calculation: CalculationConfig = field(default_factory=CalculationConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "NaaSCalcConfig":
        """Create configuration from environment variables."""
        return cls(
            environment=_env("ENVIRONMENT", "development"),
            debug=_env_bool("DEBUG", False),
            calculation=CalculationConfig.from_env(),
            pricing=PricingConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "NaaSCalcConfig":
        """Load configuration from a JSON file, layered over the environment."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {filepath}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be an object: {filepath}")
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "NaaSCalcConfig":
        config = cls.from_env()

        if "environment" in data:
            config.environment = data["environment"]
        if "debug" in data:
            config.debug = bool(data["debug"])

        for section in ("calculation", "pricing", "logging"):
            values = data.get(section)
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ConfigError(f"Config section '{section}' must be an object")
            target = getattr(config, section)
            for key, value in values.items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Unknown config key: {section}.{key}")

        calc = config.calculation
        if calc.debounce_ms < 0 or calc.max_wait_ms < 0:
            raise ConfigError("debounce_ms and max_wait_ms must be non-negative")
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "version": self.version,
            "calculation": self.calculation.to_dict(),
            "pricing": self.pricing.to_dict(),
            "logging": self.logging.to_dict(),
        }


def load_config(filepath: Optional[str] = None) -> NaaSCalcConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        A new NaaSCalcConfig instance
    """
    if filepath:
        config = NaaSCalcConfig.from_file(filepath)
    else:
        default_paths = [
            "./naascalc.json",
            "./config/naascalc.json",
            os.path.expanduser("~/.naascalc/config.json"),
        ]
        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                return NaaSCalcConfig.from_file(path)
        config = NaaSCalcConfig.from_env()

    logger.info(f"Configuration loaded: environment={config.environment}")
    return config
