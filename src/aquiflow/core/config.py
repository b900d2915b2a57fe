"""
Configuration system with validation and environment awareness.
Based on Pydantic Settings for robust configuration management.
"""
import logging
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aquiflow.core.constants import ODE_TOLERANCE, ODE_ABS_TOLERANCE
from aquiflow.core.exceptions import ConfigurationError
from aquiflow.core.types import UnitSystem, FlowUnits


class UnitsConfig(BaseSettings):
    """Units used for input values and user equations"""

    unit_system: UnitSystem = Field(UnitSystem.US, description="US customary or SI units")
    flow_units: FlowUnits = Field(FlowUnits.CFS, description="Units for flow rates")

    model_config = SettingsConfigDict(env_prefix="AQUIFLOW_UNITS_", case_sensitive=False)


class SolverConfig(BaseSettings):
    """Configuration for the adaptive ODE stepper"""

    method: Literal["RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA"] = Field(
        "RK45", description="scipy solve_ivp method"
    )
    rtol: float = Field(ODE_TOLERANCE, gt=0, description="Relative error tolerance")
    atol: float = Field(ODE_ABS_TOLERANCE, gt=0, description="Absolute error tolerance")

    model_config = SettingsConfigDict(env_prefix="AQUIFLOW_SOLVER_", case_sensitive=False)


class LoggingConfig(BaseSettings):
    """Logging settings"""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    model_config = SettingsConfigDict(env_prefix="AQUIFLOW_LOGGING_", case_sensitive=False)


class AquiflowConfig(BaseSettings):
    """Main configuration for the aquiflow package"""

    project_name: str = "aquiflow"

    units: UnitsConfig = Field(default_factory=UnitsConfig)
    solver: SolverConfig = Field(default_factory=SolverConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="AQUIFLOW_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_config(self):
        """Cross-field validation"""
        if self.solver.atol > self.solver.rtol:
            raise ValueError("Absolute tolerance cannot exceed the relative tolerance")
        return self

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "AquiflowConfig":
        """Load configuration from YAML file"""
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise ConfigurationError(f"Config file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        try:
            return cls(**yaml_config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {yaml_path}: {e}")

    def to_yaml(self, yaml_path: Union[str, Path]):
        """Save configuration to YAML file"""
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)


# Global configuration instance
_config: Optional[AquiflowConfig] = None


def get_config(config_path: Optional[Path] = None) -> AquiflowConfig:
    """Get or create configuration instance (singleton pattern)"""
    global _config

    if _config is None:
        if config_path and Path(config_path).exists():
            _config = AquiflowConfig.from_yaml(config_path)
        else:
            # Try to load from environment
            _config = AquiflowConfig()

    return _config


def set_config(config: Optional[AquiflowConfig]):
    """Set configuration (useful for testing)"""
    global _config
    _config = config


def setup_logging(config: Optional[AquiflowConfig] = None):
    """Configure root logging from the logging section of a configuration"""
    config = config or get_config()
    logging.basicConfig(
        level=getattr(logging, config.logging.log_level),
        format=config.logging.log_format,
    )
