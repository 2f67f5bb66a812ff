"""
Core infrastructure module.
- Configuration management
- Error types
- Logging
"""

from .config import (
    USVConfig, GridConfig, GlobalPlannerConfig, LocalPlannerConfig,
    SensorConfig, NavigatorConfig, OperatingArea,
    load_config, config_from_dict
)
from .errors import USVNavError, ConfigurationError
from .logging_setup import setup_logging
