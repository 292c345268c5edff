"""
Core module initialization.
Exports configuration, logging and error types.
"""

from orderflow.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from orderflow.core.exceptions import (
    OrderFlowError,
    OrderValidationError,
    PermissionDeniedError,
    NotFoundError,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "OrderFlowError",
    "OrderValidationError",
    "PermissionDeniedError",
    "NotFoundError",
]
