"""Utility functions and helpers"""

from .config_manager import ConfigManager, get_default_config_manager, parse_host_port
from .error_handler import (
    ErrorHandler,
    ErrorCategory,
    ErrorSeverity,
    configure_library_logging,
    handle_case_failure,
    handle_check_failure,
    handle_file_access_error,
)
from .firebase_config import FirebaseConfigValidator
from .rules_validator import RulesValidator

__all__ = [
    'ConfigManager',
    'get_default_config_manager',
    'parse_host_port',
    'ErrorHandler',
    'ErrorCategory',
    'ErrorSeverity',
    'configure_library_logging',
    'handle_case_failure',
    'handle_check_failure',
    'handle_file_access_error',
    'FirebaseConfigValidator',
    'RulesValidator',
]
