"""Error handling and structured logging for the rules checks."""

import json
import logging
import traceback
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, asdict
import sys


class ErrorSeverity(Enum):
    """Error severity levels"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification"""
    FILE_ACCESS = "file_access"
    RULES_FILE = "rules_file"
    CONFIG_FILE = "config_file"
    EMULATOR = "emulator"
    RULES_ASSERTION = "rules_assertion"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


@dataclass
class ErrorDetail:
    """Detailed error information"""
    timestamp: str
    severity: str
    category: str
    error_code: str
    message: str
    file_path: Optional[str] = None
    check_name: Optional[str] = None
    stack_trace: Optional[str] = None
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return asdict(self)


ERROR_CODES = {
    # File access errors
    "FILE_NOT_FOUND": "F001",
    "FILE_PERMISSION_DENIED": "F002",
    "FILE_EMPTY": "F003",

    # Rules file checks
    "RULES_CHECK_FAILED": "R001",

    # JSON configuration checks
    "INVALID_JSON": "J001",
    "CONFIG_CHECK_FAILED": "J002",

    # Emulator errors
    "EMULATOR_UNAVAILABLE": "E001",
    "EMULATOR_REQUEST_FAILED": "E002",
    "RULES_UPLOAD_FAILED": "E003",

    # Rules assertions
    "UNEXPECTED_ALLOW": "A001",
    "UNEXPECTED_DENY": "A002",

    # Tool configuration errors
    "CONFIG_TEMPLATE_ERROR": "C003",

    "UNEXPECTED_ERROR": "S999",
}


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON documents"""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for attr in ('error_code', 'file_path', 'category', 'context'):
            if hasattr(record, attr):
                log_entry[attr] = getattr(record, attr)

        return json.dumps(log_entry, default=str)


def configure_library_logging(level: str = "ERROR") -> None:
    """Quiet the HTTP client loggers so test output stays readable"""
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.ERROR
    for name in ('urllib3', 'requests'):
        logging.getLogger(name).setLevel(numeric)


class ErrorHandler:
    """Collects errors and warnings and mirrors them to structured logs"""

    def __init__(self, log_directory: Optional[str] = "logs", enable_console: bool = True):
        self.log_directory = Path(log_directory) if log_directory else None
        if self.log_directory is not None:
            self.log_directory.mkdir(parents=True, exist_ok=True)

        self.errors: List[ErrorDetail] = []
        self.warnings: List[ErrorDetail] = []

        self._setup_logging(enable_console)

    def _setup_logging(self, enable_console: bool):
        """Set up structured JSON logging"""
        self.logger = logging.getLogger('asset_rules.checks')
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()

        if self.log_directory is not None:
            log_file = self.log_directory / f"checks_{datetime.now().strftime('%Y%m%d')}.jsonl"
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JSONFormatter())
            self.logger.addHandler(file_handler)

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.WARNING)
            console_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
            self.logger.addHandler(console_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

    def log_error(self,
                  message: str,
                  error_type: str,
                  category: ErrorCategory = ErrorCategory.SYSTEM,
                  file_path: Optional[str] = None,
                  check_name: Optional[str] = None,
                  exception: Optional[Exception] = None,
                  context: Optional[Dict[str, Any]] = None) -> ErrorDetail:
        """Log an error with detailed information"""

        error_code = ERROR_CODES.get(error_type, "S999")
        stack_trace = None

        if exception:
            stack_trace = ''.join(traceback.format_exception(
                type(exception), exception, exception.__traceback__
            ))

        error_detail = ErrorDetail(
            timestamp=datetime.now().isoformat(),
            severity=ErrorSeverity.ERROR.value,
            category=category.value,
            error_code=error_code,
            message=message,
            file_path=file_path,
            check_name=check_name,
            stack_trace=stack_trace,
            context=context or {}
        )

        self.errors.append(error_detail)

        self.logger.error(
            message,
            extra={
                'error_code': error_code,
                'category': category.value,
                'file_path': file_path,
                'context': context or {}
            }
        )

        return error_detail

    def log_warning(self,
                    message: str,
                    warning_type: str,
                    category: ErrorCategory = ErrorCategory.SYSTEM,
                    file_path: Optional[str] = None,
                    context: Optional[Dict[str, Any]] = None) -> ErrorDetail:
        """Log a warning with detailed information"""

        warning_code = ERROR_CODES.get(warning_type, "W999")

        warning_detail = ErrorDetail(
            timestamp=datetime.now().isoformat(),
            severity=ErrorSeverity.WARNING.value,
            category=category.value,
            error_code=warning_code,
            message=message,
            file_path=file_path,
            context=context or {}
        )

        self.warnings.append(warning_detail)

        self.logger.warning(
            message,
            extra={
                'error_code': warning_code,
                'category': category.value,
                'file_path': file_path,
                'context': context or {}
            }
        )

        return warning_detail

    def log_info(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Log informational message"""
        self.logger.info(message, extra={'context': context or {}})

    def log_debug(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Log debug message"""
        self.logger.debug(message, extra={'context': context or {}})

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of all errors and warnings"""
        errors_by_category: Dict[str, int] = {}
        for error in self.errors:
            errors_by_category[error.category] = errors_by_category.get(error.category, 0) + 1

        warnings_by_category: Dict[str, int] = {}
        for warning in self.warnings:
            warnings_by_category[warning.category] = warnings_by_category.get(warning.category, 0) + 1

        return {
            'total_errors': len(self.errors),
            'total_warnings': len(self.warnings),
            'errors_by_category': errors_by_category,
            'warnings_by_category': warnings_by_category,
            'files_with_errors': sorted(set(e.file_path for e in self.errors if e.file_path)),
        }

    def generate_error_report(self, output_file: Optional[str] = None) -> str:
        """Write every collected error and warning to a JSON report"""
        if output_file is None:
            directory = self.log_directory or Path('.')
            output_file = str(directory / f"error_report_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json")

        report = {
            'report_timestamp': datetime.now().isoformat(),
            'summary': self.get_error_summary(),
            'all_errors': [error.to_dict() for error in self.errors],
            'all_warnings': [warning.to_dict() for warning in self.warnings]
        }

        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, default=str)

        self.log_info(f"Error report generated: {output_file}")
        return output_file

    def clear_errors(self):
        """Clear all accumulated errors and warnings"""
        self.errors.clear()
        self.warnings.clear()

    def has_errors(self) -> bool:
        """Check if any errors have been logged"""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if any warnings have been logged"""
        return len(self.warnings) > 0

    def get_errors_for_file(self, file_path: str) -> List[ErrorDetail]:
        """Get all errors for a specific file"""
        return [error for error in self.errors if error.file_path == file_path]


def handle_file_access_error(error_handler: ErrorHandler,
                             file_path: str,
                             exception: Exception) -> ErrorDetail:
    """Handle common file access errors"""
    if isinstance(exception, FileNotFoundError):
        return error_handler.log_error(
            f"File not found: {file_path}",
            "FILE_NOT_FOUND",
            ErrorCategory.FILE_ACCESS,
            file_path=file_path,
            exception=exception
        )
    elif isinstance(exception, PermissionError):
        return error_handler.log_error(
            f"Permission denied accessing file: {file_path}",
            "FILE_PERMISSION_DENIED",
            ErrorCategory.FILE_ACCESS,
            file_path=file_path,
            exception=exception
        )
    else:
        return error_handler.log_error(
            f"File access error: {str(exception)}",
            "UNEXPECTED_ERROR",
            ErrorCategory.FILE_ACCESS,
            file_path=file_path,
            exception=exception
        )


def handle_check_failure(error_handler: ErrorHandler, result) -> ErrorDetail:
    """Record a failed static check (a CheckResult) against its file

    A result carrying an error_type (missing, empty or unparsable file) is
    recorded under that code; anything else is a failed pattern or field check.
    """
    is_rules = bool(result.file_path) and result.file_path.endswith('.rules')
    if result.error_type == "INVALID_JSON":
        error_type, category = result.error_type, ErrorCategory.CONFIG_FILE
    elif result.error_type:
        error_type, category = result.error_type, ErrorCategory.FILE_ACCESS
    elif is_rules:
        error_type, category = "RULES_CHECK_FAILED", ErrorCategory.RULES_FILE
    else:
        error_type, category = "CONFIG_CHECK_FAILED", ErrorCategory.CONFIG_FILE
    return error_handler.log_error(
        f"{result.name}: {result.message}",
        error_type,
        category,
        file_path=result.file_path,
        check_name=result.name
    )


def handle_case_failure(error_handler: ErrorHandler, result) -> ErrorDetail:
    """Record a rules case (a CaseResult) whose verdict did not match"""
    if result.outcome == "error":
        error_type, category = "EMULATOR_REQUEST_FAILED", ErrorCategory.EMULATOR
    elif result.outcome == "allowed":
        error_type, category = "UNEXPECTED_ALLOW", ErrorCategory.RULES_ASSERTION
    else:
        error_type, category = "UNEXPECTED_DENY", ErrorCategory.RULES_ASSERTION
    return error_handler.log_error(
        f"{result.case.name}: {result.message}",
        error_type,
        category,
        context=result.to_dict()
    )
