"""
Error Handler Utility
====================

Provides centralized error handling and logging for the geo engine.
Handles error categorization, retry logic for the geocoder, and structured
error reporting for swallowed persistence failures.

Key Features:
- Centralized error categorization and handling
- Automatic retry logic for transient network failures
- Structured error logging with context information
- Error statistics for debugging

Classes:
    InvalidCoordinateError: Raised for malformed or out-of-range coordinates
    ErrorHandler: Main error handling interface
    ErrorCategory: Enumeration of error categories
    ErrorContext: Context information for errors
    RetryConfig: Configuration for retry behavior

Author: Travel Geo Engine Team
"""

import json
import logging
import random
import time
import traceback
from typing import Any, Optional, Dict, Callable, List
from dataclasses import dataclass
from enum import Enum
from datetime import datetime

import requests


class InvalidCoordinateError(ValueError):
    """Raised when a latitude/longitude pair is missing, non-numeric or out of range"""

    def __init__(self, latitude: Any, longitude: Any, reason: str = "out of range"):
        self.latitude = latitude
        self.longitude = longitude
        self.reason = reason
        super().__init__(f"Invalid coordinate ({latitude}, {longitude}): {reason}")


class ErrorCategory(Enum):
    """
    Error categories for classification
    """
    # Data-related errors
    DATA_VALIDATION = "data_validation"
    DATA_CORRUPTION = "data_corruption"
    INVALID_COORDINATES = "invalid_coordinates"

    # API-related errors
    API_CONNECTION = "api_connection"
    API_TIMEOUT = "api_timeout"
    API_RATE_LIMIT = "api_rate_limit"
    API_AUTHENTICATION = "api_authentication"

    # Storage errors
    STORAGE_READ = "storage_read"
    STORAGE_WRITE = "storage_write"

    # System errors
    NETWORK_ERROR = "network_error"

    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """
    Error severity levels
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """
    Context information for errors

    Attributes:
        module (str): Module where error occurred
        function (str): Function where error occurred
        system_state (Dict): Relevant system state
        timestamp (datetime): When error occurred
    """
    module: str
    function: str
    system_state: Optional[Dict] = None
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior

    Attributes:
        max_attempts (int): Maximum number of attempts
        base_delay (float): Base delay between retries in seconds
        max_delay (float): Maximum delay between retries
        exponential_backoff (bool): Whether to use exponential backoff
        jitter (bool): Whether to add random jitter to delays
        retryable_errors (List[ErrorCategory]): Error categories that should trigger retry
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_backoff: bool = True
    jitter: bool = True
    retryable_errors: List[ErrorCategory] = None

    def __post_init__(self):
        if self.retryable_errors is None:
            self.retryable_errors = [
                ErrorCategory.API_CONNECTION,
                ErrorCategory.API_TIMEOUT,
                ErrorCategory.API_RATE_LIMIT,
                ErrorCategory.NETWORK_ERROR
            ]


@dataclass
class ErrorReport:
    """
    Structured error report

    Attributes:
        category (ErrorCategory): Error category
        severity (ErrorSeverity): Error severity
        message (str): Human-readable error message
        technical_details (str): Technical error details
        context (ErrorContext): Error context information
        stack_trace (str): Stack trace if available
        recovery_suggestions (List[str]): Suggested recovery actions
        occurred_at (datetime): When error occurred
    """
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    technical_details: str
    context: ErrorContext
    stack_trace: Optional[str] = None
    recovery_suggestions: Optional[List[str]] = None
    occurred_at: Optional[datetime] = None

    def __post_init__(self):
        if self.occurred_at is None:
            self.occurred_at = datetime.now()
        if self.recovery_suggestions is None:
            self.recovery_suggestions = []


class ErrorHandler:
    """
    Main error handling interface
    Provides centralized error management with logging, retry logic, and reporting
    """

    def __init__(self):
        """Initialize Error Handler"""
        self.logger = logging.getLogger(__name__)

        self._error_counts: Dict[ErrorCategory, int] = {}
        self._total_errors = 0

        self.default_retry_config = RetryConfig()

    def handle_error(self, message: str, exception: Exception = None,
                     category: ErrorCategory = ErrorCategory.UNKNOWN,
                     severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                     context: ErrorContext = None,
                     raise_exception: bool = False) -> ErrorReport:
        """
        Handle an error with logging and reporting

        Args:
            message (str): Human-readable error message
            exception (Exception): Original exception if available
            category (ErrorCategory): Error category
            severity (ErrorSeverity): Error severity
            context (ErrorContext): Error context
            raise_exception (bool): Whether to re-raise the exception

        Returns:
            ErrorReport: Structured error report
        """
        self._total_errors += 1
        self._error_counts[category] = self._error_counts.get(category, 0) + 1

        technical_details = str(exception) if exception else "No exception details"
        stack_trace = None
        if exception is not None and exception.__traceback__ is not None:
            stack_trace = "".join(traceback.format_exception(
                type(exception), exception, exception.__traceback__
            ))

        error_report = ErrorReport(
            category=category,
            severity=severity,
            message=message,
            technical_details=technical_details,
            context=context or ErrorContext(module="unknown", function="unknown"),
            stack_trace=stack_trace,
            recovery_suggestions=self._get_recovery_suggestions(category)
        )

        self._log_error(error_report)

        if raise_exception and exception:
            raise exception

        return error_report

    def handle_storage_error(self, operation: str, key: str,
                             exception: Exception) -> ErrorReport:
        """
        Handle a key-value store failure without propagating it

        Args:
            operation (str): "read" or "write"
            key (str): Storage key involved
            exception (Exception): Original exception

        Returns:
            ErrorReport: Structured error report
        """
        if operation == "read":
            if isinstance(exception, (json.JSONDecodeError, UnicodeDecodeError)):
                category = ErrorCategory.DATA_CORRUPTION
            else:
                category = ErrorCategory.STORAGE_READ
        else:
            category = ErrorCategory.STORAGE_WRITE

        context = ErrorContext(
            module="storage",
            function=f"{operation}_{key}",
            system_state={"key": key, "operation": operation}
        )

        return self.handle_error(
            message=f"Failed to {operation} '{key}'",
            exception=exception,
            category=category,
            severity=ErrorSeverity.MEDIUM,
            context=context
        )

    def handle_api_error(self, api_name: str, endpoint: str, status_code: int = None,
                         response_text: str = None, exception: Exception = None) -> ErrorReport:
        """
        Handle API-specific errors

        Args:
            api_name (str): Name of the API
            endpoint (str): API endpoint
            status_code (int): HTTP status code
            response_text (str): Response text
            exception (Exception): Original exception

        Returns:
            ErrorReport: Structured error report
        """
        if status_code == 401 or status_code == 403:
            category = ErrorCategory.API_AUTHENTICATION
        elif status_code == 429:
            category = ErrorCategory.API_RATE_LIMIT
        elif exception is not None:
            category = self._categorize_exception(exception)
        else:
            category = ErrorCategory.API_CONNECTION

        context = ErrorContext(
            module="api_client",
            function=f"{api_name}_request",
            system_state={
                "api_name": api_name,
                "endpoint": endpoint,
                "status_code": status_code,
                "response_text": response_text[:500] if response_text else None
            }
        )

        message = f"{api_name} API error"
        if status_code:
            message += f" (HTTP {status_code})"

        return self.handle_error(
            message=message,
            exception=exception,
            category=category,
            severity=ErrorSeverity.HIGH if status_code and status_code >= 500 else ErrorSeverity.MEDIUM,
            context=context
        )

    def retry_on_error(self, func: Callable, *args,
                       retry_config: RetryConfig = None, **kwargs) -> Any:
        """
        Execute function with retry logic

        Args:
            func (Callable): Function to execute
            *args: Function arguments
            retry_config (RetryConfig): Retry configuration
            **kwargs: Function keyword arguments

        Returns:
            Any: Function result

        Raises:
            Exception: If all retry attempts fail or the error is not retryable
        """
        config = retry_config or self.default_retry_config
        last_exception = None

        for attempt in range(config.max_attempts):
            try:
                result = func(*args, **kwargs)

                if attempt > 0:
                    self.logger.info(f"Function {func.__name__} succeeded on attempt {attempt + 1}")

                return result

            except Exception as e:
                last_exception = e

                error_category = self._categorize_exception(e)
                if error_category not in config.retryable_errors:
                    self.logger.warning(f"Error {error_category.value} not retryable, failing immediately")
                    break

                if attempt == config.max_attempts - 1:
                    break

                delay = self._calculate_retry_delay(attempt, config)

                self.logger.warning(
                    f"Function {func.__name__} failed on attempt {attempt + 1}, "
                    f"retrying in {delay:.1f}s: {str(e)}"
                )

                time.sleep(delay)

        self.handle_error(
            message=f"Function {func.__name__} failed after {attempt + 1} attempt(s)",
            exception=last_exception,
            category=self._categorize_exception(last_exception),
            severity=ErrorSeverity.HIGH
        )

        raise last_exception

    def _log_error(self, error_report: ErrorReport) -> None:
        """Log error report"""
        log_message = (
            f"[{error_report.category.value}] {error_report.message}\n"
            f"Severity: {error_report.severity.value}\n"
            f"Technical: {error_report.technical_details}\n"
            f"Module: {error_report.context.module}.{error_report.context.function}"
        )

        if error_report.context.system_state:
            log_message += f"\nState: {error_report.context.system_state}"

        if error_report.recovery_suggestions:
            log_message += f"\nSuggestions: {', '.join(error_report.recovery_suggestions)}"

        if error_report.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(log_message)
        elif error_report.severity == ErrorSeverity.HIGH:
            self.logger.error(log_message)
        elif error_report.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(log_message)
        else:
            self.logger.info(log_message)

        if (error_report.severity in [ErrorSeverity.HIGH, ErrorSeverity.CRITICAL]
                and error_report.stack_trace):
            self.logger.debug(f"Stack trace:\n{error_report.stack_trace}")

    def _categorize_exception(self, exception: Exception) -> ErrorCategory:
        """Categorize exception into error category"""
        if isinstance(exception, InvalidCoordinateError):
            return ErrorCategory.INVALID_COORDINATES
        elif isinstance(exception, requests.exceptions.Timeout):
            return ErrorCategory.API_TIMEOUT
        elif isinstance(exception, requests.exceptions.HTTPError):
            response = exception.response
            if response is not None and response.status_code == 429:
                return ErrorCategory.API_RATE_LIMIT
            if response is not None and response.status_code >= 500:
                return ErrorCategory.API_CONNECTION
            return ErrorCategory.DATA_VALIDATION
        elif isinstance(exception, (requests.exceptions.ConnectionError, ConnectionError)):
            return ErrorCategory.NETWORK_ERROR
        elif isinstance(exception, TimeoutError):
            return ErrorCategory.API_TIMEOUT
        elif isinstance(exception, json.JSONDecodeError):
            return ErrorCategory.DATA_CORRUPTION
        elif isinstance(exception, ValueError):
            return ErrorCategory.DATA_VALIDATION
        elif isinstance(exception, OSError):
            return ErrorCategory.STORAGE_WRITE
        else:
            return ErrorCategory.UNKNOWN

    def _calculate_retry_delay(self, attempt: int, config: RetryConfig) -> float:
        """Calculate delay before next retry attempt"""
        if config.exponential_backoff:
            delay = config.base_delay * (2 ** attempt)
        else:
            delay = config.base_delay

        delay = min(delay, config.max_delay)

        if config.jitter:
            delay *= (0.5 + random.random() * 0.5)  # 50-100% of calculated delay

        return delay

    def _get_recovery_suggestions(self, category: ErrorCategory) -> List[str]:
        """Get recovery suggestions for error category"""
        suggestions = {
            ErrorCategory.API_CONNECTION: [
                "Check internet connection",
                "Try again in a few minutes"
            ],
            ErrorCategory.API_TIMEOUT: [
                "Increase GEOCODER_TIMEOUT",
                "Check network latency"
            ],
            ErrorCategory.API_RATE_LIMIT: [
                "Wait before making more requests",
                "Respect the Nominatim usage policy (1 request/second)"
            ],
            ErrorCategory.DATA_CORRUPTION: [
                "Stored learning data was discarded",
                "Learning restarts from the base radius"
            ],
            ErrorCategory.STORAGE_WRITE: [
                "Check LEARNING_DATA_DIR is writable",
                "Check free disk space"
            ],
            ErrorCategory.INVALID_COORDINATES: [
                "Latitude must be within [-90, 90]",
                "Longitude must be within [-180, 180]"
            ]
        }

        return suggestions.get(category, ["Review error details"])

    def get_error_statistics(self) -> Dict:
        """Get error statistics"""
        return {
            "total_errors": self._total_errors,
            "errors_by_category": {k.value: v for k, v in self._error_counts.items()},
            "most_common_error": (max(self._error_counts, key=self._error_counts.get).value
                                  if self._error_counts else None)
        }

    def reset_statistics(self) -> None:
        """Reset error statistics"""
        self._error_counts.clear()
        self._total_errors = 0
        self.logger.info("Error statistics reset")
