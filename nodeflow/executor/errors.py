"""Execution engine error classes."""

from typing import Any, Dict, Optional

from nodeflow.exceptions import NodeFlowException


class ExecutionError(NodeFlowException):
    """Base class for all execution errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "retryable": self.retryable,
        }


class NodeExecutionError(ExecutionError):
    """Raised inside an executor to fail the node with a specific error code."""

    def __init__(
        self,
        message: str,
        code: str = "NODE_EXECUTION_FAILED",
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=code, details=details, retryable=retryable)

    @property
    def code(self) -> str:
        return self.error_code


class ExecutionTimeoutError(ExecutionError):
    """Raised when an awaited operation exceeds its deadline."""

    retryable = True

    def __init__(
        self,
        message: str,
        timeout_ms: float,
        **kwargs
    ):
        super().__init__(message, error_code="TIMEOUT", **kwargs)
        self.timeout_ms = timeout_ms
        self.details["timeout_ms"] = timeout_ms


class ExecutionCancelledError(ExecutionError):
    """Raised when execution is cancelled through an abort signal."""

    def __init__(self, message: str = "Execution was cancelled", **kwargs):
        super().__init__(message, error_code="CANCELLED", **kwargs)


class DataValidationError(ExecutionError):
    """Raised when a value cannot be coerced or validated."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        expected_type: Optional[str] = None,
        actual_value: Any = None,
        **kwargs
    ):
        super().__init__(message, error_code="VALIDATION_ERROR", **kwargs)
        self.field = field
        self.expected_type = expected_type
        self.actual_value = actual_value
        self.details.update({
            "field": field,
            "expected_type": expected_type,
            "actual_value": str(actual_value),
        })


class MissingCredentialsError(NodeExecutionError):
    """Raised when a node requires credentials that were not supplied."""

    def __init__(
        self,
        message: str,
        credential_type: str,
        **kwargs
    ):
        super().__init__(message, code="MISSING_API_KEY", retryable=False, **kwargs)
        self.credential_type = credential_type
        self.details["credential_type"] = credential_type
