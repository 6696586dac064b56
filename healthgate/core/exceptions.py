"""
healthgate/core/exceptions.py
Custom exceptions for the health gate service
"""

from typing import Optional


class HealthGateException(Exception):
    """Base exception for all health gate errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logging/response"""
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


# ============================================================================
# Dependency Exceptions
# ============================================================================

class BootstrapException(HealthGateException):
    """A backing service could not be reached during startup"""

    def __init__(self, service: str, reason: str):
        self.service = service
        super().__init__(
            message=f"Failed to connect to {service}: {reason}",
            error_code="BOOTSTRAP_FAILED",
            details={"service": service, "reason": reason}
        )


class DependencyNotInitializedException(HealthGateException):
    """A handler needed a dependency handle that was never opened"""

    status_code = 503

    def __init__(self, service: str):
        super().__init__(
            message=f"Dependency '{service}' is not initialized",
            error_code="DEPENDENCY_NOT_INITIALIZED",
            details={"service": service}
        )


# ============================================================================
# Lifecycle Exceptions
# ============================================================================

class ServiceDrainingException(HealthGateException):
    """New work rejected because the process is shutting down"""

    status_code = 503

    def __init__(self, pending_tasks: int = 0):
        super().__init__(
            message="Service is shutting down",
            error_code="SERVICE_DRAINING",
            details={"pending_tasks": pending_tasks}
        )


# ============================================================================
# Export
# ============================================================================

__all__ = [
    "HealthGateException",
    "BootstrapException",
    "DependencyNotInitializedException",
    "ServiceDrainingException",
]
