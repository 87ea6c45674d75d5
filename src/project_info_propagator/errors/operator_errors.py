"""
Operator error hierarchy with categorization and retry hints.

This module defines the error types used throughout the propagator. Every
error raised from a reconciliation ends up in the reconcile loop's error
policy, which logs it and requeues the object after the fixed interval.
"""

from kubernetes.client.rest import ApiException

# HTTP statuses that will not go away by themselves
NON_RETRYABLE_STATUSES = frozenset({401, 403, 422})


class OperatorError(Exception):
    """
    Base error class for all operator-related exceptions.

    Provides categorization, retry behavior, and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        retryable: bool = True,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize operator error.

        Args:
            message: Human-readable error description
            category: Error category (kubernetes, cache, internal, configuration)
            retryable: Whether the reconciliation should be retried
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.user_action = user_action
        self.cause = cause

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class ExternalServiceError(OperatorError):
    """Error communicating with external services."""

    def __init__(
        self,
        service: str,
        message: str,
        category: str = "external",
        retryable: bool = True,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        action = user_action or f"Check {service} connectivity and credentials"
        super().__init__(
            message=f"{service} error: {message}",
            category=category,
            retryable=retryable,
            user_action=action,
            cause=cause,
        )


class KubernetesAPIError(ExternalServiceError):
    """Error communicating with a Kubernetes API server."""

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        status: int | None = None,
        retryable: bool = True,
        cause: Exception | None = None,
    ):
        if reason:
            message = f"{message} (reason: {reason})"

        if status in NON_RETRYABLE_STATUSES:
            retryable = False

        super().__init__(
            service="Kubernetes API",
            message=message,
            category="kubernetes",
            retryable=retryable,
            user_action="Check RBAC permissions and cluster connectivity",
            cause=cause,
        )
        self.reason = reason
        self.status = status

    @classmethod
    def from_exception(cls, operation: str, error: Exception) -> "KubernetesAPIError":
        """
        Wrap an exception raised by the kubernetes client.

        Args:
            operation: Short description of the failed call
            error: ApiException or transport error raised by the client

        Returns:
            KubernetesAPIError carrying the status and reason when available
        """
        if isinstance(error, ApiException):
            return cls(
                message=f"{operation} failed with HTTP {error.status}",
                reason=error.reason,
                status=error.status,
                cause=error,
            )
        return cls(message=f"{operation} failed: {error}", cause=error)


class CacheError(OperatorError):
    """Error raised by the persistent projects cache."""

    def __init__(self, operation: str, cause: Exception | None = None):
        message = f"Projects cache error during {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(
            message=message,
            category="cache",
            retryable=True,
            user_action="Check the cache volume is mounted and writable",
            cause=cause,
        )
        self.operation = operation


class InternalInvariantError(OperatorError):
    """An assumption about the observed objects was violated."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            category="internal",
            retryable=False,
            user_action="This is a bug, please report it",
        )


class KubeconfigError(OperatorError):
    """Error loading or parsing a kubeconfig file (startup only)."""

    def __init__(self, path: str, cause: Exception | None = None):
        message = f"Cannot load kubeconfig '{path}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(
            message=message,
            category="kubeconfig",
            retryable=False,
            user_action="Check the path and contents of the upstream kubeconfig",
            cause=cause,
        )
        self.path = path


class ConfigurationError(OperatorError):
    """Error in operator configuration."""

    def __init__(
        self, message: str, retryable: bool = False, user_action: str | None = None
    ):
        super().__init__(
            message=message,
            category="configuration",
            retryable=retryable,
            user_action=user_action or "Review and correct configuration",
        )
