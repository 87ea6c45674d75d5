"""
Error handling module for the project info propagator.

This module provides the error hierarchy used by the reconcilers, the
fallback cache and the startup code.
"""

from .operator_errors import (
    CacheError,
    ConfigurationError,
    ExternalServiceError,
    InternalInvariantError,
    KubeconfigError,
    KubernetesAPIError,
    OperatorError,
)

__all__ = [
    "OperatorError",
    "ExternalServiceError",
    "KubernetesAPIError",
    "CacheError",
    "InternalInvariantError",
    "KubeconfigError",
    "ConfigurationError",
]
