"""
Service layer for the project info propagator.

This package contains the reconcilers and the work queue driving them.
"""

from .base_reconciler import BaseReconciler
from .namespace_reconciler import NamespaceReconciler
from .project_reconciler import ProjectReconciler
from .reconcile_loop import ReconcileLoop

__all__ = [
    "BaseReconciler",
    "NamespaceReconciler",
    "ProjectReconciler",
    "ReconcileLoop",
]
