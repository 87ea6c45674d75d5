"""
Models package - Pydantic models for type-safe resource handling.

Defines data models for:
- Object metadata shared by every Kubernetes object
- Rancher Project custom resources
- Kubernetes Namespaces
"""

from .common import ObjectKey, ObjectMeta
from .namespace import Namespace
from .project import Project, ProjectSpec

__all__ = ["ObjectKey", "ObjectMeta", "Namespace", "Project", "ProjectSpec"]
