"""Persistent fallback cache of Project labels."""

from .projects_cache import ProjectsCache

__all__ = ["ProjectsCache"]
