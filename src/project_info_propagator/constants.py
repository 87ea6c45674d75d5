"""
Constants used throughout the project info propagator.

This module defines all constant values used by the operator including:
- The Project custom resource coordinates
- Ownership annotation and label keys
- The propagation prefix and the server-side apply identity
- Reconciliation timing defaults
"""

# Project custom resource, owned by Rancher Manager
PROJECT_GROUP = "management.cattle.io"
PROJECT_VERSION = "v3"
PROJECT_PLURAL = "projects"

# Namespace ownership. The annotation holds "<project-namespace>:<project-name>",
# the label with the same key holds only "<project-name>" and exists so that
# owned Namespaces can be listed through an indexed label selector.
NAMESPACE_ANNOTATION = "field.cattle.io/projectId"
OWNERSHIP_SEPARATOR = ":"

# Only Project labels carrying this prefix are propagated, without the prefix
KEY_PROPAGATION_PREFIX = "propagate."

# Field manager used for every server-side apply. Must never change: it is
# what the API server uses to resolve conflicts with other writers.
FIELD_MANAGER = "racher-project-info-propagator"

# Namespace holding the Projects of the cluster running Rancher Manager
DEFAULT_LOCAL_PROJECTS_NAMESPACE = "local"

# Reconciliation timing (in seconds)
DEFAULT_RECONCILIATION_INTERVAL = 300  # 5 minutes
DEFAULT_UPSTREAM_PROBE_TIMEOUT = 5
DEFAULT_MAX_CONCURRENT_RECONCILES = 10

# Fallback cache
CACHE_FILE_NAME = "cache.sqlite"
DEFAULT_DATA_PATH = "/data"

# Resource type names used in logs and metrics
RESOURCE_PROJECT = "project"
RESOURCE_NAMESPACE = "namespace"
