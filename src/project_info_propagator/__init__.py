"""
Project Info Propagator - keeps Namespace labels in sync with Rancher Projects.

This operator propagates the labels of a Project that carry the
``propagate.`` prefix to every Namespace owned by that Project:
- Works inside the cluster hosting the Projects (single-cluster mode)
- Works inside a downstream cluster reading Projects from upstream
- Keeps serving the last known labels while upstream is unreachable
"""

__version__ = "0.1.0"
