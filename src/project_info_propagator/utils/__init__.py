"""
Utils package - Utility modules for the project info propagator.

Contains helper modules for:
- Computing the labels to propagate and merging them into Namespaces
- Resolving Namespace ownership and cross-kind triggers
- Kubernetes API access for the local and upstream clusters
- Handler logging
"""
