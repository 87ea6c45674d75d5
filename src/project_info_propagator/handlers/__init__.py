"""
Handlers package - Contains the kopf watch handlers.

Each module owns a separate ``kopf.OperatorRegistry`` because the two kinds
may be watched on different clusters:
- projects.py: Rancher Projects, on the cluster holding them
- namespaces.py: Namespaces, on the cluster running the propagator

Handlers never reconcile anything themselves: they record the latest object
in the matching reconcile loop and enqueue the affected keys.
"""
