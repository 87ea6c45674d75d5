"""
Ownership tracking utilities for Namespaces belonging to Projects.

Rancher records the owner of a Namespace twice:

- the ``field.cattle.io/projectId`` annotation, holding
  ``<project-namespace>:<project-name>``
- a label with the same key holding only ``<project-name>``

Labels are indexed by the API server while annotations are not, so owned
Namespaces are listed through the label and then re-verified against the
annotation: the label alone cannot tell apart same-named Projects living in
different namespaces.

The cross-kind mapping functions at the bottom of the module are what the
secondary watches use to re-enqueue objects of the other kind. They are pure
so that they can be tested without a cluster.
"""

from collections.abc import Iterable

from ..constants import NAMESPACE_ANNOTATION, OWNERSHIP_SEPARATOR
from ..models import Namespace, ObjectKey, Project


def parse_ownership(value: str | None) -> ObjectKey | None:
    """
    Extract the project key from an ownership annotation value.

    Args:
        value: Annotation value, may be None when the annotation is missing

    Returns:
        ObjectKey(project_namespace, project_name), or None when the value is
        missing or malformed

    Example:
        >>> parse_ownership("c-abc12:p-xyz34")
        ObjectKey(namespace='c-abc12', name='p-xyz34')
    """
    if not value or OWNERSHIP_SEPARATOR not in value:
        return None

    project_namespace, project_name = value.split(OWNERSHIP_SEPARATOR, 1)
    if not project_namespace or not project_name:
        return None

    return ObjectKey(project_namespace, project_name)


def ownership_label_selector(project: Project) -> str:
    """Label selector narrowing a Namespace list to the candidates owned by ``project``."""
    return f"{NAMESPACE_ANNOTATION}={project.name}"


def is_owned_by(namespace: Namespace, project: Project) -> bool:
    """Check the full ownership annotation of ``namespace`` against ``project``."""
    return namespace.project_annotation == project.ownership_annotation


def filter_owned(namespaces: Iterable[Namespace], project: Project) -> list[Namespace]:
    """
    Keep only the Namespaces whose annotation points at ``project``.

    Used on the result of a label-selector list, which may contain
    Namespaces owned by a same-named project from another namespace.
    """
    return [ns for ns in namespaces if is_owned_by(ns, project)]


def project_key_for_namespace(namespace: Namespace) -> ObjectKey | None:
    """
    Map a Namespace event to the key of the Project owning it.

    Returns:
        Key of the owning project, or None when the Namespace is not managed
    """
    return parse_ownership(namespace.project_annotation)


def namespace_keys_for_project(
    project_key: ObjectKey, namespaces: Iterable[Namespace]
) -> list[ObjectKey]:
    """
    Map a Project event to the keys of the Namespaces it owns.

    Args:
        project_key: Key of the changed project
        namespaces: Namespaces currently known to the Namespace loop

    Returns:
        Keys of the Namespaces whose ownership annotation resolves to
        ``project_key``
    """
    return [
        ns.key for ns in namespaces if project_key_for_namespace(ns) == project_key
    ]
