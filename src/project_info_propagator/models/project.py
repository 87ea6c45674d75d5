"""
Rancher Project model.

Projects are owned by Rancher Manager; the operator only reads their
metadata. Fields under ``spec`` are accepted but never interpreted.
"""

from typing import Any

from pydantic import BaseModel, Field

from ..constants import KEY_PROPAGATION_PREFIX, OWNERSHIP_SEPARATOR
from ..errors import InternalInvariantError
from ..utils.labels import relevant_labels
from .common import ObjectKey, ObjectMeta, deleted_now, parse_metadata


class ProjectSpec(BaseModel):
    """Spec of a ``management.cattle.io/v3`` Project."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    display_name: str | None = Field(None, alias="displayName")
    description: str | None = None
    cluster_name: str | None = Field(None, alias="clusterName")


class Project(BaseModel):
    """A Rancher Project as seen by the propagator."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    metadata: ObjectMeta
    spec: ProjectSpec = Field(default_factory=ProjectSpec)

    @classmethod
    def from_body(cls, body: dict[str, Any], deleted: bool = False) -> "Project":
        """
        Build a Project from a raw object body.

        Args:
            body: Object body as returned by the API server or kopf
            deleted: Mark the project as deleted even when the body carries
                no deletion timestamp (final state of a DELETED watch event)

        Raises:
            InternalInvariantError: If the body has no name or no namespace
        """
        project = cls.model_validate(
            {"metadata": parse_metadata(body), "spec": body.get("spec") or {}}
        )
        if not project.metadata.name:
            raise InternalInvariantError("project should always have a name")
        if not project.metadata.namespace:
            raise InternalInvariantError(
                f"project {project.metadata.name} should always have a namespace set"
            )
        if deleted and project.metadata.deletion_timestamp is None:
            project.metadata.deletion_timestamp = deleted_now()
        return project

    @property
    def name(self) -> str:
        return self.metadata.name  # type: ignore[return-value]

    @property
    def namespace(self) -> str:
        return self.metadata.namespace  # type: ignore[return-value]

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @property
    def is_being_deleted(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    @property
    def ownership_annotation(self) -> str:
        """Value of the annotation found on the Namespaces owned by this project."""
        return f"{self.namespace}{OWNERSHIP_SEPARATOR}{self.name}"

    def relevant_labels(self) -> dict[str, str]:
        """Labels to propagate, with the propagation prefix stripped."""
        return relevant_labels(self.metadata.labels, KEY_PROPAGATION_PREFIX)
