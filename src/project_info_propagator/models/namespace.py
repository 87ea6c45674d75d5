"""Kubernetes Namespace model."""

from typing import Any

from pydantic import BaseModel

from ..constants import NAMESPACE_ANNOTATION
from ..errors import InternalInvariantError
from .common import ObjectKey, ObjectMeta, deleted_now, parse_metadata


class Namespace(BaseModel):
    """A Namespace as seen by the propagator."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    metadata: ObjectMeta

    @classmethod
    def from_body(cls, body: dict[str, Any], deleted: bool = False) -> "Namespace":
        """
        Build a Namespace from a raw object body.

        Raises:
            InternalInvariantError: If the body has no name
        """
        namespace = cls.model_validate({"metadata": parse_metadata(body)})
        if not namespace.metadata.name:
            raise InternalInvariantError("namespace should always have a name")
        if deleted and namespace.metadata.deletion_timestamp is None:
            namespace.metadata.deletion_timestamp = deleted_now()
        return namespace

    @property
    def name(self) -> str:
        return self.metadata.name  # type: ignore[return-value]

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(None, self.name)

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels

    @property
    def is_being_deleted(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    @property
    def project_annotation(self) -> str | None:
        """Raw value of the ownership annotation, if any."""
        return self.metadata.annotations.get(NAMESPACE_ANNOTATION)
