"""
Common models shared across different resource types.

Only the metadata fields that drive reconciliation are modelled; everything
else in the object bodies is ignored.
"""

from datetime import UTC, datetime
from typing import NamedTuple

from pydantic import BaseModel, Field


class ObjectKey(NamedTuple):
    """Identity of a watched object. ``namespace`` is None for cluster-scoped kinds."""

    namespace: str | None
    name: str

    def __str__(self) -> str:
        if self.namespace is None:
            return self.name
        return f"{self.namespace}/{self.name}"


class ObjectMeta(BaseModel):
    """Subset of Kubernetes ObjectMeta."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    name: str | None = Field(None, description="Name of the object")
    namespace: str | None = Field(None, description="Namespace of the object")
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    deletion_timestamp: datetime | None = Field(
        None,
        alias="deletionTimestamp",
        description="Set by the API server once the object is being deleted",
    )


def parse_metadata(body: dict) -> dict:
    """Return the metadata section of an object body, tolerating nulls."""
    metadata = dict(body.get("metadata") or {})
    metadata["labels"] = metadata.get("labels") or {}
    metadata["annotations"] = metadata.get("annotations") or {}
    return metadata


def deleted_now() -> datetime:
    """Timestamp used to mark objects that vanished from a watch."""
    return datetime.now(UTC)
