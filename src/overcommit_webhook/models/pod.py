"""
Pydantic models for the parts of a Pod the webhook reads.

Only the fields needed to compute the resource patch are modelled. Unknown
fields are ignored, so any valid Pod manifest decodes. Container order is
preserved as received because the container index is part of the patch path.
"""

from typing import Any

from pydantic import BaseModel, Field


class ResourceRequirements(BaseModel):
    """Container resource requests."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    requests: dict[str, Any] | None = Field(
        None, description="Requested resources keyed by resource name"
    )

class Container(BaseModel):
    """A single container of a pod."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    name: str = Field("", description="Container name")
    resources: ResourceRequirements | None = Field(
        None, description="Compute resources required by this container"
    )

    @property
    def requests(self) -> dict[str, Any]:
        """Declared requests, empty when the container has none."""
        if self.resources is None or not self.resources.requests:
            return {}
        return self.resources.requests


class PodSpec(BaseModel):
    """Pod specification."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    containers: list[Container] = Field(
        default_factory=list, description="Containers in declaration order"
    )


class ObjectMeta(BaseModel):
    """Standard object metadata."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    name: str = Field("", description="Object name")
    generate_name: str = Field(
        "", alias="generateName", description="Prefix used when name is generated"
    )
    namespace: str = Field("", description="Object namespace")


class Pod(BaseModel):
    """A pod as embedded in an admission request."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PodSpec = Field(default_factory=PodSpec)

    @property
    def display_name(self) -> str:
        """Name for logs; pods created by controllers only carry generateName."""
        return self.metadata.name or self.metadata.generate_name
