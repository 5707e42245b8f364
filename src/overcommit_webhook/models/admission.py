"""
Pydantic models for the admission.k8s.io AdmissionReview envelope.

The API server posts an AdmissionReview with a ``request`` and expects the
same envelope back with a ``response``. Only the fields this webhook reads or
writes are modelled; unknown request fields are ignored.
"""

import base64
import binascii
import json
from typing import Any

from pydantic import BaseModel, Field

from overcommit_webhook.constants import ADMISSION_API_VERSION, ADMISSION_KIND
from overcommit_webhook.errors import PodDecodeError


class AdmissionRequest(BaseModel):
    """The request half of an AdmissionReview."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    uid: str = Field(..., description="Identifier echoed back in the response")
    namespace: str | None = Field(None, description="Namespace of the object")
    name: str | None = Field(None, description="Name of the object, if known")
    operation: str | None = Field(None, description="CREATE, UPDATE, DELETE, ...")
    dry_run: bool = Field(False, alias="dryRun")
    object_: Any = Field(None, alias="object", description="Object being admitted")

    def embedded_object(self) -> dict[str, Any]:
        """
        Decode the embedded object into a mapping.

        The object normally arrives as inline JSON. A ``{"raw": ...}`` wrapper
        carrying a JSON string, base64-encoded JSON or a mapping is accepted
        as well.

        Returns:
            The decoded object

        Raises:
            PodDecodeError: If the object is missing or cannot be decoded
        """
        obj = self.object_
        if isinstance(obj, dict) and set(obj) == {"raw"}:
            obj = _decode_raw(obj["raw"])

        if not isinstance(obj, dict):
            raise PodDecodeError(
                f"expected an object, got {type(obj).__name__}"
            )
        return obj


def _decode_raw(raw: Any) -> Any:
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, (str, bytes)):
        raise PodDecodeError(f"unsupported raw payload type {type(raw).__name__}")

    try:
        return json.loads(raw)
    except ValueError:
        pass

    try:
        return json.loads(base64.b64decode(raw, validate=True))
    except (binascii.Error, ValueError) as e:
        raise PodDecodeError("raw payload is neither JSON nor base64 JSON", e) from e


class AdmissionReview(BaseModel):
    """Inbound AdmissionReview envelope."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    api_version: str = Field(ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = Field(ADMISSION_KIND)
    request: AdmissionRequest


class AdmissionResponse(BaseModel):
    """The response half of an AdmissionReview."""

    model_config = {"populate_by_name": True}

    uid: str = Field(..., description="UID of the request being answered")
    allowed: bool = Field(True, description="Admission decision")
    patch: str | None = Field(None, description="Base64-encoded JSON patch")
    patch_type: str | None = Field(None, alias="patchType")


class AdmissionReviewResponse(BaseModel):
    """Outbound AdmissionReview envelope."""

    model_config = {"populate_by_name": True}

    api_version: str = Field(ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = Field(ADMISSION_KIND)
    response: AdmissionResponse

    def to_dict(self) -> dict[str, Any]:
        """Serialize with wire names, omitting unset patch fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
