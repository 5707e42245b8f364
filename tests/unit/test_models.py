"""Unit tests for the admission and pod pydantic models."""

import base64
import json

import pytest
from pydantic import ValidationError

from overcommit_webhook.errors import PodDecodeError
from overcommit_webhook.models import (
    AdmissionRequest,
    AdmissionResponse,
    AdmissionReview,
    AdmissionReviewResponse,
    Pod,
)

POD = {
    "metadata": {"generateName": "web-", "namespace": "team-a", "labels": {"a": "b"}},
    "spec": {
        "containers": [
            {"name": "app", "resources": {"requests": {"cpu": "1"}, "limits": {}}},
            {"name": "sidecar"},
        ],
        "nodeSelector": {"disk": "ssd"},
    },
}


class TestPod:
    def test_unknown_fields_are_ignored(self):
        pod = Pod.model_validate(POD)

        assert pod.metadata.namespace == "team-a"
        assert [c.name for c in pod.spec.containers] == ["app", "sidecar"]

    def test_display_name_falls_back_to_generate_name(self):
        assert Pod.model_validate(POD).display_name == "web-"

    def test_container_requests_default_to_empty(self):
        pod = Pod.model_validate(POD)

        assert pod.spec.containers[0].requests == {"cpu": "1"}
        assert pod.spec.containers[1].requests == {}

    def test_empty_object(self):
        pod = Pod.model_validate({})
        assert pod.spec.containers == []
        assert pod.display_name == ""


class TestAdmissionRequest:
    def test_uid_is_required(self):
        with pytest.raises(ValidationError):
            AdmissionReview.model_validate({"request": {"object": POD}})

    def test_wire_names(self):
        review = AdmissionReview.model_validate(
            {
                "apiVersion": "admission.k8s.io/v1",
                "kind": "AdmissionReview",
                "request": {"uid": "u", "dryRun": True, "object": POD},
            }
        )

        assert review.api_version == "admission.k8s.io/v1"
        assert review.request.dry_run is True
        assert review.request.embedded_object() == POD

    @pytest.mark.parametrize(
        "raw",
        [
            POD,
            json.dumps(POD),
            base64.b64encode(json.dumps(POD).encode()).decode(),
        ],
    )
    def test_raw_wrapper(self, raw):
        request = AdmissionRequest(uid="u", object_={"raw": raw})
        assert request.embedded_object() == POD

    @pytest.mark.parametrize(
        "obj", [None, [], "pod", {"raw": "not base64!"}, {"raw": None}]
    )
    def test_undecodable_object(self, obj):
        with pytest.raises(PodDecodeError):
            AdmissionRequest(uid="u", object_=obj).embedded_object()


class TestAdmissionReviewResponse:
    def test_omits_unset_patch(self):
        response = AdmissionReviewResponse(response=AdmissionResponse(uid="u"))

        assert response.to_dict() == {
            "apiVersion": "admission.k8s.io/v1",
            "kind": "AdmissionReview",
            "response": {"uid": "u", "allowed": True},
        }

    def test_patch_uses_wire_names(self):
        response = AdmissionReviewResponse(
            response=AdmissionResponse(uid="u", patch="W10=", patch_type="JSONPatch")
        )

        assert response.to_dict()["response"] == {
            "uid": "u",
            "allowed": True,
            "patch": "W10=",
            "patchType": "JSONPatch",
        }
