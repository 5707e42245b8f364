"""
Mutating admission webhook for Pod resources.

This webhook shrinks container resource requests at pod creation time so
that the configured CPU and memory overcommit ratios are enforced. Each review
runs through a small state machine:

    RECEIVED -> DECODED -> (FILTERED_OUT | SCOPED) -> PATCHED -> RESPONDED

Every path ends in RESPONDED with ``allowed: true``. Undecodable requests,
pods outside the target namespaces and internal failures are answered with
no patch; the API server blocks pod creation until it gets an answer, so the
handler never rejects and never stays silent.
"""

import base64
import json
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from aiohttp import web
from opentelemetry import context as otel_context
from opentelemetry.trace import SpanKind
from pydantic import ValidationError

from overcommit_webhook.constants import (
    ADMISSION_API_VERSION,
    ADMISSION_KIND,
    OUTCOME_ERROR,
    OUTCOME_FILTERED,
    OUTCOME_INVALID,
    OUTCOME_PATCHED,
    OUTCOME_UNCHANGED,
    PATCH_TYPE_JSON_PATCH,
)
from overcommit_webhook.errors import (
    AdmissionDecodeError,
    PatchBuildError,
    PodDecodeError,
)
from overcommit_webhook.models.admission import (
    AdmissionRequest,
    AdmissionResponse,
    AdmissionReview,
    AdmissionReviewResponse,
)
from overcommit_webhook.models.pod import Pod
from overcommit_webhook.observability.logging import (
    generate_correlation_id,
    set_correlation_id,
)
from overcommit_webhook.observability.metrics import (
    MetricsCollector,
    metrics_collector,
)
from overcommit_webhook.observability.tracing import (
    extract_trace_context,
    get_tracer,
)
from overcommit_webhook.overcommit.namespaces import in_scope
from overcommit_webhook.overcommit.patch import (
    PatchOperation,
    build_patch,
    encode_patch,
)
from overcommit_webhook.overcommit.transform import OvercommitPolicy

logger = logging.getLogger(__name__)


class AdmissionState(Enum):
    """Stages of a single admission review."""

    RECEIVED = "received"
    DECODED = "decoded"
    FILTERED_OUT = "filtered_out"
    SCOPED = "scoped"
    PATCHED = "patched"
    RESPONDED = "responded"


@dataclass
class AdmissionContext:
    """Mutable bookkeeping for one review; never shared between requests."""

    uid: str = ""
    api_version: str = ADMISSION_API_VERSION
    kind: str = ADMISSION_KIND
    namespace: str = ""
    name: str = ""
    operation: str = ""
    dry_run: bool = False
    state: AdmissionState = AdmissionState.RECEIVED
    outcome: str = OUTCOME_UNCHANGED
    operations: list[PatchOperation] = field(default_factory=list)

    def advance(self, state: AdmissionState) -> None:
        logger.debug(
            f"Admission review {self.uid or '<unknown>'}: "
            f"{self.state.value} -> {state.value}"
        )
        self.state = state

    def salvage(self, payload: Any) -> None:
        """Pick up the correlation fields from a payload that may not validate."""
        if not isinstance(payload, dict):
            return
        if isinstance(payload.get("apiVersion"), str):
            self.api_version = payload["apiVersion"]
        if isinstance(payload.get("kind"), str):
            self.kind = payload["kind"]
        request = payload.get("request")
        if isinstance(request, dict) and isinstance(request.get("uid"), str):
            self.uid = request["uid"]

    def log_extra(self) -> dict[str, Any]:
        return {
            "admission_uid": self.uid,
            "namespace": self.namespace,
            "resource_name": self.name,
            "operation": self.operation,
            "dry_run": self.dry_run,
            "outcome": self.outcome,
            "patch_operations": len(self.operations),
        }


class AdmissionHandler:
    """Answers AdmissionReview requests for pod creation."""

    def __init__(
        self,
        policy: OvercommitPolicy,
        target_namespaces: Sequence[str] = (),
        collector: MetricsCollector | None = None,
    ):
        """
        Initialize the handler.

        Args:
            policy: CPU and memory overcommit ratios
            target_namespaces: Namespaces to mutate (empty = all namespaces)
            collector: Metrics collector (defaults to the global one)
        """
        self.policy = policy
        self.target_namespaces = tuple(target_namespaces)
        self.collector = collector or metrics_collector
        self.tracer = get_tracer(__name__)

    def review(
        self,
        body: bytes | str,
        trace_context: otel_context.Context | None = None,
    ) -> dict[str, Any]:
        """
        Produce the AdmissionReview response for a raw request body.

        This is the outermost boundary of the admission path: whatever happens
        inside, an allow response is returned.

        Args:
            body: Raw HTTP request body
            trace_context: Parent trace context propagated by the API server

        Returns:
            AdmissionReview response as a JSON-ready mapping
        """
        ctx = AdmissionContext()
        started = time.perf_counter()
        set_correlation_id(generate_correlation_id())

        try:
            with self.tracer.start_as_current_span(
                "admission.review", context=trace_context, kind=SpanKind.SERVER
            ) as span:
                response = self._process(body, ctx)
                span.set_attribute("admission.uid", ctx.uid)
                span.set_attribute("k8s.namespace", ctx.namespace)
                span.set_attribute("admission.outcome", ctx.outcome)
        except Exception as e:
            ctx.outcome = OUTCOME_ERROR
            ctx.operations = []
            logger.error(
                f"Unexpected error handling admission review {ctx.uid}, "
                f"allowing pod unchanged: {e}",
                exc_info=True,
                extra={**ctx.log_extra(), "error_type": type(e).__name__},
            )
            response = self._respond(ctx, None)

        duration = time.perf_counter() - started
        self.collector.record_admission(ctx.outcome, duration)
        logger.info(
            f"Answered admission review {ctx.uid} for pod "
            f"{ctx.namespace}/{ctx.name}: {ctx.outcome}"
            f"{' (dry run)' if ctx.dry_run else ''}",
            extra={**ctx.log_extra(), "duration": duration},
        )
        return response

    def _process(self, body: bytes | str, ctx: AdmissionContext) -> dict[str, Any]:
        try:
            review = self._decode_review(body, ctx)
            set_correlation_id(ctx.uid or generate_correlation_id())
            pod = self._decode_pod(review.request)
        except (AdmissionDecodeError, PodDecodeError) as e:
            ctx.outcome = OUTCOME_INVALID
            logger.warning(
                f"Allowing admission review {ctx.uid or '<unknown>'} unchanged: {e}",
                extra={**ctx.log_extra(), "error_type": type(e).__name__},
            )
            return self._respond(ctx, None)

        ctx.namespace = pod.metadata.namespace or review.request.namespace or ""
        ctx.name = pod.display_name or review.request.name or ""
        ctx.operation = review.request.operation or ""
        ctx.dry_run = review.request.dry_run
        ctx.advance(AdmissionState.DECODED)

        if not in_scope(ctx.namespace, self.target_namespaces):
            ctx.advance(AdmissionState.FILTERED_OUT)
            ctx.outcome = OUTCOME_FILTERED
            logger.info(
                f"Pod {ctx.namespace}/{ctx.name} is outside target namespaces "
                f"{list(self.target_namespaces)}, skipping",
                extra=ctx.log_extra(),
            )
            return self._respond(ctx, None)

        ctx.advance(AdmissionState.SCOPED)
        try:
            ctx.operations = self._build_operations(pod)
            patch = encode_patch(ctx.operations) if ctx.operations else None
        except PatchBuildError as e:
            ctx.operations = []
            patch = None
            ctx.outcome = OUTCOME_ERROR
            logger.error(
                f"Allowing pod {ctx.namespace}/{ctx.name} unchanged: {e}",
                extra={**ctx.log_extra(), "error_type": type(e).__name__},
            )
        else:
            ctx.outcome = OUTCOME_PATCHED if patch else OUTCOME_UNCHANGED

        ctx.advance(AdmissionState.PATCHED)
        for operation in ctx.operations:
            for resource, _ in operation.value:
                self.collector.record_adjustment(resource)
        if patch:
            logger.debug(
                f"Patch for pod {ctx.namespace}/{ctx.name}: {patch.decode('utf-8')}",
                extra=ctx.log_extra(),
            )
        return self._respond(ctx, patch)

    def _decode_review(
        self, body: bytes | str, ctx: AdmissionContext
    ) -> AdmissionReview:
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise AdmissionDecodeError("body is not valid JSON", e) from e

        ctx.salvage(payload)
        try:
            review = AdmissionReview.model_validate(payload)
        except ValidationError as e:
            raise AdmissionDecodeError(
                f"{e.error_count()} validation error(s)", e
            ) from e

        ctx.uid = review.request.uid
        return review

    def _decode_pod(self, request: AdmissionRequest) -> Pod:
        obj = request.embedded_object()
        try:
            return Pod.model_validate(obj)
        except ValidationError as e:
            raise PodDecodeError(f"{e.error_count()} validation error(s)", e) from e

    def _build_operations(self, pod: Pod) -> list[PatchOperation]:
        try:
            return build_patch(pod.spec.containers, self.policy.transform)
        except Exception as e:
            raise PatchBuildError(str(e), e) from e

    def _respond(
        self, ctx: AdmissionContext, patch: bytes | None
    ) -> dict[str, Any]:
        response = AdmissionResponse(uid=ctx.uid, allowed=True)
        if patch:
            response.patch = base64.b64encode(patch).decode("ascii")
            response.patch_type = PATCH_TYPE_JSON_PATCH

        ctx.advance(AdmissionState.RESPONDED)
        return AdmissionReviewResponse(
            api_version=ctx.api_version, kind=ctx.kind, response=response
        ).to_dict()

    async def handle(self, request: web.Request) -> web.Response:
        """aiohttp handler for ``POST /mutate``; always answers 200."""
        try:
            body = await request.read()
        except (web.HTTPException, ConnectionError) as e:
            logger.warning(f"Failed to read admission request body: {e}")
            body = b""

        trace_context = extract_trace_context(request.headers)
        return web.json_response(self.review(body, trace_context))
