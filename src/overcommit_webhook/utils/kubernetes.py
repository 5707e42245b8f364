"""
Kubernetes utilities for the overcommit webhook.

This module registers the webhook with the API server by creating or
updating its MutatingWebhookConfiguration. Registration happens once at
start-up; admission reviews never touch the Kubernetes API.
"""

import base64
import logging
from pathlib import Path

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError as TransportError

from overcommit_webhook.constants import (
    MUTATE_PATH,
    WEBHOOK_FAILURE_POLICY,
    WEBHOOK_SIDE_EFFECTS,
)
from overcommit_webhook.errors import RegistrationError

logger = logging.getLogger(__name__)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    This function handles both in-cluster and local development configurations.

    Returns:
        Configured Kubernetes API client
    """
    try:
        # Try in-cluster config first (when running in a pod)
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            # Fall back to local kubeconfig (for development)
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    return client.ApiClient()


class WebhookRegistrar:
    """Creates or updates the MutatingWebhookConfiguration for this webhook."""

    def __init__(
        self,
        api_client: client.ApiClient,
        configuration_name: str,
        webhook_name: str,
        service_name: str,
        namespace: str,
        ca_file: str | Path,
    ):
        """
        Initialize webhook registrar.

        Args:
            api_client: Kubernetes API client
            configuration_name: Name of the MutatingWebhookConfiguration
            webhook_name: Fully qualified name of the webhook entry
            service_name: Service fronting the webhook
            namespace: Namespace of the Service
            ca_file: PEM bundle the API server uses to verify the webhook
        """
        self.api = client.AdmissionregistrationV1Api(api_client)
        self.configuration_name = configuration_name
        self.webhook_name = webhook_name
        self.service_name = service_name
        self.namespace = namespace
        self.ca_file = Path(ca_file)

    def _read_ca_bundle(self) -> bytes:
        try:
            ca_bundle = self.ca_file.read_bytes()
        except OSError as e:
            raise RegistrationError(f"Failed to read CA bundle {self.ca_file}: {e}") from e
        if not ca_bundle:
            raise RegistrationError(f"CA bundle {self.ca_file} is empty")
        return ca_bundle

    def build_configuration(
        self, ca_bundle: bytes
    ) -> client.V1MutatingWebhookConfiguration:
        """
        Build the webhook configuration object.

        Pod CREATE requests in every namespace are sent to the webhook; the
        namespace allow-list is applied by the webhook itself. The failure
        policy is Ignore, so pods are admitted unmutated whenever the webhook
        is unreachable.

        Args:
            ca_bundle: PEM-encoded CA bundle

        Returns:
            MutatingWebhookConfiguration ready to create or replace
        """
        webhook = client.V1MutatingWebhook(
            name=self.webhook_name,
            admission_review_versions=["v1"],
            side_effects=WEBHOOK_SIDE_EFFECTS,
            failure_policy=WEBHOOK_FAILURE_POLICY,
            rules=[
                client.V1RuleWithOperations(
                    operations=["CREATE"],
                    api_groups=["*"],
                    api_versions=["v1"],
                    resources=["pods"],
                )
            ],
            client_config=client.AdmissionregistrationV1WebhookClientConfig(
                service=client.AdmissionregistrationV1ServiceReference(
                    name=self.service_name,
                    namespace=self.namespace,
                    path=MUTATE_PATH,
                ),
                ca_bundle=base64.b64encode(ca_bundle).decode("ascii"),
            ),
            namespace_selector=client.V1LabelSelector(),
        )

        return client.V1MutatingWebhookConfiguration(
            api_version="admissionregistration.k8s.io/v1",
            kind="MutatingWebhookConfiguration",
            metadata=client.V1ObjectMeta(name=self.configuration_name),
            webhooks=[webhook],
        )

    def register(self) -> None:
        """
        Create the webhook configuration, or replace it if it already exists.

        Raises:
            RegistrationError: If the CA bundle is unusable, the API server is
                unreachable or the API call fails
        """
        body = self.build_configuration(self._read_ca_bundle())
        logger.info(
            f"Registering webhook {self.webhook_name} -> "
            f"{self.namespace}/{self.service_name}{MUTATE_PATH} "
            f"(failurePolicy={WEBHOOK_FAILURE_POLICY})"
        )

        try:
            self._apply(body)
        except (TransportError, OSError) as e:
            raise RegistrationError(
                f"Failed to reach the API server: {e}",
                reason=type(e).__name__,
            ) from e

    def _apply(self, body: client.V1MutatingWebhookConfiguration) -> None:
        try:
            existing = self.api.read_mutating_webhook_configuration(
                self.configuration_name
            )
        except ApiException as e:
            if e.status != 404:
                raise RegistrationError(
                    f"Failed to read MutatingWebhookConfiguration {self.configuration_name}",
                    reason=e.reason,
                ) from e
            existing = None

        try:
            if existing is None:
                logger.info(
                    f"Creating MutatingWebhookConfiguration {self.configuration_name}"
                )
                self.api.create_mutating_webhook_configuration(body)
            else:
                logger.info(
                    f"Updating MutatingWebhookConfiguration {self.configuration_name}"
                )
                body.metadata.resource_version = existing.metadata.resource_version
                self.api.replace_mutating_webhook_configuration(
                    self.configuration_name, body
                )
        except ApiException as e:
            raise RegistrationError(
                f"Failed to apply MutatingWebhookConfiguration {self.configuration_name}",
                reason=e.reason,
            ) from e
