"""
Webhook error hierarchy with categorization.

This module defines the error types used throughout the overcommit webhook.
Admission-time errors never reach the API server as rejections: the handler
logs them and answers with an allow response. Start-up errors (configuration,
certificates) abort the process.
"""


class WebhookError(Exception):
    """
    Base error class for all webhook-related exceptions.

    Provides categorization and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize webhook error.

        Args:
            message: Human-readable error description
            category: Error category (configuration, admission, transform, ...)
            user_action: What the user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.user_action = user_action
        self.cause = cause

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class ConfigurationError(WebhookError):
    """Error in webhook configuration."""

    def __init__(self, message: str, user_action: str | None = None):
        super().__init__(
            message=message,
            category="configuration",
            user_action=user_action or "Review and correct configuration",
        )


class AdmissionDecodeError(WebhookError):
    """The request body is not a usable AdmissionReview envelope."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(
            message=f"Failed to decode admission review: {message}",
            category="admission",
            cause=cause,
        )


class PodDecodeError(WebhookError):
    """The object embedded in the admission request is not a pod."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(
            message=f"Failed to decode pod: {message}",
            category="admission",
            cause=cause,
        )


class QuantityError(WebhookError, ValueError):
    """A resource quantity string could not be parsed."""

    def __init__(self, quantity: object, reason: str = "invalid quantity"):
        self.quantity = quantity
        super().__init__(
            message=f"{reason}: {quantity!r}",
            category="transform",
        )


class PatchBuildError(WebhookError):
    """The JSON patch for a pod could not be constructed."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(
            message=f"Failed to build patch: {message}",
            category="transform",
            cause=cause,
        )


class CertificateError(WebhookError):
    """Error generating or loading the serving certificate."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(
            message=message,
            category="certificate",
            user_action="Check that the certificate directory is writable",
            cause=cause,
        )


class RegistrationError(WebhookError):
    """Error registering the mutating webhook configuration."""

    def __init__(self, message: str, reason: str | None = None):
        if reason:
            message = f"{message} (reason: {reason})"
        super().__init__(
            message=message,
            category="registration",
            user_action=(
                "Check RBAC permissions for mutatingwebhookconfigurations "
                "and cluster connectivity"
            ),
        )
