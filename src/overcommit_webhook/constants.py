"""
Constants used throughout the overcommit webhook.

This module defines all constant values used by the webhook including:
- Resource floors applied when shrinking requests
- Admission review wire constants
- Default configuration values
- Webhook registration identifiers
"""

# Resource names as they appear in a container's resources.requests map
RESOURCE_CPU = "cpu"
RESOURCE_MEMORY = "memory"

# CPU floors (milli-cores)
# A request of at least one tenth of a core never shrinks below that
CPU_MIN_MILLI = 100
CPU_ABSOLUTE_MIN_MILLI = 1

# Memory floors (bytes)
MIB = 1024 * 1024
MEMORY_MIN_BYTES = 4 * MIB
MEMORY_ABSOLUTE_MIN_BYTES = 1 * MIB

# Fraction of the declared request kept by the proportional floors
REQUEST_FLOOR_DIVISOR = 10

# Admission review constants
ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_KIND = "AdmissionReview"
PATCH_TYPE_JSON_PATCH = "JSONPatch"
PATCH_OP_ADD = "add"
CONTAINER_REQUESTS_PATH = "/spec/containers/{index}/resources/requests"

# HTTP routes
MUTATE_PATH = "/mutate"
HEALTHZ_PATH = "/healthz"

# Admission outcomes (used for metrics labels and logs)
OUTCOME_PATCHED = "patched"
OUTCOME_UNCHANGED = "unchanged"
OUTCOME_FILTERED = "filtered"
OUTCOME_INVALID = "invalid"
OUTCOME_ERROR = "error"

# Default configuration values
DEFAULT_CPU_OVERCOMMIT_RATIO = 1.5
DEFAULT_MEMORY_OVERCOMMIT_RATIO = 1.5
DEFAULT_WEBHOOK_PORT = 8443
DEFAULT_CERT_DIR = "/etc/webhook/certs"
DEFAULT_SERVICE_NAME = "pod-manager"
DEFAULT_NAMESPACE = "default"

# Certificate files inside the certificate directory
CERT_FILE_NAME = "tls.crt"
KEY_FILE_NAME = "tls.key"
CERT_ORGANIZATION = "pod-manager"
CERT_VALIDITY_DAYS = 365
CERT_KEY_SIZE = 2048

# Webhook registration
WEBHOOK_CONFIGURATION_NAME = "pod-mutating-webhook"
WEBHOOK_NAME = "pod-mutator.example.com"
WEBHOOK_FAILURE_POLICY = "Ignore"
WEBHOOK_SIDE_EFFECTS = "None"
