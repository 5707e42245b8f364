"""Unit tests for environment-driven webhook settings."""

import pytest
from pydantic import ValidationError

from overcommit_webhook.settings import Settings


@pytest.fixture
def clean_env(monkeypatch):
    """Remove webhook variables that may leak in from the host environment."""
    for name in [
        "CPU_OVERCOMMIT_RATIO",
        "MEMORY_OVERCOMMIT_RATIO",
        "TARGET_NAMESPACES",
        "WEBHOOK_PORT",
        "CERT_DIR",
        "SERVICE_NAME",
        "POD_NAMESPACE",
        "OTEL_SAMPLE_RATE",
    ]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings(_env_file=None)

    assert settings.cpu_overcommit_ratio == 1.5
    assert settings.memory_overcommit_ratio == 1.5
    assert settings.port == 8443
    assert settings.cert_dir == "/etc/webhook/certs"
    assert settings.service_name == "pod-manager"
    assert settings.pod_namespace == "default"
    assert settings.watched_namespaces == []


def test_environment_overrides(clean_env):
    clean_env.setenv("CPU_OVERCOMMIT_RATIO", "4")
    clean_env.setenv("MEMORY_OVERCOMMIT_RATIO", "2.5")
    clean_env.setenv("WEBHOOK_PORT", "9443")
    clean_env.setenv("POD_NAMESPACE", "webhooks")

    settings = Settings(_env_file=None)

    assert settings.cpu_overcommit_ratio == 4.0
    assert settings.memory_overcommit_ratio == 2.5
    assert settings.port == 9443
    assert settings.pod_namespace == "webhooks"


def test_watched_namespaces_are_trimmed(clean_env):
    clean_env.setenv("TARGET_NAMESPACES", " team-a, team-b ,,")

    settings = Settings(_env_file=None)

    assert settings.watched_namespaces == ["team-a", "team-b"]


def test_non_numeric_ratio_is_rejected(clean_env):
    clean_env.setenv("CPU_OVERCOMMIT_RATIO", "lots")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


@pytest.mark.parametrize("value", ["inf", "nan"])
def test_non_finite_ratio_is_rejected(clean_env, value):
    clean_env.setenv("MEMORY_OVERCOMMIT_RATIO", value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_sample_rate_bounds(clean_env):
    clean_env.setenv("OTEL_SAMPLE_RATE", "1.5")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_overcommit_policy(clean_env):
    clean_env.setenv("CPU_OVERCOMMIT_RATIO", "3")
    clean_env.setenv("MEMORY_OVERCOMMIT_RATIO", "0")

    policy = Settings(_env_file=None).overcommit_policy()

    assert policy.cpu_ratio == 3.0
    assert policy.memory_ratio == 0.0
