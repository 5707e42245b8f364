"""
Self-signed serving certificate generation.

The API server reaches the webhook through its Service, so the certificate
covers the short and namespaced Service DNS names. The generated certificate
doubles as the CA bundle handed to the MutatingWebhookConfiguration.
"""

import ipaddress
import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from overcommit_webhook.constants import (
    CERT_FILE_NAME,
    CERT_KEY_SIZE,
    CERT_ORGANIZATION,
    CERT_VALIDITY_DAYS,
    KEY_FILE_NAME,
)
from overcommit_webhook.errors import CertificateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CertificatePaths:
    """Locations of the generated certificate and key."""

    certfile: Path
    keyfile: Path


class CertificateGenerator:
    """Generates a self-signed certificate for the webhook Service."""

    def __init__(self, cert_dir: str, service_name: str, namespace: str):
        """
        Initialize certificate generator.

        Args:
            cert_dir: Directory to write tls.crt and tls.key into
            service_name: Name of the Service fronting the webhook
            namespace: Namespace of that Service
        """
        self.cert_dir = Path(cert_dir)
        self.service_name = service_name
        self.namespace = namespace

    @property
    def paths(self) -> CertificatePaths:
        return CertificatePaths(
            certfile=self.cert_dir / CERT_FILE_NAME,
            keyfile=self.cert_dir / KEY_FILE_NAME,
        )

    def dns_names(self) -> list[str]:
        """Service DNS names the certificate is valid for."""
        return [
            self.service_name,
            f"{self.service_name}.{self.namespace}",
            f"{self.service_name}.{self.namespace}.svc",
        ]

    def generate(self) -> CertificatePaths:
        """
        Create a new key pair and certificate, replacing any existing files.

        Returns:
            Paths of the written certificate and key

        Raises:
            CertificateError: If the files cannot be written
        """
        try:
            self.cert_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            raise CertificateError(
                f"Failed to create certificate directory {self.cert_dir}: {e}", e
            ) from e

        private_key = rsa.generate_private_key(
            public_exponent=65537, key_size=CERT_KEY_SIZE
        )
        certificate = self._build_certificate(private_key)

        cert_pem = certificate.public_bytes(serialization.Encoding.PEM)
        key_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )

        paths = self.paths
        try:
            _write_file(paths.certfile, cert_pem, 0o644)
            _write_file(paths.keyfile, key_pem, 0o600)
        except OSError as e:
            raise CertificateError(f"Failed to write certificate files: {e}", e) from e

        logger.info(
            f"Generated serving certificate for {', '.join(self.dns_names())} "
            f"in {self.cert_dir}"
        )
        return paths

    def _build_certificate(self, private_key: rsa.RSAPrivateKey) -> x509.Certificate:
        common_name = f"{self.service_name}.{self.namespace}.svc"
        subject = x509.Name(
            [
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, CERT_ORGANIZATION),
                x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            ]
        )
        now = datetime.now(UTC)
        san = x509.SubjectAlternativeName(
            [x509.DNSName(name) for name in self.dns_names()]
            + [x509.IPAddress(ipaddress.ip_address("127.0.0.1"))]
        )

        return (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + timedelta(days=CERT_VALIDITY_DAYS))
            .add_extension(san, critical=False)
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    key_encipherment=True,
                    content_commitment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]),
                critical=False,
            )
            .sign(private_key, hashes.SHA256())
        )


def _write_file(path: Path, data: bytes, mode: int) -> None:
    path.write_bytes(data)
    os.chmod(path, mode)
