"""Pytest configuration and fixtures."""

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

# Set test environment variables before importing settings
os.environ.update(
    {
        "EMAIL_USERNAME": "probe@example.com",
        "EMAIL_PASSWORD": "app-password",
        "PICKUP_DIRECTORY": "/nonexistent/pickup",
    }
)


def make_certificate(common_name: str = "smtp-client.test"):
    """Create a self-signed EC certificate and its key."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return cert, key


def cert_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def key_pem(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def fingerprint(cert: x509.Certificate) -> str:
    return cert.fingerprint(hashes.SHA1()).hex().upper()


def cert_der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.DER)


@pytest.fixture
def client_cert():
    """Client certificate and key pair."""
    return make_certificate("smtp-client.test")


@pytest.fixture
def cert_bundle(tmp_path: Path, client_cert) -> Path:
    """PEM bundle holding an unrelated CA followed by the client certificate."""
    other, _ = make_certificate("unrelated-ca.test")
    cert, _ = client_cert
    bundle = tmp_path / "bundle.pem"
    bundle.write_bytes(cert_pem(other) + cert_pem(cert))
    return bundle


@pytest.fixture
def probe_message():
    """Probe message addressed from a mailbox to itself."""
    from smtp_verifier.models import build_probe_message

    return build_probe_message("probe@example.com")


@pytest.fixture
def cert_tools():
    """Helpers for building certificate fixtures inside tests."""
    from types import SimpleNamespace

    return SimpleNamespace(
        make=make_certificate,
        cert_pem=cert_pem,
        key_pem=key_pem,
        fingerprint=fingerprint,
        der=cert_der,
    )
