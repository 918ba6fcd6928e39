"""Shared fixtures: generated certificates and settings."""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from trust_assistant.certificate import parse_certificate
from trust_assistant.config import Settings


def make_certificate(common_name="Test Root CA", organization="Example Corp", serial=0x0A1B2C):
    """Self-signed CA certificate."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
    ])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(serial)
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(private_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def ca_cert():
    return make_certificate()


@pytest.fixture(scope="session")
def ca_pem(ca_cert):
    return ca_cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture(scope="session")
def ca_der(ca_cert):
    return ca_cert.public_bytes(serialization.Encoding.DER)


@pytest.fixture
def ca_info(ca_pem):
    return parse_certificate(ca_pem, "test-root.pem")


@pytest.fixture
def settings(tmp_path):
    """Settings with temp files confined to the test directory."""
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    return Settings(
        cert_dir=tmp_path / "cert",
        config_dir=tmp_path / "config",
        temp_dir=temp_dir,
    )


@pytest.fixture(scope="session")
def certificate_factory():
    return make_certificate
