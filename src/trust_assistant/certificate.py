"""Certificate loading and display information extraction."""

import logging
import re
from typing import List, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import NameOID

from trust_assistant.exceptions import CertificateParseError
from trust_assistant.models import CertificateInfo

logger = logging.getLogger(__name__)

CERTIFICATE_EXTENSIONS = (".pem", ".crt", ".cert")

_EXTENSION_PATTERN = re.compile(r"\.(pem|crt|cert)$", re.IGNORECASE)
_PEM_PATTERN = rb"-----BEGIN CERTIFICATE-----(.*?)-----END CERTIFICATE-----"

# Short names that cryptography does not render in RFC 4514 form
_SHORT_NAMES = {
    NameOID.EMAIL_ADDRESS: "E",
    NameOID.SERIAL_NUMBER: "serialNumber",
    NameOID.TITLE: "title",
    NameOID.GIVEN_NAME: "GN",
    NameOID.SURNAME: "SN",
}


def certificate_name(filename: str) -> str:
    """File name with a certificate extension removed."""
    return _EXTENSION_PATTERN.sub("", filename)


def split_pem_certificates(data: bytes) -> List[bytes]:
    """Split PEM data into individual certificate blocks."""
    matches = re.findall(_PEM_PATTERN, data, re.DOTALL)
    return [
        b"-----BEGIN CERTIFICATE-----" + match + b"-----END CERTIFICATE-----\n"
        for match in matches
    ]


def load_certificate(content: Union[str, bytes]) -> x509.Certificate:
    """
    Load the first certificate from PEM or DER content.

    Raises:
        CertificateParseError: If the content holds no readable certificate
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    try:
        if b"-----BEGIN" in data:
            blocks = split_pem_certificates(data)
            if not blocks:
                raise CertificateParseError("No PEM certificate block found")
            return x509.load_pem_x509_certificate(blocks[0])
        return x509.load_der_x509_certificate(data)
    except CertificateParseError:
        raise
    except ValueError as e:
        raise CertificateParseError(f"Invalid certificate data: {e}") from e


def compute_fingerprint(cert: x509.Certificate) -> str:
    """SHA-1 over the DER encoding, as uppercase colon-separated hex."""
    der = cert.public_bytes(serialization.Encoding.DER)
    digest = hashes.Hash(hashes.SHA1())
    digest.update(der)
    return ":".join(f"{b:02X}" for b in digest.finalize())


def format_name(name: x509.Name) -> str:
    """Render a distinguished name as ``CN=..., O=...`` in certificate order."""
    parts = []
    for attribute in name:
        short_name = _SHORT_NAMES.get(attribute.oid) or attribute.rfc4514_attribute_name
        value = attribute.value
        if isinstance(value, bytes):
            value = value.hex()
        parts.append(f"{short_name}={value}")
    return ", ".join(parts)


def _format_serial(serial: int) -> str:
    hex_serial = f"{serial:x}"
    if len(hex_serial) % 2:
        hex_serial = "0" + hex_serial
    return hex_serial


def _common_name(cert: x509.Certificate, fallback: str) -> str:
    attributes = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if attributes:
        value = attributes[0].value
        return value if isinstance(value, str) else fallback
    return fallback


def parse_certificate(content: Union[str, bytes], filename: str) -> CertificateInfo:
    """
    Extract display information from certificate content.

    Never raises: unparsable content yields sentinel fields, while ``name``
    is always derived from the file name.

    Args:
        content: PEM text or DER bytes
        filename: Source file name

    Returns:
        CertificateInfo
    """
    name = certificate_name(filename)
    try:
        cert = load_certificate(content)
        return CertificateInfo(
            name=name,
            common_name=_common_name(cert, name),
            subject=format_name(cert.subject),
            issuer=format_name(cert.issuer),
            valid_from=cert.not_valid_before_utc.date().isoformat(),
            valid_to=cert.not_valid_after_utc.date().isoformat(),
            serial_number=_format_serial(cert.serial_number),
            fingerprint=compute_fingerprint(cert),
        )
    except Exception as e:
        logger.warning(f"Error parsing certificate {filename}: {e}")
        return CertificateInfo.unknown(name)
