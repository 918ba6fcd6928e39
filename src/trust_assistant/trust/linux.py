"""Linux (and fallback) trust store: pkexec copy into the CA directory plus refresh."""

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from trust_assistant.certificate import load_certificate, split_pem_certificates
from trust_assistant.exceptions import CertificateParseError
from trust_assistant.models import CertificateInfo, InstallResult, InstallState
from trust_assistant.platforms import Platform
from trust_assistant.process import CommandResult, run_command
from trust_assistant.trust.base import (
    MSG_USER_CANCELLED,
    InstallAttempt,
    TrustManager,
    normalize_fingerprint,
)

logger = logging.getLogger(__name__)

# pkexec exits 126 when the authentication dialog is dismissed
PKEXEC_DISMISSED = 126

INSTALLED_NAME_PREFIX = "trust-assistant-"

BUNDLE_FILES = (
    "/etc/ssl/certs/ca-certificates.crt",  # Debian, Ubuntu, Arch, Alpine
    "/etc/pki/tls/certs/ca-bundle.crt",  # Fedora, RHEL
    "/etc/ssl/ca-bundle.pem",  # openSUSE
)

MSG_INSTALLED = "Certificate imported and the system CA store refreshed (elevated)"
MSG_COPY_FAILED = "Certificate import failed: privilege elevation was denied or is not supported"
MSG_REFRESH_FAILED = "Certificate was copied but refreshing the system CA store failed; it is not active yet"


@dataclass(frozen=True)
class TrustLayout:
    """Where a distribution family keeps local CA files and how it rebuilds its bundle."""

    name: str
    anchor_dir: str
    refresh_command: Tuple[str, ...]


DEBIAN_LAYOUT = TrustLayout(
    name="debian",
    anchor_dir="/usr/local/share/ca-certificates",
    refresh_command=("update-ca-certificates",),
)

REDHAT_LAYOUT = TrustLayout(
    name="redhat",
    anchor_dir="/etc/pki/ca-trust/source/anchors",
    refresh_command=("update-ca-trust", "extract"),
)


def detect_trust_layout() -> TrustLayout:
    """Debian style unless only the Red Hat refresh tool is available."""
    if shutil.which("update-ca-certificates") is None and shutil.which("update-ca-trust") is not None:
        return REDHAT_LAYOUT
    return DEBIAN_LAYOUT


def installed_filename(content: str, fallback_stem: str) -> str:
    """
    Stable ``.crt`` name for the copied certificate.

    Derived from the fingerprint so reinstalling overwrites instead of
    piling up copies; ``update-ca-certificates`` only reads ``*.crt``.
    """
    try:
        cert = load_certificate(content)
    except CertificateParseError:
        return f"{fallback_stem}.crt"
    digest = cert.fingerprint(hashes.SHA1()).hex()
    return f"{INSTALLED_NAME_PREFIX}{digest[:16]}.crt"


def copy_command(cert_path: Path, destination: str) -> List[str]:
    return ["pkexec", "cp", str(cert_path), destination]


def refresh_command(layout: TrustLayout) -> List[str]:
    return ["pkexec", *layout.refresh_command]


def classify_copy(result: CommandResult) -> InstallState:
    if result.ok:
        return InstallState.SUCCESS
    if result.returncode == PKEXEC_DISMISSED:
        return InstallState.USER_CANCELLED
    return InstallState.FAILED


def _pem_fingerprints(data: bytes) -> List[str]:
    fingerprints = []
    for block in split_pem_certificates(data):
        try:
            cert = x509.load_pem_x509_certificate(block)
        except ValueError:
            continue
        fingerprints.append(cert.fingerprint(hashes.SHA1()).hex())
    return fingerprints


def scan_trust_files(expected: str, layout: TrustLayout, bundle_files=BUNDLE_FILES) -> bool:
    """
    Look for a certificate with the given normalised SHA-1 in the system bundle
    and in the layout's anchor directory.
    """
    candidates: List[Path] = [Path(p) for p in bundle_files if Path(p).is_file()][:1]
    anchor_dir = Path(layout.anchor_dir)
    if anchor_dir.is_dir():
        candidates.extend(sorted(anchor_dir.glob("*.crt")))
        candidates.extend(sorted(anchor_dir.glob("*.pem")))

    for candidate in candidates:
        try:
            data = candidate.read_bytes()
        except OSError as e:
            logger.debug(f"Cannot read {candidate}: {e}")
            continue
        if expected in _pem_fingerprints(data):
            logger.debug(f"Certificate fingerprint found in {candidate}")
            return True
    return False


class LinuxTrustManager(TrustManager):
    """Trust manager for Linux and every unrecognised platform."""

    platform = Platform.LINUX

    def __init__(self, settings=None, layout: Optional[TrustLayout] = None):
        super().__init__(settings)
        self.layout = layout or detect_trust_layout()

    async def _probe(self, content: str, info: CertificateInfo) -> bool:
        # Known gap: without the opt-in bundle scan Linux trust is never confirmed
        if not self.settings.linux_scan_bundle:
            return False
        expected = normalize_fingerprint(info.fingerprint)
        return await asyncio.to_thread(scan_trust_files, expected, self.layout)

    async def _install_file(self, attempt: InstallAttempt, path: Path, content: str) -> InstallResult:
        destination = f"{self.layout.anchor_dir}/{installed_filename(content, path.stem)}"
        attempt.transition(InstallState.ELEVATION_REQUESTED)

        copied = await run_command(copy_command(path, destination))
        copy_state = classify_copy(copied)
        if copy_state == InstallState.USER_CANCELLED:
            return attempt.cancel(MSG_USER_CANCELLED)
        if copy_state == InstallState.FAILED:
            return attempt.fail(MSG_COPY_FAILED)

        refreshed = await run_command(refresh_command(self.layout))
        if not refreshed.ok:
            logger.warning(f"{' '.join(self.layout.refresh_command)} exited with {refreshed.returncode}")
            return attempt.fail(MSG_REFRESH_FAILED)
        return attempt.succeed(MSG_INSTALLED)
