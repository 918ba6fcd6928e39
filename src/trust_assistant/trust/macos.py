"""macOS trust store: security(1) for keychain access, osascript for elevation."""

import asyncio
import logging
import re
import shlex
from pathlib import Path
from typing import List, Sequence

from trust_assistant.exceptions import CommandError
from trust_assistant.models import CertificateInfo, InstallResult, InstallState
from trust_assistant.platforms import Platform
from trust_assistant.process import CommandResult, run_command
from trust_assistant.trust.base import (
    MSG_USER_CANCELLED,
    InstallAttempt,
    TrustManager,
    contains_phrase,
    normalize_fingerprint,
)

logger = logging.getLogger(__name__)

CANCELLATION_PHRASES = (
    "User cancelled",
    "User canceled",
    "(-128)",
    "用户取消",
)

# Failures after which the two-step add-then-trust sequence is worth trying
FALLBACK_PHRASES = (
    "already exists",
    "SecTrustSettingsSetTrustSettings",
    "Error reading file",
)

ALREADY_EXISTS_PHRASES = ("already exists",)
ALREADY_TRUSTED_PHRASES = ("already trusted", "already exists")

MSG_INSTALLED = "Certificate imported and trusted as a root certificate"
MSG_FAILED = "Certificate import failed: {error}"
MSG_ADD_FAILED = "Adding the certificate to the keychain failed: {error}"
MSG_TRUST_SET = "Certificate imported; please verify its trust status in System Settings"
MSG_ALREADY_TRUSTED = "Certificate already exists and is trusted"
MSG_TRUST_FAILED = "Setting certificate trust failed: {error}. Please trust the certificate manually in System Settings"
MSG_UNKNOWN_ERROR = "unknown error"

_SHA1_PATTERN = re.compile(r"SHA-1 hash:\s*([A-Fa-f0-9 ]+)")


def find_certificates_command(keychain: str) -> List[str]:
    # -a: all matches, -Z: print SHA-1 hashes
    return ["security", "find-certificate", "-a", "-Z", keychain]


def elevated(args: Sequence[str]) -> List[str]:
    """Wrap a command in an AppleScript administrator-privileges prompt."""
    shell_command = " ".join(shlex.quote(arg) for arg in args)
    escaped = shell_command.replace("\\", "\\\\").replace('"', '\\"')
    script = f'do shell script "{escaped}" with administrator privileges'
    return ["osascript", "-e", script]


def add_trusted_root_command(keychain: str, cert_path: Path) -> List[str]:
    return elevated(["security", "add-trusted-cert", "-r", "trustRoot", "-k", keychain, str(cert_path)])


def add_cert_command(keychain: str, cert_path: Path) -> List[str]:
    return elevated(["security", "add-cert", "-k", keychain, str(cert_path)])


def add_trust_command(keychain: str, cert_path: Path) -> List[str]:
    # Reduced flag set: no result type, default policy
    return elevated(["security", "add-trusted-cert", "-k", keychain, str(cert_path)])


def parse_sha1_hashes(output: str) -> List[str]:
    """Normalised SHA-1 hashes from ``security find-certificate -Z`` output."""
    return [normalize_fingerprint(match) for match in _SHA1_PATTERN.findall(output)]


def _error_text(result: CommandResult) -> str:
    return result.stderr.strip() or MSG_UNKNOWN_ERROR


def classify_primary(result: CommandResult) -> InstallState:
    """Classify the one-shot ``add-trusted-cert -r trustRoot`` attempt."""
    if result.ok:
        return InstallState.SUCCESS
    if contains_phrase(result.stderr, CANCELLATION_PHRASES):
        return InstallState.USER_CANCELLED
    if contains_phrase(result.stderr, FALLBACK_PHRASES):
        return InstallState.ALTERNATE_STRATEGY
    return InstallState.FAILED


def classify_add_step(result: CommandResult) -> InstallState:
    """
    Classify step (a) of the alternate strategy.

    SUCCESS here means "continue with step (b)"; a certificate that is
    already in the keychain counts as added.
    """
    if result.ok or contains_phrase(result.stderr, ALREADY_EXISTS_PHRASES):
        return InstallState.SUCCESS
    if contains_phrase(result.stderr, CANCELLATION_PHRASES):
        return InstallState.USER_CANCELLED
    return InstallState.FAILED


def classify_trust_step(result: CommandResult) -> InstallState:
    """
    Classify step (b) of the alternate strategy.

    The trust settings API fails spuriously on some inputs even though the
    certificate ends up trusted, so "already trusted" is a success.
    """
    if result.ok or contains_phrase(result.stderr, ALREADY_TRUSTED_PHRASES):
        return InstallState.SUCCESS
    if contains_phrase(result.stderr, CANCELLATION_PHRASES):
        return InstallState.USER_CANCELLED
    return InstallState.FAILED


class MacOSTrustManager(TrustManager):
    """Trust manager for macOS keychains."""

    platform = Platform.MACOS

    @property
    def keychains(self) -> Sequence[str]:
        return self.settings.macos_keychains

    @property
    def install_keychain(self) -> str:
        return self.keychains[0]

    async def _keychain_contains(self, keychain: str, expected: str) -> bool:
        logger.debug(f"Checking keychain: {keychain}")
        try:
            result = await run_command(find_certificates_command(keychain))
        except CommandError as e:
            logger.warning(f"Error checking keychain {keychain}: {e}")
            return False
        if not result.ok or not result.stdout:
            return False
        if expected in parse_sha1_hashes(result.stdout):
            logger.debug(f"Certificate fingerprint found in keychain: {keychain}")
            return True
        return False

    async def _probe(self, content: str, info: CertificateInfo) -> bool:
        expected = normalize_fingerprint(info.fingerprint)
        # Every keychain is queried before deciding, so a match in any of them counts
        found = await asyncio.gather(*(self._keychain_contains(k, expected) for k in self.keychains))
        return any(found)

    async def _install_file(self, attempt: InstallAttempt, path: Path, content: str) -> InstallResult:
        attempt.transition(InstallState.ELEVATION_REQUESTED)
        result = await run_command(add_trusted_root_command(self.install_keychain, path))

        state = classify_primary(result)
        if state == InstallState.SUCCESS:
            return attempt.succeed(MSG_INSTALLED)
        if state == InstallState.USER_CANCELLED:
            return attempt.cancel(MSG_USER_CANCELLED)
        if state == InstallState.FAILED:
            return attempt.fail(MSG_FAILED.format(error=_error_text(result)))

        logger.info(f"Direct trust failed ({result.stderr.strip()}), trying add-then-trust sequence")
        attempt.transition(InstallState.ALTERNATE_STRATEGY)
        return await self._install_alternate(attempt, path, content)

    def _ensure_temp_file(self, path: Path, content: str) -> None:
        if not path.exists():
            path.write_text(content, encoding="utf-8")
            path.chmod(0o644)
            logger.debug(f"Recreated temp file {path} for alternate strategy")

    async def _install_alternate(self, attempt: InstallAttempt, path: Path, content: str) -> InstallResult:
        self._ensure_temp_file(path, content)

        # Step (a): add without trust settings
        added = await run_command(add_cert_command(self.install_keychain, path))
        add_state = classify_add_step(added)
        if add_state == InstallState.USER_CANCELLED:
            return attempt.cancel(MSG_USER_CANCELLED)
        if add_state == InstallState.FAILED:
            return attempt.fail(MSG_ADD_FAILED.format(error=_error_text(added)))

        # Step (b): trust with the reduced flag set
        self._ensure_temp_file(path, content)
        trusted = await run_command(add_trust_command(self.install_keychain, path))
        trust_state = classify_trust_step(trusted)
        if trust_state == InstallState.SUCCESS:
            return attempt.succeed(MSG_TRUST_SET if trusted.ok else MSG_ALREADY_TRUSTED)
        if trust_state == InstallState.USER_CANCELLED:
            return attempt.cancel(MSG_USER_CANCELLED)
        return attempt.fail(MSG_TRUST_FAILED.format(error=_error_text(trusted)))
