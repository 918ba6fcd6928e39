"""Boundary operations used by front ends (CLI, desktop shell)."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

from trust_assistant.certificate import CERTIFICATE_EXTENSIONS, parse_certificate
from trust_assistant.config import DOMAINS_FILENAME, Settings
from trust_assistant.models import (
    BatchInstallResult,
    CertificateEntry,
    CertificateInfo,
    InstallResult,
    ReachabilityResult,
)
from trust_assistant.network.factory import ReachabilityTarget, check_reachability
from trust_assistant.platforms import Platform
from trust_assistant.trust.base import TrustManager
from trust_assistant.trust.factory import get_trust_manager

logger = logging.getLogger(__name__)


def _echo_entry(value: Any) -> Any:
    """Caller-supplied entry, unchanged apart from the transient flag."""
    if isinstance(value, CertificateEntry):
        return value.with_status(value.is_installed)
    if isinstance(value, Mapping):
        return {**value, "isInstalled": bool(value.get("isInstalled", False)), "installing": False}
    return value


def _not_installed(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {**value, "isInstalled": False, "installing": False}
    return value


class TrustAssistant:
    """
    Certificate trust and reachability operations.

    Every method converts failures into result values; nothing raises to
    the caller.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        trust_manager: Optional[TrustManager] = None,
        platform: Optional[Platform] = None,
    ):
        self.settings = settings or Settings()
        self.platform = platform
        self.trust_manager = trust_manager or get_trust_manager(platform, self.settings)

    async def list_certificates(self, cert_dir: Optional[Path] = None) -> List[CertificateEntry]:
        """
        Read certificate files from a directory and probe their trust status.

        Returns:
            Entries sorted by file name; empty if the directory is unreadable
        """
        directory = Path(cert_dir) if cert_dir is not None else self.settings.cert_dir
        try:
            files = sorted(
                p for p in directory.iterdir()
                if p.is_file() and p.suffix.lower() in CERTIFICATE_EXTENSIONS
            )
        except OSError as e:
            logger.error(f"Error reading certificates from {directory}: {e}")
            return []

        entries: List[CertificateEntry] = []
        for file_path in files:
            try:
                content = file_path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning(f"Skipping unreadable certificate {file_path}: {e}")
                continue
            info = parse_certificate(content, file_path.name)
            entries.append(
                CertificateEntry(
                    filename=file_path.name,
                    path=str(file_path),
                    content=content,
                    info=info,
                )
            )

        return list(await asyncio.gather(*(self._check_entry(e) for e in entries)))

    async def check_trust(self, content: str, info: CertificateInfo) -> bool:
        return await self.trust_manager.check_installed(content, info)

    async def install_trust(self, content: str) -> InstallResult:
        try:
            return await self.trust_manager.install(content)
        except Exception as e:
            logger.error(f"Error installing certificate: {e}")
            return InstallResult.failed(str(e))

    async def install_all_untrusted(self, certificates: Sequence[Any]) -> List[BatchInstallResult]:
        """
        Install every certificate not yet marked as installed.

        Installs run one after another so only one elevation prompt is shown
        at a time. A failing item does not stop the rest.
        """
        results: List[BatchInstallResult] = []
        for cert in certificates:
            try:
                entry = CertificateEntry.coerce(cert)
            except (KeyError, TypeError, AttributeError) as e:
                logger.error(f"Skipping malformed certificate entry: {e}")
                filename = cert.get("filename", "<unknown>") if isinstance(cert, Mapping) else "<unknown>"
                results.append(BatchInstallResult(str(filename), InstallResult.failed(f"Malformed entry: {e}")))
                continue
            if entry.is_installed:
                continue
            logger.info(f"Installing {entry.filename}")
            results.append(BatchInstallResult(entry.filename, await self.install_trust(entry.content)))
        return results

    async def _check_entry(self, entry: CertificateEntry) -> CertificateEntry:
        try:
            installed = await self.check_trust(entry.content, entry.info)
        except Exception as e:
            logger.error(f"Error checking certificate {entry.filename}: {e}")
            installed = False
        return entry.with_status(installed)

    async def _refresh_entry(self, cert: Any) -> Any:
        try:
            entry = CertificateEntry.coerce(cert)
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(f"Malformed certificate entry, marking as not installed: {e!r}")
            return _not_installed(cert)
        return await self._check_entry(entry)

    async def refresh_trust_status(self, certificates: Sequence[Any]) -> List[Any]:
        """
        Re-check a batch of certificates, preserving length and order.

        A malformed item or a failing check marks that item as not
        installed; if the batch itself cannot be processed the input is
        returned as given.
        """
        try:
            items = list(certificates)
        except TypeError as e:
            logger.error(f"Certificate batch is not a list: {e}")
            return []
        try:
            logger.info(f"Refreshing certificate status for {len(items)} certificates")
            refreshed = await asyncio.gather(*(self._refresh_entry(cert) for cert in items))
        except Exception as e:
            logger.error(f"Error refreshing certificate status: {e}")
            return [_echo_entry(cert) for cert in items]
        logger.info("Certificate status refresh completed")
        return list(refreshed)

    def list_domains(self, config_dir: Optional[Path] = None) -> List[Any]:
        """
        Read the reachability targets from ``domains.json``.

        Returns:
            The JSON array, or an empty list if the file is absent or invalid
        """
        base_dir = Path(config_dir) if config_dir is not None else self.settings.config_dir
        domains_path = base_dir / DOMAINS_FILENAME
        if not domains_path.exists():
            logger.warning(f"domains.json not found at: {domains_path}")
            return []
        try:
            domains = json.loads(domains_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Error reading domains: {e}")
            return []
        if not isinstance(domains, list):
            logger.error(f"{domains_path} must contain a JSON array")
            return []
        return domains

    async def check_reachability(self, target: ReachabilityTarget) -> ReachabilityResult:
        try:
            return await check_reachability(target, self.settings, self.platform)
        except Exception as e:
            logger.error(f"Error checking domain status: {e}")
            return ReachabilityResult(accessible=False, error_message=str(e))
