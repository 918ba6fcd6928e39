"""Selects the trust manager for the running platform."""

from typing import Dict, Optional, Type

from trust_assistant.config import Settings
from trust_assistant.models import CertificateInfo, InstallResult
from trust_assistant.platforms import Platform, detect_platform
from trust_assistant.trust.base import TrustManager
from trust_assistant.trust.linux import LinuxTrustManager
from trust_assistant.trust.macos import MacOSTrustManager
from trust_assistant.trust.windows import WindowsTrustManager

TRUST_MANAGERS: Dict[Platform, Type[TrustManager]] = {
    Platform.WINDOWS: WindowsTrustManager,
    Platform.MACOS: MacOSTrustManager,
    Platform.LINUX: LinuxTrustManager,
}


def get_trust_manager(platform: Optional[Platform] = None, settings: Optional[Settings] = None) -> TrustManager:
    """
    Get the trust manager for a platform (defaults to the running one).

    Returns:
        TrustManager instance
    """
    platform = platform or detect_platform()
    return TRUST_MANAGERS[platform](settings)


async def check_certificate_installed(content: str, info: CertificateInfo, settings: Optional[Settings] = None) -> bool:
    return await get_trust_manager(settings=settings).check_installed(content, info)


async def install_certificate(content: str, settings: Optional[Settings] = None) -> InstallResult:
    return await get_trust_manager(settings=settings).install(content)
